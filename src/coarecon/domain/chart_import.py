"""Import executor: staged rows to chart of account entities."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, UTC
from typing import Any, Iterable, Optional

from coarecon.config import Settings
from coarecon.database.base import Database
from coarecon.domain.chart_of_account import ChartOfAccountService
from coarecon.domain.entities import (
    ColumnMapping,
    ImportKind,
    ImportResult,
    JobState,
    JobStatus,
    StagedImportJob,
)
from coarecon.domain.errors import (
    NotFoundError,
    ScopeMismatchError,
    ValidationError,
    job_not_found,
)
from coarecon.domain.mapping import ColumnMappingSet, MappingResolver
from coarecon.domain.mapping_fields import CHART_OF_ACCOUNT_ATTRIBUTES
from coarecon.domain.staging import StagingService
from coarecon.utils.text import normalize_whitespace

logger = logging.getLogger(__name__)

INTEGER_FIELDS = {"sequenceNumber", "indentLevel"}
TRUE_VALUES = {"true", "yes", "y", "1", "active", "enabled", "t"}
FALSE_VALUES = {"false", "no", "n", "0", "inactive", "disabled", "f"}


@dataclass
class RowOutcome:
    """Projection of one staged row; either ``values`` or ``error`` is set."""

    row_number: int
    values: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


def _parse_integer(value: str) -> int:
    number = float(value)
    if not number.is_integer():
        raise ValueError(value)
    return int(number)


def _parse_boolean(value: str) -> bool:
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(value)


def project_row(row_number: int, row: dict[str, str], mappings: ColumnMappingSet) -> RowOutcome:
    """Project a staged row through the mappings into account attributes.

    Blank optional values are left out, so an update never erases data the
    spreadsheet did not provide.
    """
    values: dict[str, Any] = {}
    for target, raw in mappings.project(row).items():
        text = normalize_whitespace(raw)
        if text is None:
            continue
        attribute = CHART_OF_ACCOUNT_ATTRIBUTES[target]
        try:
            if target in INTEGER_FIELDS:
                values[attribute] = _parse_integer(text)
            elif target == "isActive":
                values[attribute] = _parse_boolean(text)
            else:
                values[attribute] = text
        except ValueError:
            return RowOutcome(
                row_number, error=f"Row {row_number}: Invalid value '{text}' for {target}"
            )

    if not values.get("account_number"):
        return RowOutcome(row_number, error=f"Row {row_number}: Missing account number")
    if not values.get("account_name"):
        return RowOutcome(row_number, error=f"Row {row_number}: Missing account name")
    return RowOutcome(row_number, values=values)


class ImportExecutor:
    """Applies validated mappings to staged rows and persists accounts."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        staging_service: Optional[StagingService] = None,
    ):
        """Initialize import executor.

        Args:
            db: Database instance
            settings: Runtime settings (worker count)
            staging_service: Source of staged jobs
        """
        self.db = db
        self.settings = settings or Settings()
        self.staging_service = staging_service or StagingService(db, self.settings)
        self.resolver = MappingResolver(self.staging_service)
        self.account_service = ChartOfAccountService(db)

    def apply_mappings_and_import(
        self, job_id: str, program_id: int, mappings: Iterable[ColumnMapping]
    ) -> ImportResult:
        """Import every staged row of a job.

        Row failures are collected in the result and never abort the batch.

        Args:
            job_id: Staged job to import
            program_id: Program the accounts are imported into
            mappings: Column mappings chosen by the caller

        Returns:
            ImportResult with per-row errors

        Raises:
            NotFoundError: If the job is unknown, consumed, expired or claimed
                by a concurrent import
            ScopeMismatchError: If program_id is not the job's program
            ValidationError: If the mappings are invalid or the job is a ledger job
        """
        job = self.staging_service.get_job(job_id)
        if job.program_id != program_id:
            raise ScopeMismatchError(
                f"Job '{job_id}' was staged for program {job.program_id}, not {program_id}"
            )
        if job.import_kind is not ImportKind.CHART_OF_ACCOUNTS:
            raise ValidationError(
                f"Job '{job_id}' holds {job.import_kind.value} rows, not chart of accounts"
            )
        resolved = self.resolver.validate(job, mappings)

        # Only one concurrent import can claim the job
        job = self.db.claim_staged_job(job_id, datetime.now(UTC))
        try:
            result = self._import_rows(job, resolved)
        except Exception:
            self.db.update_staged_job(job_id, JobState.FAILED)
            raise

        state = JobState.COMPLETED if result.failed_records == 0 else JobState.COMPLETED_WITH_ERRORS
        self.db.update_staged_job(
            job_id, state, result=asdict(result), consumed_at=datetime.now(UTC)
        )
        logger.info(
            "Imported job %s: %d processed, %d succeeded, %d failed",
            job_id,
            result.processed_records,
            result.successful_records,
            result.failed_records,
        )
        return result

    def _import_rows(self, job: StagedImportJob, mappings: ColumnMappingSet) -> ImportResult:
        # Projection is pure and runs in parallel; map() keeps row order
        with ThreadPoolExecutor(max_workers=self.settings.match_workers) as pool:
            outcomes = list(
                pool.map(
                    lambda item: project_row(item[0], item[1], mappings),
                    job.numbered_rows(),
                )
            )

        errors: list[str] = []
        account_ids: list[int] = []
        created = 0
        updated = 0
        for outcome in outcomes:
            if outcome.error is not None:
                logger.debug("Job %s: %s", job.job_id, outcome.error)
                errors.append(outcome.error)
                continue
            try:
                account_id, was_created = self._upsert(job, outcome.values)
            except Exception as e:
                message = f"Row {outcome.row_number}: {e}"
                logger.debug("Job %s: %s", job.job_id, message)
                errors.append(message)
                continue
            account_ids.append(account_id)
            if was_created:
                created += 1
            else:
                updated += 1

        processed = len(outcomes)
        failed = len(errors)
        successful = processed - failed
        if failed == 0:
            message = f"Imported {successful} account(s)"
        else:
            message = f"Imported {successful} account(s) with {failed} error(s)"
        return ImportResult(
            success=True,
            processed_records=processed,
            successful_records=successful,
            failed_records=failed,
            errors=errors,
            message=message,
            created_records=created,
            updated_records=updated,
            account_ids=account_ids,
        )

    def _upsert(self, job: StagedImportJob, values: dict[str, Any]) -> tuple[int, bool]:
        """Create the account, or update the one with the same number in scope."""
        values = dict(values)
        number = values.pop("account_number")
        existing = self.db.find_chart_of_account(job.program_id, job.shop_id, number)
        if existing is not None:
            self.db.update_chart_of_account(existing.id, **values)
            return existing.id, False
        name = values.pop("account_name")
        account_id = self.account_service.create_account(
            program_id=job.program_id,
            account_number=number,
            account_name=name,
            shop_id=job.shop_id,
            **values,
        )
        return account_id, True

    def get_job_status(self, job_id: str) -> JobStatus:
        """Report the progress of a staged job.

        Raises:
            NotFoundError: If no job with that ID was ever staged (or it was purged)
        """
        job = self.db.get_staged_job(job_id)
        if job is None:
            raise NotFoundError(job_not_found(job_id))

        if job.status is JobState.STAGED:
            state = JobState.EXPIRED if job.is_expired(datetime.now(UTC)) else JobState.STAGED
            return JobStatus(job_id=job_id, status=state, total_records=job.total_rows)

        result = job.result or {}
        return JobStatus(
            job_id=job_id,
            status=job.status,
            total_records=result.get("processed_records", job.total_rows),
            processed_records=result.get("processed_records", 0),
            successful_records=result.get("successful_records", 0),
            failed_records=result.get("failed_records", 0),
            errors=list(result.get("errors", [])),
        )
