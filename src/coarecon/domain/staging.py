"""Staging service: spreadsheet rows held server-side until imported."""

import logging
import uuid
from datetime import datetime, UTC
from typing import Any, Optional

from coarecon.config import Settings
from coarecon.database.base import Database
from coarecon.domain.entities import DetectedColumn, ImportKind, JobState, StagedImportJob
from coarecon.domain.errors import EmptyDataError, NotFoundError, ValidationError, job_not_found
from coarecon.domain.mapping_fields import suggest_target_field
from coarecon.domain.spreadsheet import SheetTable, SpreadsheetAnalyzer
from coarecon.utils.date_parser import parse_date, parse_period

logger = logging.getLogger(__name__)


def detect_columns(
    table: SheetTable, kind: ImportKind, sample_size: int
) -> list[DetectedColumn]:
    """Describe each header with sample values and a suggested target field.

    A target field is suggested for at most one column; the leftmost column
    claiming it keeps the suggestion.
    """
    columns = []
    claimed: set[str] = set()
    for index, name in enumerate(table.headers):
        samples: list[str] = []
        for row in table.rows:
            value = row[index] if index < len(row) else ""
            if value and value not in samples:
                samples.append(value)
                if len(samples) >= sample_size:
                    break

        suggestion = suggest_target_field(name, kind)
        if suggestion in claimed:
            suggestion = None
        elif suggestion is not None:
            claimed.add(suggestion)

        columns.append(
            DetectedColumn(
                column_name=name,
                column_index=index,
                sample_values=samples,
                suggested_target_field=suggestion,
            )
        )
    return columns


class StagingService:
    """Service for staging spreadsheet uploads as import jobs."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        analyzer: Optional[SpreadsheetAnalyzer] = None,
    ):
        """Initialize staging service.

        Args:
            db: Database instance
            settings: Runtime settings (sample size, job TTL)
            analyzer: Spreadsheet reader, shared with the preview endpoints
        """
        self.db = db
        self.settings = settings or Settings()
        self.analyzer = analyzer or SpreadsheetAnalyzer()

    def stage(
        self,
        data: bytes,
        file_name: str,
        sheet_name: str,
        program_id: int,
        shop_id: Optional[int] = None,
        import_kind: ImportKind = ImportKind.CHART_OF_ACCOUNTS,
        import_date: Optional[str] = None,
        ledger_date: Optional[str] = None,
    ) -> StagedImportJob:
        """Parse a sheet and persist its rows as a staged import job.

        Args:
            data: Raw file bytes
            file_name: Original file name; its extension selects the reader
            sheet_name: Sheet to stage
            program_id: Program the accounts belong to
            shop_id: Shop for shop-level imports, None for the master chart
            import_kind: Target field catalog used for suggestions
            import_date: Optional import date (general ledger uploads)
            ledger_date: Optional ledger period (general ledger uploads), stored as
                the first day of its month

        Returns:
            The staged job

        Raises:
            UnreadableFileError: If the file cannot be parsed
            InvalidSheetError: If the sheet does not exist
            EmptyDataError: If the sheet has no data rows
            ValidationError: If the scope or metadata is invalid
        """
        import_kind = ImportKind(import_kind)
        if program_id <= 0:
            raise ValidationError(f"Invalid program ID {program_id}")
        if shop_id is not None and shop_id <= 0:
            raise ValidationError(f"Invalid shop ID {shop_id}")
        if import_kind is ImportKind.GENERAL_LEDGER and shop_id is None:
            raise ValidationError("General ledger imports require a shop")

        metadata: dict[str, Any] = {}
        for key, value, parse in (
            ("import_date", import_date, parse_date),
            ("ledger_date", ledger_date, parse_period),
        ):
            if value:
                try:
                    metadata[key] = parse(value).isoformat()
                except ValueError as e:
                    raise ValidationError(f"Invalid {key.replace('_', ' ')}: {e}") from e

        table = self.analyzer.read_sheet(data, file_name, sheet_name)
        if not table.rows:
            raise EmptyDataError(f"Sheet '{sheet_name}' has no data rows")

        columns = detect_columns(table, import_kind, self.settings.sample_size)
        rows = [
            {header: (row[i] if i < len(row) else "") for i, header in enumerate(table.headers)}
            for row in table.rows
        ]

        job_id = uuid.uuid4().hex
        expires_at = datetime.now(UTC) + self.settings.staged_job_ttl
        self.db.create_staged_job(
            job_id=job_id,
            file_name=file_name,
            sheet_name=sheet_name,
            program_id=program_id,
            shop_id=shop_id,
            import_kind=import_kind.value,
            detected_columns=columns,
            rows=rows,
            metadata=metadata,
            expires_at=expires_at,
            row_numbers=table.row_numbers or None,
        )
        logger.info(
            "Staged job %s from %s/%s: %d rows, %d columns",
            job_id,
            file_name,
            sheet_name,
            len(rows),
            len(columns),
        )
        return self.get_job(job_id)

    def get_job(self, job_id: str) -> StagedImportJob:
        """Get a staged job that can still be imported.

        Raises:
            NotFoundError: If the job is unknown, already consumed or expired
        """
        job = self.db.get_staged_job(job_id)
        if job is None or job.consumed_at is not None or job.status is not JobState.STAGED:
            raise NotFoundError(job_not_found(job_id))
        if job.is_expired(datetime.now(UTC)):
            raise NotFoundError(job_not_found(job_id))
        return job

    def purge_expired(self) -> int:
        """Delete staged jobs past their expiry that were never imported.

        Returns:
            Number of jobs deleted
        """
        count = self.db.delete_staged_jobs_expired_before(datetime.now(UTC))
        if count:
            logger.info("Purged %d expired staged job(s)", count)
        return count
