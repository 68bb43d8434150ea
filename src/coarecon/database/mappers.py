"""Mapper functions to convert between domain models and SQLAlchemy models.

SQLite hands datetimes back without tzinfo; everything is stored in UTC, so
the mappers re-attach it before entities leave the database layer.
"""

from datetime import datetime, UTC
from typing import Optional

from coarecon.domain import entities as domain
from coarecon.database.models import (
    AccountMatching as ORMAccountMatching,
    ChartOfAccount as ORMChartOfAccount,
    StagedImportJob as ORMStagedImportJob,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def chart_of_account_to_domain(orm_account: ORMChartOfAccount) -> domain.ChartOfAccount:
    """Convert SQLAlchemy ChartOfAccount model to domain ChartOfAccount entity."""
    return domain.ChartOfAccount(
        id=orm_account.id,
        program_id=orm_account.program_id,
        shop_id=orm_account.shop_id,
        account_number=orm_account.account_number,
        account_name=orm_account.account_name,
        description=orm_account.description,
        is_active=orm_account.is_active,
        is_master_account=orm_account.is_master_account,
        account_type=orm_account.account_type,
        dr_cr_default=orm_account.dr_cr_default,
        line_type=orm_account.line_type,
        sequence_number=orm_account.sequence_number,
        indent_level=orm_account.indent_level,
        parent_account=orm_account.parent_account,
        created_at=_as_utc(orm_account.created_at),
        modified_at=_as_utc(orm_account.modified_at),
    )


def account_matching_to_domain(orm_matching: ORMAccountMatching) -> domain.AccountMatching:
    """Convert SQLAlchemy AccountMatching model to domain AccountMatching entity."""
    return domain.AccountMatching(
        id=orm_matching.id,
        shop_account_id=orm_matching.shop_account_id,
        master_account_id=orm_matching.master_account_id,
        confidence=orm_matching.confidence,
        method=domain.MatchingMethod(orm_matching.method),
        status=domain.MatchingStatus(orm_matching.status),
        details=orm_matching.details,
        created_at=_as_utc(orm_matching.created_at),
        reviewed_by=orm_matching.reviewed_by,
        reviewed_at=_as_utc(orm_matching.reviewed_at),
    )


def detected_column_to_dict(column: domain.DetectedColumn) -> dict:
    """Serialize a detected column for the JSON column of staged jobs."""
    return {
        "column_name": column.column_name,
        "column_index": column.column_index,
        "sample_values": list(column.sample_values),
        "suggested_target_field": column.suggested_target_field,
    }


def staged_job_to_domain(orm_job: ORMStagedImportJob) -> domain.StagedImportJob:
    """Convert SQLAlchemy StagedImportJob model to domain StagedImportJob entity."""
    columns = [
        domain.DetectedColumn(
            column_name=col["column_name"],
            column_index=col["column_index"],
            sample_values=list(col.get("sample_values") or []),
            suggested_target_field=col.get("suggested_target_field"),
        )
        for col in orm_job.detected_columns
    ]
    return domain.StagedImportJob(
        job_id=orm_job.job_id,
        file_name=orm_job.file_name,
        sheet_name=orm_job.sheet_name,
        program_id=orm_job.program_id,
        shop_id=orm_job.shop_id,
        import_kind=domain.ImportKind(orm_job.import_kind),
        detected_columns=columns,
        rows=list(orm_job.rows),
        row_numbers=list(orm_job.row_numbers or []),
        status=domain.JobState(orm_job.status),
        created_at=_as_utc(orm_job.created_at),
        expires_at=_as_utc(orm_job.expires_at),
        metadata=dict(orm_job.job_metadata or {}),
        consumed_at=_as_utc(orm_job.consumed_at),
        result=orm_job.result,
    )
