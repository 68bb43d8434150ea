"""Domain model entities for coarecon.

These are pure data classes representing reconciliation concepts,
independent of the database schema. Services exchange these objects, the
database layer maps its ORM rows onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ImportKind(str, Enum):
    """Which catalog of target fields a staged job is mapped against."""

    CHART_OF_ACCOUNTS = "chart_of_accounts"
    GENERAL_LEDGER = "general_ledger"


class MatchingMethod(str, Enum):
    AUTO = "Auto"
    MANUAL = "Manual"


class MatchingStatus(str, Enum):
    """Lifecycle state of a proposed shop to master correspondence."""

    MATCHED = "Matched"
    PENDING_CONFIRMATION = "PendingConfirmation"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"

    @property
    def is_live(self) -> bool:
        """True for candidates still awaiting a human decision."""
        return self in (MatchingStatus.MATCHED, MatchingStatus.PENDING_CONFIRMATION)


class JobState(str, Enum):
    STAGED = "Staged"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    COMPLETED_WITH_ERRORS = "CompletedWithErrors"
    FAILED = "Failed"
    EXPIRED = "Expired"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobState.STAGED, JobState.PROCESSING)


@dataclass(frozen=True)
class ChartOfAccount:
    """Chart of Accounts entry, either a program master account or a shop account."""

    id: int
    program_id: int
    account_number: str
    account_name: str
    is_master_account: bool
    shop_id: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    account_type: Optional[str] = None
    dr_cr_default: Optional[str] = None
    line_type: Optional[str] = None
    sequence_number: Optional[int] = None
    indent_level: Optional[int] = None
    parent_account: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class DetectedColumn:
    """A spreadsheet column found while staging."""

    column_name: str
    column_index: int
    sample_values: list[str] = field(default_factory=list)
    suggested_target_field: Optional[str] = None


@dataclass(frozen=True)
class StagedImportJob:
    """Spreadsheet rows parsed and held server-side until imported."""

    job_id: str
    file_name: str
    sheet_name: str
    program_id: int
    shop_id: Optional[int]
    import_kind: ImportKind
    detected_columns: list[DetectedColumn]
    rows: list[dict[str, Any]]
    status: JobState
    created_at: datetime
    expires_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)
    consumed_at: Optional[datetime] = None
    result: Optional[dict[str, Any]] = None
    # Spreadsheet data row position of each entry of ``rows``
    row_numbers: list[int] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    def numbered_rows(self) -> list[tuple[int, dict[str, Any]]]:
        """Pair each row with its spreadsheet position, header row excluded."""
        if len(self.row_numbers) == len(self.rows):
            return list(zip(self.row_numbers, self.rows))
        return list(enumerate(self.rows, start=1))

    @property
    def column_names(self) -> list[str]:
        return [col.column_name for col in self.detected_columns]

    def sample_rows(self, limit: int = 5) -> list[dict[str, Any]]:
        """Return the first ``limit`` staged rows."""
        return self.rows[:limit]

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class MappingField:
    """An importable target field from the static catalog."""

    field_name: str
    display_name: str
    is_required: bool
    description: str
    data_type: str = "string"
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ColumnMapping:
    """Assignment of a spreadsheet column to a target field."""

    source_column: str
    target_field: str
    is_required: bool = False


@dataclass(frozen=True)
class ImportResult:
    """Outcome of applying mappings to every staged row.

    ``success`` means the batch was accepted for processing; per-row
    failures are counted in ``failed_records`` and described in ``errors``.
    """

    success: bool
    processed_records: int
    successful_records: int
    failed_records: int
    errors: list[str]
    message: str
    created_records: int = 0
    updated_records: int = 0
    account_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class AccountMatching:
    """A match candidate between a shop account and a master account."""

    id: int
    shop_account_id: int
    master_account_id: int
    confidence: float
    method: MatchingMethod
    status: MatchingStatus
    details: Optional[str]
    created_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None


@dataclass(frozen=True)
class AutoMatchResult:
    total_processed: int
    created: int
    updated: int
    confirmed: int
    high_confidence_matches: int
    average_confidence: float
    message: str


@dataclass(frozen=True)
class ReconciliationStats:
    """Match-state counts and rates for a (shop, program) pair."""

    total_shop_accounts: int
    matched_accounts: int
    potential_matches: int
    unmatched_accounts: int
    high_confidence_matches: int
    match_rate: float
    average_confidence: float


@dataclass(frozen=True)
class SheetInfo:
    name: str
    row_count: int
    column_count: int


@dataclass(frozen=True)
class SheetPreview:
    sheet_name: str
    headers: list[str]
    rows: list[list[str]]
    total_rows: int


@dataclass(frozen=True)
class JobStatus:
    """Progress snapshot of a staged import job, queried by job ID."""

    job_id: str
    status: JobState
    total_records: int
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def percentage_complete(self) -> float:
        if self.total_records == 0:
            return 100.0 if self.status.is_terminal else 0.0
        return round(100.0 * self.processed_records / self.total_records, 2)
