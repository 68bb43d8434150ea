"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from coarecon.domain.entities import (
    AccountMatching,
    ChartOfAccount,
    DetectedColumn,
    JobState,
    MatchingStatus,
    StagedImportJob,
)


class Database(ABC):
    """Abstract entity store consumed by the reconciliation services."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Chart of account operations
    @abstractmethod
    def create_chart_of_account(
        self,
        program_id: int,
        account_number: str,
        account_name: str,
        shop_id: Optional[int] = None,
        **fields: Any,
    ) -> int:
        """Create a chart of account entry. Returns its ID.

        A missing shop_id creates a master account. Extra keyword fields are
        the optional descriptive columns (description, account_type, ...).
        """
        pass

    @abstractmethod
    def get_chart_of_account(self, account_id: int) -> Optional[ChartOfAccount]:
        """Get chart of account entry by ID."""
        pass

    @abstractmethod
    def find_chart_of_account(
        self, program_id: int, shop_id: Optional[int], account_number: str
    ) -> Optional[ChartOfAccount]:
        """Find an account by number within a program/shop scope."""
        pass

    @abstractmethod
    def list_chart_of_accounts(
        self,
        program_id: Optional[int] = None,
        shop_id: Optional[int] = None,
        is_master: Optional[bool] = None,
        active_only: bool = False,
    ) -> list[ChartOfAccount]:
        """List accounts ordered by account number, with optional filters."""
        pass

    @abstractmethod
    def update_chart_of_account(self, account_id: int, **fields: Any) -> None:
        """Update descriptive fields of an account."""
        pass

    # Staged import job operations
    @abstractmethod
    def create_staged_job(
        self,
        job_id: str,
        file_name: str,
        sheet_name: str,
        program_id: int,
        shop_id: Optional[int],
        import_kind: str,
        detected_columns: list[DetectedColumn],
        rows: list[dict[str, Any]],
        metadata: dict[str, Any],
        expires_at: datetime,
        row_numbers: Optional[list[int]] = None,
    ) -> None:
        """Persist a staged import job.

        ``row_numbers`` holds the spreadsheet position of each staged row.
        """
        pass

    @abstractmethod
    def get_staged_job(self, job_id: str) -> Optional[StagedImportJob]:
        """Get staged job by ID, regardless of its state."""
        pass

    @abstractmethod
    def claim_staged_job(self, job_id: str, now: datetime) -> StagedImportJob:
        """Move a Staged, unconsumed and unexpired job to Processing.

        The check and the state change happen as one step, so a job is
        claimed at most once.

        Raises:
            NotFoundError: If the job is unknown, already claimed, consumed or expired
        """
        pass

    @abstractmethod
    def update_staged_job(
        self,
        job_id: str,
        status: JobState,
        result: Optional[dict[str, Any]] = None,
        consumed_at: Optional[datetime] = None,
    ) -> None:
        """Record a staged job state change."""
        pass

    @abstractmethod
    def delete_staged_jobs_expired_before(self, now: datetime) -> int:
        """Delete unconsumed jobs whose expiry has passed. Returns count."""
        pass

    # Account matching operations
    @abstractmethod
    def create_account_matching(
        self,
        shop_account_id: int,
        master_account_id: int,
        confidence: float,
        method: str,
        status: str,
        details: Optional[str] = None,
        reviewed_by: Optional[str] = None,
        reviewed_at: Optional[datetime] = None,
    ) -> int:
        """Create an account matching. Returns matching ID."""
        pass

    @abstractmethod
    def get_account_matching(self, matching_id: int) -> Optional[AccountMatching]:
        """Get account matching by ID."""
        pass

    @abstractmethod
    def list_account_matchings(
        self,
        shop_account_ids: Optional[Iterable[int]] = None,
        statuses: Optional[Iterable[MatchingStatus]] = None,
        shop_id: Optional[int] = None,
        program_id: Optional[int] = None,
    ) -> list[AccountMatching]:
        """List matchings with optional filters.

        Args:
            shop_account_ids: Only matchings of these shop accounts
            statuses: Only matchings in one of these states
            shop_id: Only matchings whose shop account belongs to this shop
            program_id: Only matchings whose shop account belongs to this program
        """
        pass

    @abstractmethod
    def update_account_matching(self, matching_id: int, **fields: Any) -> None:
        """Update status, confidence, details or review fields of a matching."""
        pass
