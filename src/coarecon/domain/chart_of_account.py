"""Chart of account domain service."""

from typing import Any, Optional

from coarecon.database.base import Database
from coarecon.domain.chart_export import accounts_to_workbook
from coarecon.domain.entities import ChartOfAccount
from coarecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_account_number,
)
from coarecon.utils.text import normalize_whitespace


class ChartOfAccountService:
    """Service for managing master and shop chart of account entries."""

    def __init__(self, db: Database):
        """Initialize chart of account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        program_id: int,
        account_number: str,
        account_name: str,
        shop_id: Optional[int] = None,
        **fields: Any,
    ) -> int:
        """Create an account.

        Args:
            program_id: Program the account belongs to
            account_number: Account number, unique within its scope
            account_name: Account name
            shop_id: Owning shop; None creates a master account
            **fields: Optional descriptive fields (description, account_type, ...)

        Returns:
            Account ID

        Raises:
            ValidationError: If number or name is blank
            ConflictError: If the number already exists in the scope
        """
        number = normalize_whitespace(account_number)
        name = normalize_whitespace(account_name)
        if number is None:
            raise ValidationError("Account number is required")
        if name is None:
            raise ValidationError("Account name is required")

        if self.db.find_chart_of_account(program_id, shop_id, number) is not None:
            raise ConflictError(duplicate_account_number(number, program_id, shop_id))

        return self.db.create_chart_of_account(
            program_id=program_id,
            account_number=number,
            account_name=name,
            shop_id=shop_id,
            **fields,
        )

    def get_account(self, account_id: int) -> Optional[ChartOfAccount]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_chart_of_account(account_id)

    def require_account(self, account_id: int) -> ChartOfAccount:
        """Get account by ID or raise NotFoundError."""
        account = self.db.get_chart_of_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_account(
        self, program_id: int, shop_id: Optional[int], account_number: str
    ) -> Optional[ChartOfAccount]:
        """Find an account by number within a program/shop scope."""
        return self.db.find_chart_of_account(program_id, shop_id, account_number)

    def list_accounts(
        self,
        program_id: Optional[int] = None,
        shop_id: Optional[int] = None,
        master: Optional[bool] = None,
        active_only: bool = False,
    ) -> list[ChartOfAccount]:
        """List accounts ordered by account number.

        Args:
            program_id: Optional program filter
            shop_id: Optional shop filter
            master: True for master accounts only, False for shop accounts only
            active_only: Exclude inactive accounts
        """
        return self.db.list_chart_of_accounts(
            program_id=program_id, shop_id=shop_id, is_master=master, active_only=active_only
        )

    def update_account(self, account_id: int, **fields: Any) -> None:
        """Update descriptive fields of an account.

        Raises:
            NotFoundError: If the account does not exist
            ConflictError: If a new account number collides within the scope
        """
        account = self.require_account(account_id)
        if "account_number" in fields:
            number = normalize_whitespace(fields["account_number"])
            if number is None:
                raise ValidationError("Account number is required")
            existing = self.db.find_chart_of_account(account.program_id, account.shop_id, number)
            if existing is not None and existing.id != account_id:
                raise ConflictError(
                    duplicate_account_number(number, account.program_id, account.shop_id)
                )
            fields["account_number"] = number
        if "account_name" in fields:
            name = normalize_whitespace(fields["account_name"])
            if name is None:
                raise ValidationError("Account name is required")
            fields["account_name"] = name
        self.db.update_chart_of_account(account_id, **fields)

    def deactivate_account(self, account_id: int) -> None:
        """Mark an account inactive; it is then skipped by matching."""
        self.require_account(account_id)
        self.db.update_chart_of_account(account_id, is_active=False)

    def export_chart(
        self, program_id: int, shop_id: Optional[int] = None, active_only: bool = False
    ) -> bytes:
        """Export one chart as an .xlsx workbook in the import template layout.

        Args:
            program_id: Program of the chart
            shop_id: Shop whose chart is exported; None exports the master chart
            active_only: Leave inactive accounts out

        Returns:
            Workbook bytes
        """
        accounts = self.db.list_chart_of_accounts(
            program_id=program_id,
            shop_id=shop_id,
            is_master=shop_id is None,
            active_only=active_only,
        )
        return accounts_to_workbook(accounts)
