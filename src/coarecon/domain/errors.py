"""Shared domain error messages and error types."""

from typing import Iterable


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity, job or sheet does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class UnreadableFileError(ValidationError):
    """Uploaded bytes could not be parsed as a spreadsheet."""


class InvalidSheetError(ValidationError):
    """Requested sheet is not present in the workbook."""


class EmptyDataError(ValidationError):
    """Sheet has a header row but no data rows."""


class UnknownColumnError(ValidationError):
    """A mapping references a column that was not detected while staging."""


class UnknownFieldError(ValidationError):
    """A mapping targets a field outside the mapping catalog."""


class DuplicateMappingError(ValidationError):
    """A target field was mapped more than once."""


class IncompleteMappingError(ValidationError):
    """One or more required target fields are not mapped."""

    def __init__(self, missing: Iterable[str]):
        self.missing = sorted(missing)
        super().__init__(incomplete_mapping(self.missing))


class InvalidConfidenceError(ValidationError):
    """Confidence value outside the closed interval [0, 1]."""


class ScopeMismatchError(ValidationError):
    """Shop and master accounts do not belong to the same program."""


class AlreadyConfirmedError(ConflictError):
    """Shop account already holds a Confirmed match."""

    def __init__(self, shop_account_id: int, matching_id: int):
        self.shop_account_id = shop_account_id
        self.matching_id = matching_id
        super().__init__(already_confirmed(shop_account_id, matching_id))


def account_not_found(account_id: int) -> str:
    """Return message for missing chart of account entry."""
    return f"Account {account_id} not found"


def matching_not_found(matching_id: int) -> str:
    """Return message for missing account matching."""
    return f"Matching {matching_id} not found"


def job_not_found(job_id: str) -> str:
    """Return message for unknown, consumed or expired staged jobs."""
    return f"Staged import job '{job_id}' not found or expired"


def sheet_not_found(sheet_name: str, available: Iterable[str]) -> str:
    """Return message for a sheet missing from a workbook."""
    return f"Sheet '{sheet_name}' not found. Available sheets: {', '.join(available)}"


def incomplete_mapping(missing: Iterable[str]) -> str:
    """Return message listing required fields without a mapping."""
    return f"Missing mappings for required fields: {', '.join(missing)}"


def already_confirmed(shop_account_id: int, matching_id: int) -> str:
    """Return message when the exclusivity of a Confirmed match would be broken."""
    return (
        f"Account {shop_account_id} already has a confirmed match (matching {matching_id}). "
        "Reset it to pending first."
    )


def invalid_confidence(value: float) -> str:
    """Return message for confidence values outside [0, 1]."""
    return f"Confidence must be between 0 and 1, got {value}"


def duplicate_account_number(account_number: str, program_id: int, shop_id: int | None) -> str:
    """Return message for a duplicate account number within its scope."""
    scope = f"shop {shop_id}" if shop_id is not None else "master chart"
    return (
        f"Account number '{account_number}' already exists in {scope} of program {program_id}"
    )
