"""Static catalogs of importable target fields."""

from typing import Optional

from coarecon.domain.entities import ImportKind, MappingField
from coarecon.utils.text import normalize_key

CHART_OF_ACCOUNT_FIELDS: tuple[MappingField, ...] = (
    MappingField(
        "accountNumber",
        "Account Number",
        True,
        "Unique account number within the chart",
        aliases=("acct no", "account no", "account #", "acct #", "account code", "gl account", "number"),
    ),
    MappingField(
        "accountName",
        "Account Name",
        True,
        "Display name of the account",
        aliases=("acct name", "account title", "name", "title"),
    ),
    MappingField(
        "description",
        "Description",
        False,
        "Free-text description of the account",
        aliases=("account description", "desc", "notes"),
    ),
    MappingField(
        "accountType",
        "Account Type",
        False,
        "Account classification such as Asset, Liability, Revenue",
        aliases=("type", "category", "class"),
    ),
    MappingField(
        "drCrDefault",
        "Dr/Cr Default",
        False,
        "Normal balance side, Debit or Credit",
        aliases=("normal balance", "dr cr", "debit credit", "balance type"),
    ),
    MappingField("lineType", "Line Type", False, "Report line type (detail, header, total)"),
    MappingField(
        "sequenceNumber",
        "Sequence Number",
        False,
        "Display order of the account in reports",
        data_type="integer",
        aliases=("sequence", "seq", "sort order", "coa sequence number"),
    ),
    MappingField(
        "indentLevel",
        "Indent Level",
        False,
        "Indentation depth in hierarchical reports",
        data_type="integer",
        aliases=("indent", "level"),
    ),
    MappingField(
        "parentAccount",
        "Parent Account",
        False,
        "Account number of the parent account",
        aliases=("parent", "parent coa", "parent account number"),
    ),
    MappingField(
        "isActive",
        "Active",
        False,
        "Whether the account is active (yes/no, true/false, 1/0)",
        data_type="boolean",
        aliases=("active", "status", "enabled"),
    ),
)

# Catalog field name -> ChartOfAccount attribute
CHART_OF_ACCOUNT_ATTRIBUTES = {
    "accountNumber": "account_number",
    "accountName": "account_name",
    "description": "description",
    "accountType": "account_type",
    "drCrDefault": "dr_cr_default",
    "lineType": "line_type",
    "sequenceNumber": "sequence_number",
    "indentLevel": "indent_level",
    "parentAccount": "parent_account",
    "isActive": "is_active",
}

GENERAL_LEDGER_FIELDS: tuple[MappingField, ...] = (
    MappingField(
        "accountNumber",
        "Account Number",
        True,
        "Shop account number the entry is posted to",
        aliases=("acct no", "account no", "account #", "account code", "gl account"),
    ),
    MappingField(
        "amount",
        "Amount",
        True,
        "Signed entry amount",
        data_type="decimal",
        aliases=("balance", "net amount", "value"),
    ),
    MappingField("accountName", "Account Name", False, "Account name as printed on the ledger"),
    MappingField(
        "description",
        "Description",
        False,
        "Entry description",
        aliases=("memo", "narration"),
    ),
    MappingField(
        "debitAmount", "Debit Amount", False, "Debit side amount", data_type="decimal", aliases=("debit", "dr")
    ),
    MappingField(
        "creditAmount", "Credit Amount", False, "Credit side amount", data_type="decimal", aliases=("credit", "cr")
    ),
    MappingField(
        "transactionDate",
        "Transaction Date",
        False,
        "Posting date of the entry",
        data_type="date",
        aliases=("date", "posting date"),
    ),
    MappingField(
        "referenceNumber",
        "Reference Number",
        False,
        "Source document reference",
        aliases=("reference", "ref", "ref no", "document number"),
    ),
)

_CATALOGS = {
    ImportKind.CHART_OF_ACCOUNTS: CHART_OF_ACCOUNT_FIELDS,
    ImportKind.GENERAL_LEDGER: GENERAL_LEDGER_FIELDS,
}


def get_catalog(kind: ImportKind) -> tuple[MappingField, ...]:
    """Return the target field catalog for an import kind."""
    return _CATALOGS[ImportKind(kind)]


def get_field(kind: ImportKind, field_name: str) -> Optional[MappingField]:
    for mapping_field in get_catalog(kind):
        if mapping_field.field_name == field_name:
            return mapping_field
    return None


def suggest_target_field(column_name: str, kind: ImportKind) -> Optional[str]:
    """Guess the target field for a column header.

    Compares the normalized header against each field's name, display name
    and aliases; the first catalog field that matches wins.
    """
    key = normalize_key(column_name)
    if not key:
        return None
    for mapping_field in get_catalog(kind):
        candidates = (mapping_field.field_name, mapping_field.display_name) + mapping_field.aliases
        if any(normalize_key(candidate) == key for candidate in candidates):
            return mapping_field.field_name
    return None
