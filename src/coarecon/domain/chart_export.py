"""Chart of accounts workbooks: exports and the blank import template."""

import io
import logging
from typing import Iterable

import pandas as pd

from coarecon.domain.entities import ChartOfAccount
from coarecon.domain.mapping_fields import CHART_OF_ACCOUNT_ATTRIBUTES, CHART_OF_ACCOUNT_FIELDS

logger = logging.getLogger(__name__)

CHART_SHEET_NAME = "Chart of Accounts"
FIELDS_SHEET_NAME = "Fields"


def chart_headers() -> list[str]:
    """Column headers in catalog order; staging suggests a field for each."""
    return [f.display_name for f in CHART_OF_ACCOUNT_FIELDS]


def _account_record(account: ChartOfAccount) -> dict:
    record = {}
    for mapping_field in CHART_OF_ACCOUNT_FIELDS:
        value = getattr(account, CHART_OF_ACCOUNT_ATTRIBUTES[mapping_field.field_name])
        if isinstance(value, bool):
            value = "Yes" if value else "No"
        record[mapping_field.display_name] = value
    return record


def _write_workbook(sheets: dict[str, pd.DataFrame]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()


def accounts_to_workbook(accounts: Iterable[ChartOfAccount]) -> bytes:
    """Write accounts to an .xlsx workbook with one row per account.

    The layout matches the import template, so an export can be staged and
    imported into another scope unchanged.
    """
    records = [_account_record(account) for account in accounts]
    # object dtype: integer columns with blanks stay integers
    frame = pd.DataFrame(records, columns=chart_headers(), dtype=object)
    logger.debug("Exporting %d account(s)", len(records))
    return _write_workbook({CHART_SHEET_NAME: frame})


def import_template() -> bytes:
    """Build the blank chart of accounts import workbook.

    The first sheet holds only the header row; the second describes each
    column.
    """
    fields = pd.DataFrame(
        [
            {
                "Column": f.display_name,
                "Required": "Yes" if f.is_required else "No",
                "Type": f.data_type,
                "Description": f.description,
            }
            for f in CHART_OF_ACCOUNT_FIELDS
        ],
        columns=["Column", "Required", "Type", "Description"],
    )
    return _write_workbook(
        {
            CHART_SHEET_NAME: pd.DataFrame(columns=chart_headers()),
            FIELDS_SHEET_NAME: fields,
        }
    )
