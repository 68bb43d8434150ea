"""Tests for chart of accounts exports and the import template."""

from coarecon.domain.chart_export import CHART_SHEET_NAME, chart_headers, import_template
from coarecon.domain.mapping import suggested_mappings
from coarecon.domain.spreadsheet import SpreadsheetAnalyzer
from tests.conftest import PROGRAM_ID, SHOP_ID


def test_export_round_trips_through_import(
    account_service, staging_service, import_executor
):
    """An exported master chart imports into a shop unchanged."""
    account_service.create_account(
        PROGRAM_ID, "4000", "Parts Sales",
        description="Counter and wholesale", account_type="Revenue", sequence_number=10,
    )
    account_service.create_account(
        PROGRAM_ID, "6100", "Supplies Expense", dr_cr_default="Debit", indent_level=2,
    )
    retired = account_service.create_account(PROGRAM_ID, "6900", "Retired Account")
    account_service.deactivate_account(retired)

    data = account_service.export_chart(PROGRAM_ID)
    job = staging_service.stage(data, "master.xlsx", CHART_SHEET_NAME, PROGRAM_ID, SHOP_ID)
    assert all(column.suggested_target_field for column in job.detected_columns)

    result = import_executor.apply_mappings_and_import(
        job.job_id, PROGRAM_ID, suggested_mappings(job)
    )

    assert result.failed_records == 0
    assert result.created_records == 3
    masters = account_service.list_accounts(PROGRAM_ID, master=True)
    shops = account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)
    fields = (
        "account_number", "account_name", "description", "account_type", "dr_cr_default",
        "sequence_number", "indent_level", "is_active",
    )
    for master, shop in zip(masters, shops, strict=True):
        assert [getattr(shop, f) for f in fields] == [getattr(master, f) for f in fields]
    assert shops[-1].is_active is False


def test_export_scope_and_active_filter(account_service, shop_account):
    account_service.create_account(PROGRAM_ID, "4000", "Parts Sales")
    shop_account("S1", "Shop Parts")
    inactive = shop_account("S2", "Old Parts")
    account_service.deactivate_account(inactive)

    table = SpreadsheetAnalyzer().read_sheet(
        account_service.export_chart(PROGRAM_ID, shop_id=SHOP_ID, active_only=True),
        "shop.xlsx",
        CHART_SHEET_NAME,
    )

    assert table.headers == chart_headers()
    assert [row[0] for row in table.rows] == ["S1"]


def test_export_empty_chart_has_headers_only(account_service):
    table = SpreadsheetAnalyzer().read_sheet(
        account_service.export_chart(PROGRAM_ID), "master.xlsx", CHART_SHEET_NAME
    )

    assert table.headers == chart_headers()
    assert table.rows == []


def test_import_template_layout():
    sheets = {s.name: s for s in SpreadsheetAnalyzer().analyze(import_template(), "template.xlsx")}

    assert list(sheets) == [CHART_SHEET_NAME, "Fields"]
    assert sheets[CHART_SHEET_NAME].row_count == 0
    assert sheets[CHART_SHEET_NAME].column_count == len(chart_headers())
    assert sheets["Fields"].row_count == len(chart_headers())

    fields = SpreadsheetAnalyzer().read_sheet(import_template(), "template.xlsx", "Fields")
    assert fields.rows[0][:2] == ["Account Number", "Yes"]
