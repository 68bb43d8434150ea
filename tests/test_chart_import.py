"""Tests for importing staged chart of accounts rows."""

import threading

import pytest

from coarecon.domain.chart_import import project_row
from coarecon.domain.entities import ColumnMapping, ImportKind, JobState
from coarecon.domain.errors import (
    IncompleteMappingError,
    NotFoundError,
    ScopeMismatchError,
    ValidationError,
)
from coarecon.domain.mapping import ColumnMappingSet
from tests.conftest import PROGRAM_ID, SHOP_ID, make_workbook

CHART_MAPPINGS = [
    ColumnMapping("Account Number", "accountNumber"),
    ColumnMapping("Acct Name", "accountName"),
    ColumnMapping("Description", "description"),
    ColumnMapping("Type", "accountType"),
]


def _ten_row_workbook():
    rows = [["Account Number", "Account Name"]]
    for n in range(1, 11):
        if n == 7:
            rows.append([None, "Orphan Name"])
        else:
            rows.append([str(1000 + n), f"Account {n}"])
    return make_workbook({"Chart": rows})


def test_import_creates_shop_accounts(import_executor, staging_service, account_service, chart_workbook):
    """Test importing a staged shop chart."""
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID, SHOP_ID)

    result = import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, CHART_MAPPINGS)

    assert result.success is True
    assert result.processed_records == 3
    assert result.successful_records == 3
    assert result.failed_records == 0
    assert result.created_records == 3
    assert result.errors == []

    accounts = account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)
    assert [a.account_number for a in accounts] == ["4000", "5000", "6100"]
    parts = accounts[0]
    assert parts.account_name == "Parts Sales"
    assert parts.description == "Counter and wholesale"
    assert parts.account_type == "Revenue"
    assert parts.is_master_account is False
    assert accounts[1].description is None


def test_import_collects_row_errors(import_executor, staging_service, account_service):
    """A row without an account number fails on its own."""
    job = staging_service.stage(_ten_row_workbook(), "chart.xlsx", "Chart", PROGRAM_ID, SHOP_ID)
    mappings = [
        ColumnMapping("Account Number", "accountNumber"),
        ColumnMapping("Account Name", "accountName"),
    ]

    result = import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, mappings)

    assert result.processed_records == 10
    assert result.successful_records == 9
    assert result.failed_records == 1
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Row 7:")
    assert len(account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)) == 9


def test_import_updates_existing_accounts(import_executor, staging_service, account_service, shop_account):
    """Test an account number already in scope is updated, not duplicated."""
    existing = shop_account("4000", "Old Parts Name")
    job = staging_service.stage(
        make_workbook({"S": [["Number", "Name"], ["4000", "Parts Sales"], ["4100", "Tires"]]}),
        "chart.xlsx",
        "S",
        PROGRAM_ID,
        SHOP_ID,
    )

    result = import_executor.apply_mappings_and_import(
        job.job_id,
        PROGRAM_ID,
        [ColumnMapping("Number", "accountNumber"), ColumnMapping("Name", "accountName")],
    )

    assert result.created_records == 1
    assert result.updated_records == 1
    assert existing in result.account_ids
    assert account_service.get_account(existing).account_name == "Parts Sales"


def test_import_master_chart(import_executor, staging_service, account_service, chart_workbook):
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID)

    import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, CHART_MAPPINGS)

    masters = account_service.list_accounts(PROGRAM_ID, master=True)
    assert len(masters) == 3
    assert all(a.is_master_account and a.shop_id is None for a in masters)


def test_import_typed_fields(import_executor, staging_service, account_service):
    data = make_workbook(
        {
            "S": [
                ["Number", "Name", "Seq", "Active"],
                ["4000", "Parts", 10, "yes"],
                ["4100", "Tires", "ten", "no"],
                ["4200", "Batteries", 30, "no"],
            ]
        }
    )
    job = staging_service.stage(data, "chart.xlsx", "S", PROGRAM_ID, SHOP_ID)

    result = import_executor.apply_mappings_and_import(
        job.job_id,
        PROGRAM_ID,
        [
            ColumnMapping("Number", "accountNumber"),
            ColumnMapping("Name", "accountName"),
            ColumnMapping("Seq", "sequenceNumber"),
            ColumnMapping("Active", "isActive"),
        ],
    )

    assert result.failed_records == 1
    assert result.errors == ["Row 2: Invalid value 'ten' for sequenceNumber"]
    accounts = {a.account_number: a for a in account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)}
    assert accounts["4000"].sequence_number == 10
    assert accounts["4000"].is_active is True
    assert accounts["4200"].is_active is False


def test_job_is_consumed_after_import(import_executor, staging_service, chart_workbook):
    """Test a job can be imported only once."""
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID, SHOP_ID)
    import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, CHART_MAPPINGS)

    with pytest.raises(NotFoundError):
        import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, CHART_MAPPINGS)
    with pytest.raises(NotFoundError):
        staging_service.get_job(job.job_id)


def test_invalid_mappings_leave_job_staged(import_executor, staging_service, chart_workbook):
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID, SHOP_ID)

    with pytest.raises(IncompleteMappingError):
        import_executor.apply_mappings_and_import(
            job.job_id, PROGRAM_ID, [ColumnMapping("Account Number", "accountNumber")]
        )

    assert staging_service.get_job(job.job_id).status is JobState.STAGED


def test_import_program_mismatch(import_executor, staging_service, chart_workbook):
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID, SHOP_ID)

    with pytest.raises(ScopeMismatchError):
        import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID + 1, CHART_MAPPINGS)


def test_general_ledger_job_rejected(import_executor, staging_service):
    data = make_workbook({"GL": [["GL Account", "Balance"], ["4000", 10]]})
    job = staging_service.stage(
        data, "gl.xlsx", "GL", PROGRAM_ID, SHOP_ID, import_kind=ImportKind.GENERAL_LEDGER
    )

    with pytest.raises(ValidationError):
        import_executor.apply_mappings_and_import(
            job.job_id,
            PROGRAM_ID,
            [ColumnMapping("GL Account", "accountNumber"), ColumnMapping("Balance", "amount")],
        )


def test_job_status_lifecycle(import_executor, staging_service):
    """Test job status before and after import."""
    job = staging_service.stage(_ten_row_workbook(), "chart.xlsx", "Chart", PROGRAM_ID, SHOP_ID)

    status = import_executor.get_job_status(job.job_id)
    assert status.status is JobState.STAGED
    assert status.total_records == 10
    assert status.percentage_complete == 0.0

    import_executor.apply_mappings_and_import(
        job.job_id,
        PROGRAM_ID,
        [
            ColumnMapping("Account Number", "accountNumber"),
            ColumnMapping("Account Name", "accountName"),
        ],
    )

    status = import_executor.get_job_status(job.job_id)
    assert status.status is JobState.COMPLETED_WITH_ERRORS
    assert status.processed_records == 10
    assert status.successful_records == 9
    assert status.failed_records == 1
    assert status.percentage_complete == 100.0
    assert status.errors[0].startswith("Row 7:")


def test_job_status_unknown(import_executor):
    with pytest.raises(NotFoundError):
        import_executor.get_job_status("missing")


def test_project_row_skips_blank_optional_values():
    mappings = ColumnMappingSet(
        [
            ColumnMapping("N", "accountNumber"),
            ColumnMapping("A", "accountName"),
            ColumnMapping("D", "description"),
        ]
    )

    outcome = project_row(3, {"N": " 4000 ", "A": "Parts   Sales", "D": ""}, mappings)

    assert outcome.error is None
    assert outcome.values == {"account_number": "4000", "account_name": "Parts Sales"}

    outcome = project_row(4, {"N": "4000", "A": "  ", "D": "x"}, mappings)
    assert outcome.error == "Row 4: Missing account name"


def test_duplicate_numbers_in_file_update_earlier_row(import_executor, staging_service, account_service):
    """The later row with the same account number updates the earlier one."""
    data = make_workbook(
        {"S": [["Number", "Name"], ["4000", "Parts"], ["4000", "Parts Sales"]]}
    )
    job = staging_service.stage(data, "chart.xlsx", "S", PROGRAM_ID, SHOP_ID)

    result = import_executor.apply_mappings_and_import(
        job.job_id,
        PROGRAM_ID,
        [ColumnMapping("Number", "accountNumber"), ColumnMapping("Name", "accountName")],
    )

    assert result.successful_records == 2
    assert (result.created_records, result.updated_records) == (1, 1)
    [account] = account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)
    assert account.account_name == "Parts Sales"


def test_concurrent_imports_claim_job_once(
    import_executor, staging_service, account_service, chart_workbook, monkeypatch
):
    """Two imports of the same job that both pass validation: only one runs."""
    job = staging_service.stage(chart_workbook, "chart.xlsx", "Accounts", PROGRAM_ID, SHOP_ID)
    barrier = threading.Barrier(2, timeout=10)
    validate = import_executor.resolver.validate

    def validate_together(staged_job, mappings):
        resolved = validate(staged_job, mappings)
        barrier.wait()
        return resolved

    monkeypatch.setattr(import_executor.resolver, "validate", validate_together)
    results = []
    errors = []

    def run_import():
        try:
            results.append(
                import_executor.apply_mappings_and_import(job.job_id, PROGRAM_ID, CHART_MAPPINGS)
            )
        except NotFoundError as e:
            errors.append(e)

    threads = [threading.Thread(target=run_import) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 1
    assert len(errors) == 1
    assert results[0].created_records == 3
    assert len(account_service.list_accounts(PROGRAM_ID, shop_id=SHOP_ID)) == 3
    assert import_executor.get_job_status(job.job_id).status is JobState.COMPLETED


def test_row_errors_use_sheet_row_numbers(import_executor, staging_service):
    """Row numbers in errors count blank rows the reader skipped."""
    data = make_workbook(
        {
            "S": [
                ["Number", "Name"],
                ["1000", "Cash"],
                [None, None],
                ["2000", "Receivables"],
                ["3000", None],
            ]
        }
    )
    job = staging_service.stage(data, "chart.xlsx", "S", PROGRAM_ID, SHOP_ID)
    assert job.row_numbers == [1, 3, 4]

    result = import_executor.apply_mappings_and_import(
        job.job_id,
        PROGRAM_ID,
        [ColumnMapping("Number", "accountNumber"), ColumnMapping("Name", "accountName")],
    )

    assert result.processed_records == 3
    assert result.errors == ["Row 4: Missing account name"]
