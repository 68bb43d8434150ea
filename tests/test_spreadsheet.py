"""Tests for the spreadsheet analyzer."""

import pytest

from coarecon.domain.errors import InvalidSheetError, UnreadableFileError, ValidationError
from coarecon.domain.spreadsheet import SpreadsheetAnalyzer
from tests.conftest import make_workbook


def test_analyze_lists_sheets_with_counts(chart_workbook):
    """Each sheet reports data rows (header excluded) and columns."""
    sheets = SpreadsheetAnalyzer().analyze(chart_workbook, "chart.xlsx")

    assert [s.name for s in sheets] == ["Accounts", "Notes"]
    assert sheets[0].row_count == 3
    assert sheets[0].column_count == 4
    assert sheets[1].row_count == 1
    assert sheets[1].column_count == 1


def test_preview_coerces_cells_to_strings():
    """Numbers, blanks and floats are rendered as display strings."""
    data = make_workbook(
        {"Sheet1": [["Number", "Name", "Rate"], [4000, "Parts", 1.5], [4100, None, 2.0]]}
    )

    preview = SpreadsheetAnalyzer().preview(data, "book.xlsx", "Sheet1")

    assert preview.headers == ["Number", "Name", "Rate"]
    assert preview.rows == [["4000", "Parts", "1.5"], ["4100", "", "2"]]
    assert preview.total_rows == 2


def test_preview_is_bounded():
    """Preview returns at most the requested number of rows."""
    rows = [["Number"]] + [[1000 + i] for i in range(12)]
    data = make_workbook({"Big": rows})

    preview = SpreadsheetAnalyzer().preview(data, "big.xlsx", "Big")
    assert len(preview.rows) == 5
    assert preview.total_rows == 12

    preview = SpreadsheetAnalyzer().preview(data, "big.xlsx", "Big", limit=2)
    assert preview.rows == [["1000"], ["1001"]]


def test_preview_negative_limit_rejected(chart_workbook):
    with pytest.raises(ValidationError):
        SpreadsheetAnalyzer().preview(chart_workbook, "chart.xlsx", "Accounts", limit=-1)


def test_blank_and_duplicate_headers_are_named():
    """Blank headers get positional names, duplicates a numeric suffix."""
    data = make_workbook({"S": [["Name", None, "Name"], ["a", "b", "c"]]})

    table = SpreadsheetAnalyzer().read_sheet(data, "s.xlsx", "S")

    assert table.headers == ["Name", "Column2", "Name_2"]


def test_blank_rows_are_skipped():
    data = make_workbook({"S": [["Number"], [1], [None], [2]]})

    table = SpreadsheetAnalyzer().read_sheet(data, "s.xlsx", "S")

    assert table.rows == [["1"], ["2"]]


def test_csv_is_a_single_sheet_named_after_file():
    """CSV files expose one sheet named after the file stem."""
    data = b"Account Number;Account Name\n4000;Parts Sales\n5000;Labor Income\n"

    sheets = SpreadsheetAnalyzer().analyze(data, "shop_chart.csv")

    assert len(sheets) == 1
    assert sheets[0].name == "shop_chart"
    assert sheets[0].row_count == 2
    assert sheets[0].column_count == 2


def test_unknown_sheet_raises(chart_workbook):
    with pytest.raises(InvalidSheetError) as excinfo:
        SpreadsheetAnalyzer().preview(chart_workbook, "chart.xlsx", "Missing")

    assert "Accounts" in str(excinfo.value)


def test_garbage_bytes_raise_unreadable():
    with pytest.raises(UnreadableFileError):
        SpreadsheetAnalyzer().analyze(b"this is not a workbook", "chart.xlsx")


def test_unsupported_extension_raises():
    with pytest.raises(UnreadableFileError) as excinfo:
        SpreadsheetAnalyzer().analyze(b"%PDF-1.4", "chart.pdf")

    assert "Unsupported file type" in str(excinfo.value)


def test_empty_file_raises():
    with pytest.raises(UnreadableFileError):
        SpreadsheetAnalyzer().analyze(b"", "chart.xlsx")


def test_row_numbers_count_blank_rows():
    """Blank rows are dropped from the table but still counted in positions."""
    data = make_workbook(
        {"S": [["Number", "Name"], [1000, "Cash"], [None, None], [2000, "Receivables"]]}
    )

    table = SpreadsheetAnalyzer().read_sheet(data, "s.xlsx", "S")

    assert table.rows == [["1000", "Cash"], ["2000", "Receivables"]]
    assert table.row_numbers == [1, 3]


def test_csv_single_column():
    data = b"Account Number\n4000\n5000\n"

    table = SpreadsheetAnalyzer().read_sheet(data, "numbers.csv", "numbers")

    assert table.headers == ["Account Number"]
    assert table.rows == [["4000"], ["5000"]]


def test_csv_comma_and_blank_lines():
    data = b"Account Number,Account Name\n4000,Parts Sales\n\n5000,Labor Income\n"

    table = SpreadsheetAnalyzer().read_sheet(data, "chart.csv", "chart")

    assert table.headers == ["Account Number", "Account Name"]
    assert table.rows == [["4000", "Parts Sales"], ["5000", "Labor Income"]]
    assert table.row_numbers == [1, 3]
