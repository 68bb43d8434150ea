"""Spreadsheet analysis: sheet enumeration, previews and table extraction."""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

import pandas as pd

from coarecon.domain.entities import SheetInfo, SheetPreview
from coarecon.domain.errors import (
    InvalidSheetError,
    UnreadableFileError,
    ValidationError,
    sheet_not_found,
)
from coarecon.utils.text import cell_to_str

logger = logging.getLogger(__name__)

EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}
CSV_EXTENSIONS = {".csv"}
CSV_DELIMITERS = ",;\t|"
CSV_SNIFF_BYTES = 4096
DEFAULT_PREVIEW_ROWS = 5


@dataclass(frozen=True)
class SheetTable:
    """Header row and data rows of one sheet, cells coerced to strings."""

    name: str
    headers: list[str]
    rows: list[list[str]]
    # Position of each row below the header, counting skipped blank rows
    row_numbers: list[int] = field(default_factory=list)


def _unique_headers(raw_headers: list[Any]) -> list[str]:
    """Name blank headers after their position and suffix duplicates."""
    headers: list[str] = []
    seen: dict[str, int] = {}
    for index, raw in enumerate(raw_headers):
        name = cell_to_str(raw) or f"Column{index + 1}"
        count = seen.get(name.lower(), 0) + 1
        seen[name.lower()] = count
        headers.append(name if count == 1 else f"{name}_{count}")
    return headers


def _sniff_delimiter(data: bytes) -> str:
    """Pick the CSV delimiter among the common ones, comma when undecided."""
    sample = data[:CSV_SNIFF_BYTES].decode("utf-8-sig", errors="replace")
    if len(data) > CSV_SNIFF_BYTES and "\n" in sample:
        sample = sample[: sample.rindex("\n")]
    try:
        return csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _frame_to_table(name: str, frame: pd.DataFrame) -> SheetTable:
    frame = frame.dropna(how="all").dropna(axis=1, how="all")
    if frame.empty:
        return SheetTable(name=name, headers=[], rows=[])
    values = frame.values.tolist()
    headers = _unique_headers(values[0])
    rows = [[cell_to_str(cell) for cell in row] for row in values[1:]]
    # Frames are read headerless, so the index is the sheet's own row position
    positions = list(frame.index)
    row_numbers = [int(position - positions[0]) for position in positions[1:]]
    return SheetTable(name=name, headers=headers, rows=rows, row_numbers=row_numbers)


class SpreadsheetAnalyzer:
    """Reads workbook bytes without side effects."""

    def _read_frames(self, data: bytes, file_name: str) -> dict[str, pd.DataFrame]:
        """Parse every sheet of the workbook, headerless and untyped.

        Raises:
            UnreadableFileError: If the extension is unsupported or parsing fails
        """
        suffix = PurePath(file_name).suffix.lower()
        if not data:
            raise UnreadableFileError(f"File '{file_name}' is empty")

        try:
            if suffix in CSV_EXTENSIONS:
                frame = pd.read_csv(
                    io.BytesIO(data),
                    header=None,
                    dtype=object,
                    sep=_sniff_delimiter(data),
                    encoding="utf-8-sig",
                    skip_blank_lines=False,
                )
                return {PurePath(file_name).stem: frame}
            if suffix in EXCEL_ENGINES:
                return pd.read_excel(
                    io.BytesIO(data),
                    sheet_name=None,
                    header=None,
                    dtype=object,
                    engine=EXCEL_ENGINES[suffix],
                )
        except pd.errors.EmptyDataError:
            return {PurePath(file_name).stem: pd.DataFrame()}
        except Exception as e:
            logger.debug("Failed to parse %s: %s", file_name, e)
            raise UnreadableFileError(f"Could not read '{file_name}' as a spreadsheet: {e}") from e

        raise UnreadableFileError(
            f"Unsupported file type '{suffix or file_name}'. Expected .xlsx, .xls or .csv"
        )

    def read_tables(self, data: bytes, file_name: str) -> list[SheetTable]:
        """Extract header and rows of every sheet, in workbook order."""
        frames = self._read_frames(data, file_name)
        return [_frame_to_table(name, frame) for name, frame in frames.items()]

    def read_sheet(self, data: bytes, file_name: str, sheet_name: str) -> SheetTable:
        """Extract header and rows of one sheet.

        Raises:
            InvalidSheetError: If the workbook has no sheet with that name
        """
        tables = self.read_tables(data, file_name)
        for table in tables:
            if table.name == sheet_name:
                return table
        raise InvalidSheetError(sheet_not_found(sheet_name, [t.name for t in tables]))

    def analyze(self, data: bytes, file_name: str) -> list[SheetInfo]:
        """List sheets with their data row and column counts.

        The header row is not counted in ``row_count``.
        """
        sheets = [
            SheetInfo(name=t.name, row_count=len(t.rows), column_count=len(t.headers))
            for t in self.read_tables(data, file_name)
        ]
        logger.debug("Analyzed %s: %d sheet(s)", file_name, len(sheets))
        return sheets

    def preview(
        self, data: bytes, file_name: str, sheet_name: str, limit: int = DEFAULT_PREVIEW_ROWS
    ) -> SheetPreview:
        """Return headers plus the first ``limit`` data rows of a sheet."""
        if limit < 0:
            raise ValidationError("Preview row limit must not be negative")
        table = self.read_sheet(data, file_name, sheet_name)
        return SheetPreview(
            sheet_name=table.name,
            headers=table.headers,
            rows=table.rows[:limit],
            total_rows=len(table.rows),
        )
