from __future__ import annotations

import io
import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any

import pandas as pd

from ..errors import FormatError, MissingHeadersError
from ..models.raw_row import RawRow, cell_text

"""Tabular reader: uploaded bytes -> ordered RawRow list.

- 1 行目をヘッダ行、2 行目以降をデータ行として扱う。
- CSV rows whose field count differs from the header are padded with "" or
  truncated to the header width. The validator, not the parser, decides
  whether such a row is usable.
- Spreadsheets: only the first sheet is read, blank rows are skipped, every
  RawRow carries every header key.
- Header but no data -> zero rows (caller decides whether that is fatal).
"""

__all__ = [
    "TableFormat",
    "ParsedTable",
    "REQUIRED_HEADERS",
    "SUPPORTED_EXTENSIONS",
    "detect_format",
    "parse_table",
    "require_headers",
]

REQUIRED_HEADERS: tuple[str, ...] = ("FirstName", "Phone", "Notes")


class TableFormat(Enum):
    COLUMNAR_TEXT = "csv"
    SPREADSHEET = "xlsx"


SUPPORTED_EXTENSIONS: dict[str, TableFormat] = {
    ".csv": TableFormat.COLUMNAR_TEXT,
    ".xlsx": TableFormat.SPREADSHEET,
}


@dataclass
class ParsedTable:
    columns: list[str]
    rows: list[RawRow] = field(default_factory=list)
    sheet_name: str | None = None  # spreadsheet only


def detect_format(file_name: str) -> TableFormat:
    """Map an uploaded file name to its TableFormat by extension."""
    suffix = PurePath(file_name).suffix.lower()
    try:
        return SUPPORTED_EXTENSIONS[suffix]
    except KeyError:
        allowed = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        raise FormatError(
            f"unsupported file type '{suffix or file_name}' (expected one of: {allowed})"
        ) from None


def parse_table(content: bytes, table_format: TableFormat) -> ParsedTable:
    """Parse raw bytes in the declared format.

    Raises:
        FormatError: stream cannot be decoded, or the header has zero columns
    """
    if table_format is TableFormat.COLUMNAR_TEXT:
        return _read_columnar_text(content)
    if table_format is TableFormat.SPREADSHEET:
        return _read_spreadsheet(content)
    raise FormatError(f"unknown table format: {table_format!r}")


def require_headers(columns: Iterable[str], required: Sequence[str] = REQUIRED_HEADERS) -> None:
    """Check the header once against the required set (exact, case-sensitive).

    Column order does not matter and extra columns are ignored.
    """
    present = set(columns)
    missing = [h for h in required if h not in present]
    if missing:
        raise MissingHeadersError(missing, required)


def _read_columnar_text(content: bytes) -> ParsedTable:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"file is not valid UTF-8 text: {e}") from e

    try:
        header_only = pd.read_csv(io.StringIO(text), nrows=0, dtype=str)
    except pd.errors.EmptyDataError as e:
        raise FormatError("file has no header columns") from e
    except pd.errors.ParserError as e:
        raise FormatError(f"cannot parse CSV header: {e}") from e

    columns = [str(c).strip() for c in header_only.columns]
    width = len(columns)
    if width == 0:
        raise FormatError("file has no header columns")

    try:
        with warnings.catch_warnings():
            # 切り詰めは意図した動作なので "loss of data" 警告は出さない
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,  # "NA" / "null" はそのまま文字列として残す
                skip_blank_lines=True,
                index_col=False,  # 余分な列を index と推測させない
                engine="python",
                # 列数がヘッダより多い行は切り詰める (少ない行は pandas が NaN で埋める)
                on_bad_lines=lambda bad_line: bad_line[:width],
            )
    except pd.errors.ParserError as e:
        raise FormatError(f"cannot parse CSV: {e}") from e

    rows: list[RawRow] = []
    for values in df.itertuples(index=False, name=None):
        rows.append(_build_row(columns, values))
    return ParsedTable(columns=columns, rows=rows)


def _read_spreadsheet(content: bytes) -> ParsedTable:
    try:
        with pd.ExcelFile(io.BytesIO(content), engine="openpyxl") as workbook:
            sheet_name = str(workbook.sheet_names[0])
            df = workbook.parse(sheet_name, header=None, dtype=object, keep_default_na=False)
    except Exception as e:  # openpyxl / zipfile raise a variety of types for corrupt input
        raise FormatError(f"cannot read spreadsheet: {e}") from e

    # 全セル空の行はスキップ (先頭の空行も含む)
    lines = [
        list(values)
        for values in df.itertuples(index=False, name=None)
        if any(cell_text(v).strip() for v in values)
    ]
    if not lines:
        raise FormatError(f"sheet '{sheet_name}' has no header columns")

    header, data = lines[0], lines[1:]
    columns = [
        cell_text(v).strip() or f"Unnamed: {i}"
        for i, v in enumerate(header)
    ]
    rows = [_build_row(columns, values) for values in data]
    return ParsedTable(columns=columns, rows=rows, sheet_name=sheet_name)


def _build_row(columns: list[str], values: Sequence[Any]) -> RawRow:
    """Zip one line onto the header, padding short lines with ""."""
    row: RawRow = {}
    for i, col in enumerate(columns):
        value = values[i] if i < len(values) else ""
        row[col] = cell_text(value)
    return row
