from __future__ import annotations
from pathlib import Path

import pandas as pd
import pytest

from contact_distributor.errors import FormatError, MissingHeadersError
from contact_distributor.tabular.reader import (
    REQUIRED_HEADERS,
    TableFormat,
    detect_format,
    parse_table,
    require_headers,
)


def _csv(*lines: str) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def _make_excel(tmp_path: Path, name: str, sheets: dict[str, list[list[object]]]) -> bytes:
    p = tmp_path / name
    with pd.ExcelWriter(p, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return p.read_bytes()


def test_detect_format_by_extension():
    assert detect_format("contacts.csv") is TableFormat.COLUMNAR_TEXT
    assert detect_format("Contacts.XLSX") is TableFormat.SPREADSHEET
    with pytest.raises(FormatError, match="unsupported file type"):
        detect_format("contacts.txt")
    with pytest.raises(FormatError):
        detect_format("no_extension")


def test_csv_header_and_rows_in_order():
    table = parse_table(
        _csv("FirstName,Phone,Notes", "Jane,555-123-4567,first", "Bob,5559876543,second"),
        TableFormat.COLUMNAR_TEXT,
    )
    assert table.columns == ["FirstName", "Phone", "Notes"]
    assert [r["FirstName"] for r in table.rows] == ["Jane", "Bob"]
    assert table.rows[0] == {"FirstName": "Jane", "Phone": "555-123-4567", "Notes": "first"}


def test_csv_keeps_column_order_and_extra_columns():
    table = parse_table(_csv("Notes,Email,Phone,FirstName", "n,a@b.c,5551234567,Jane"), TableFormat.COLUMNAR_TEXT)
    assert table.columns == ["Notes", "Email", "Phone", "FirstName"]
    assert table.rows[0]["Email"] == "a@b.c"


def test_csv_short_row_is_padded_not_dropped():
    table = parse_table(_csv("FirstName,Phone,Notes", "Jane,5551234567", "Bob"), TableFormat.COLUMNAR_TEXT)
    assert len(table.rows) == 2
    assert table.rows[0] == {"FirstName": "Jane", "Phone": "5551234567", "Notes": ""}
    assert table.rows[1] == {"FirstName": "Bob", "Phone": "", "Notes": ""}


def test_csv_long_row_is_truncated_not_dropped():
    table = parse_table(
        _csv("FirstName,Phone,Notes", "Jane,5551234567,hello,extra,more", "Bob,5559876543,ok"),
        TableFormat.COLUMNAR_TEXT,
    )
    assert len(table.rows) == 2
    assert table.rows[0] == {"FirstName": "Jane", "Phone": "5551234567", "Notes": "hello"}
    assert table.rows[1]["FirstName"] == "Bob"


def test_csv_long_row_truncation_emits_no_parser_warning(recwarn):
    parse_table(_csv("FirstName,Phone,Notes", "Jane,5551234567,hello,extra"), TableFormat.COLUMNAR_TEXT)
    assert not [w for w in recwarn if issubclass(w.category, pd.errors.ParserWarning)]


def test_csv_skips_blank_lines_and_keeps_na_strings():
    table = parse_table(_csv("FirstName,Phone,Notes", "", "NA,5551234567,null", ""), TableFormat.COLUMNAR_TEXT)
    assert len(table.rows) == 1
    assert table.rows[0]["FirstName"] == "NA"
    assert table.rows[0]["Notes"] == "null"


def test_csv_utf8_bom_and_header_whitespace():
    content = "\ufeffFirstName , Phone,Notes\nJosé,5551234567,ñ\n".encode("utf-8")
    table = parse_table(content, TableFormat.COLUMNAR_TEXT)
    assert table.columns == ["FirstName", "Phone", "Notes"]
    assert table.rows[0]["FirstName"] == "José"


def test_csv_header_only_yields_zero_rows():
    table = parse_table(_csv("FirstName,Phone,Notes"), TableFormat.COLUMNAR_TEXT)
    assert table.columns == ["FirstName", "Phone", "Notes"]
    assert table.rows == []


def test_csv_empty_stream_is_format_error():
    with pytest.raises(FormatError, match="no header columns"):
        parse_table(b"", TableFormat.COLUMNAR_TEXT)


def test_csv_undecodable_bytes_is_format_error():
    with pytest.raises(FormatError, match="UTF-8"):
        parse_table(b"FirstName,Phone\n\xff\xfe\xfa,1\n", TableFormat.COLUMNAR_TEXT)


def test_xlsx_first_sheet_only(tmp_path: Path):
    content = _make_excel(
        tmp_path,
        "contacts.xlsx",
        {
            "Contacts": [
                ["FirstName", "Phone", "Notes"],
                ["Jane", "555-123-4567", "vip"],
            ],
            "Other": [
                ["Something", "Else"],
                ["x", "y"],
            ],
        },
    )
    table = parse_table(content, TableFormat.SPREADSHEET)
    assert table.sheet_name == "Contacts"
    assert table.columns == ["FirstName", "Phone", "Notes"]
    assert table.rows == [{"FirstName": "Jane", "Phone": "555-123-4567", "Notes": "vip"}]


def test_xlsx_missing_cells_are_empty_strings(tmp_path: Path):
    content = _make_excel(
        tmp_path,
        "gaps.xlsx",
        {
            "Sheet1": [
                ["FirstName", "Phone", "Notes"],
                ["Jane", 5551234567, None],
                [None, 5559876543, "no name"],
            ]
        },
    )
    table = parse_table(content, TableFormat.SPREADSHEET)
    assert len(table.rows) == 2
    for row in table.rows:
        assert set(row) == {"FirstName", "Phone", "Notes"}
    assert table.rows[0]["Notes"] == ""
    assert table.rows[1]["FirstName"] == ""


def test_xlsx_numeric_phone_keeps_digits(tmp_path: Path):
    content = _make_excel(
        tmp_path,
        "numbers.xlsx",
        {"Sheet1": [["FirstName", "Phone", "Notes"], ["Jane", 5551234567, "a"], ["Bob", 5559876543.0, "b"]]},
    )
    table = parse_table(content, TableFormat.SPREADSHEET)
    assert [r["Phone"] for r in table.rows] == ["5551234567", "5559876543"]


def test_xlsx_blank_rows_are_skipped(tmp_path: Path):
    content = _make_excel(
        tmp_path,
        "blank.xlsx",
        {
            "Sheet1": [
                ["FirstName", "Phone", "Notes"],
                ["Jane", "5551234567", "a"],
                [None, None, None],
                ["Bob", "5559876543", "b"],
            ]
        },
    )
    table = parse_table(content, TableFormat.SPREADSHEET)
    assert [r["FirstName"] for r in table.rows] == ["Jane", "Bob"]


def test_xlsx_header_only_yields_zero_rows(tmp_path: Path):
    content = _make_excel(tmp_path, "header.xlsx", {"Sheet1": [["FirstName", "Phone", "Notes"]]})
    table = parse_table(content, TableFormat.SPREADSHEET)
    assert table.rows == []


def test_xlsx_corrupt_bytes_is_format_error():
    with pytest.raises(FormatError, match="cannot read spreadsheet"):
        parse_table(b"definitely not a zip archive", TableFormat.SPREADSHEET)


def test_require_headers_accepts_any_order_and_extras():
    require_headers(["Notes", "Extra", "Phone", "FirstName"])


def test_require_headers_names_missing_in_required_order():
    with pytest.raises(MissingHeadersError) as e:
        require_headers(["Phone", "firstname"])
    assert e.value.missing == ["FirstName", "Notes"]
    assert e.value.required == list(REQUIRED_HEADERS)
    assert "Missing: FirstName, Notes" in str(e.value)
    assert e.value.kind == "MISSING_HEADERS"
