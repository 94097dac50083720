"""Tests for file kind detection and CSV/Excel row decoding."""
from decimal import Decimal

import pytest

from database.models import FileKind
from utils.errors import DecodeError, UnsupportedFileKind
from utils.field_normalizer import normalize_row
from utils.file_decoder import decode_rows, detect_file_kind
from utils.row_sanitizer import sanitize_row


@pytest.mark.parametrize(
    "filename, mimetype, expected",
    [
        ("buyers.csv", "application/octet-stream", FileKind.CSV),
        ("BUYERS.CSV", None, FileKind.CSV),
        ("buyers.xlsx", "text/csv", FileKind.EXCEL),
        ("buyers.xls", "", FileKind.EXCEL),
        ("export", "text/csv", FileKind.CSV),
        ("export", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", FileKind.EXCEL),
    ],
)
def test_detect_file_kind(filename, mimetype, expected):
    """Extension decides first, mimetype second."""
    assert detect_file_kind(filename, mimetype) == expected


def test_detect_file_kind_rejects_unknown():
    """Anything that is neither CSV nor Excel is refused up front."""
    with pytest.raises(UnsupportedFileKind):
        detect_file_kind("notes.txt", "text/plain")


def test_csv_rows_are_keyed_by_header(write_csv):
    """CSV columns follow the file's own header row."""
    path = write_csv("b.csv", "Email,Name,Mobile\na@x.io,Ann,1\nb@x.io,Bo,2\n")
    rows = list(decode_rows(path, FileKind.CSV))

    assert rows == [
        {"Email": "a@x.io", "Name": "Ann", "Mobile": "1"},
        {"Email": "b@x.io", "Name": "Bo", "Mobile": "2"},
    ]


def test_csv_bom_and_short_rows(write_csv):
    """A BOM does not leak into the first header and short rows pad with None."""
    path = write_csv("bom.csv", "Name,Email,Mobile\nAnn,a@x.io\n", encoding="utf-8-sig")
    rows = list(decode_rows(path, FileKind.CSV))

    assert list(rows[0]) == ["Name", "Email", "Mobile"]
    assert rows[0]["Mobile"] is None


def test_csv_missing_cells_differ_from_blank_cells(write_csv):
    """A cell the line never reached is None; a present but empty cell is ''."""
    path = write_csv("gaps.csv", "Name,Email,Mobile,Due\nAnn,a@x.io,,\nBo,b@x.io\n")
    rows = list(decode_rows(path, FileKind.CSV))

    assert rows[0] == {"Name": "Ann", "Email": "a@x.io", "Mobile": "", "Due": ""}
    assert rows[1] == {"Name": "Bo", "Email": "b@x.io", "Mobile": None, "Due": None}


def test_csv_short_row_falls_through_to_next_alias(write_csv):
    """A long-form column the line never reached does not hide its short alias."""
    path = write_csv("alias.csv", "Name,Email,Mobile,Invoice,Total Invoice\nAnn,a@x.io,1,250\n")
    row = next(decode_rows(path, FileKind.CSV))

    record = sanitize_row(normalize_row(row)).record
    assert record.total_invoice == Decimal("250")


def test_csv_skips_blank_and_overlong_lines(write_csv):
    """Blank lines and lines with more cells than headers are dropped."""
    path = write_csv("odd.csv", "Name,Email,Mobile\nAnn,a@x.io,1\n\nBo,b@x.io,2,extra\nCy,c@x.io,3\n")
    rows = list(decode_rows(path, FileKind.CSV))
    assert [r["Name"] for r in rows] == ["Ann", "Cy"]


def test_csv_keeps_values_as_text(write_csv):
    """Leading zeros and blank cells survive decoding."""
    path = write_csv("t.csv", "Name,Mobile,Due\nAnn,0044123,\n")
    rows = list(decode_rows(path, FileKind.CSV))
    assert rows[0] == {"Name": "Ann", "Mobile": "0044123", "Due": ""}


@pytest.mark.parametrize("content", ["", "Name,Email,Mobile\n"])
def test_csv_without_data_rows_yields_nothing(write_csv, content):
    """Empty and header-only files decode to zero rows."""
    path = write_csv("empty.csv", content)
    assert list(decode_rows(path, FileKind.CSV)) == []


def test_csv_row_cap(write_csv):
    """Decoding stops at the row cap even when the file has more."""
    body = "".join(f"n{i},e{i}@x.io,{i}\n" for i in range(25))
    path = write_csv("big.csv", "Name,Email,Mobile\n" + body)

    rows = list(decode_rows(path, FileKind.CSV, max_rows=10))
    assert len(rows) == 10
    assert rows[-1]["Name"] == "n9"


def test_excel_rows_are_positional(write_xlsx):
    """Excel columns map by position; the header text is ignored."""
    path = write_xlsx("b.xlsx", [
        ("Col A", "Col B", "Col C", "Col D", "Col E", "Col F", "Col G"),
        ("Ann", "a@x.io", 9000000001, "1 Main St", 1500, 500, 1000),
        ("Bo", "b@x.io", 9000000002, None, 200, 200, 0),
    ])
    rows = list(decode_rows(path, FileKind.EXCEL))

    assert len(rows) == 2
    assert rows[0]["name"] == "Ann"
    assert rows[0]["mobile"] == 9000000001
    assert rows[0]["amount_due"] == 1000
    assert rows[1]["address"] is None


def test_excel_short_rows_and_blank_rows(write_xlsx):
    """Missing trailing cells pad with None and empty rows are dropped."""
    path = write_xlsx("s.xlsx", [
        ("h1", "h2", "h3"),
        ("Ann", "a@x.io", "1"),
        (None, None, None),
        ("Bo", "b@x.io", "2"),
    ])
    rows = list(decode_rows(path, FileKind.EXCEL))

    assert [r["name"] for r in rows] == ["Ann", "Bo"]
    assert rows[0]["amount_due"] is None


def test_excel_row_cap(write_xlsx):
    """The cap applies to spreadsheet rows as well."""
    data = [("h",) * 7] + [(f"n{i}", f"e{i}@x.io", str(i), "", 1, 1, 0) for i in range(12)]
    path = write_xlsx("big.xlsx", data)
    assert len(list(decode_rows(path, FileKind.EXCEL, max_rows=5))) == 5


def test_corrupt_workbook_raises_decode_error(write_csv):
    """Bytes that are not a workbook surface as a DecodeError."""
    path = write_csv("broken.xlsx", "this is not a zip archive")
    with pytest.raises(DecodeError):
        list(decode_rows(path, FileKind.EXCEL))


def test_missing_file_raises_decode_error(tmp_path):
    """A path that does not exist cannot be decoded."""
    with pytest.raises(DecodeError):
        list(decode_rows(str(tmp_path / "gone.csv"), FileKind.CSV))
