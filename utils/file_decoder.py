# utils/file_decoder.py
from __future__ import annotations

import csv
import math
import os
from typing import Any, Dict, Iterator, List

import pandas as pd

from database.models import FileKind
from utils.errors import DecodeError, UnsupportedFileKind
from utils.field_normalizer import EXCEL_COLUMNS

MAX_ROWS = 10_000

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx", ".xls")

CSV_MIMETYPES = ("text/csv", "application/csv")
EXCEL_MIMETYPES = (
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)


def detect_file_kind(filename: str, mimetype: str | None) -> FileKind:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in CSV_EXTENSIONS:
        return FileKind.CSV
    if ext in EXCEL_EXTENSIONS:
        return FileKind.EXCEL

    mimetype = (mimetype or "").lower()
    if mimetype in CSV_MIMETYPES:
        return FileKind.CSV
    if mimetype in EXCEL_MIMETYPES:
        return FileKind.EXCEL
    raise UnsupportedFileKind(f"unsupported file '{filename}' ({mimetype or 'no mimetype'})")


def _clean_cell(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _read_csv_headers(path: str) -> List[str]:
    df0 = pd.read_csv(path, nrows=0, dtype=str, index_col=False, encoding="utf-8-sig")
    return [str(c) for c in df0.columns]


def _iter_csv_rows(path: str) -> Iterator[Dict[str, Any]]:
    # pandas owns the header row; data lines are streamed so that a short
    # line leaves its missing trailing cells as None and a blank cell as ""
    try:
        if os.path.getsize(path) == 0:
            return
        headers = _read_csv_headers(path)
        width = len(headers)
        with open(path, newline="", encoding="utf-8-sig") as f:
            records = csv.reader(f)
            for cells in records:
                if cells:
                    break  # header line
            for cells in records:
                if not cells or len(cells) > width:
                    continue
                yield dict(zip(headers, cells + [None] * (width - len(cells))))
    except pd.errors.EmptyDataError:
        return
    except (OSError, UnicodeDecodeError, csv.Error, pd.errors.ParserError) as e:
        raise DecodeError(f"could not read CSV: {e}") from e


def _iter_excel_rows(path: str, max_rows: int) -> Iterator[Dict[str, Any]]:
    try:
        df = pd.read_excel(path, sheet_name=0, header=None, dtype=object, engine="openpyxl")
    except Exception as e:
        # openpyxl surfaces corrupt workbooks as a mix of zip/xml/key errors
        raise DecodeError(f"could not read Excel workbook: {e}") from e

    # sheet row 1 is the header; rows without any value are not data
    df = df.iloc[1:].dropna(how="all")
    width = len(EXCEL_COLUMNS)
    for produced, (_, r) in enumerate(df.iterrows()):
        if produced >= max_rows:
            return
        cells = [_clean_cell(v) for v in r.tolist()[:width]]
        cells += [None] * (width - len(cells))
        yield dict(zip(EXCEL_COLUMNS, cells))


def decode_rows(path: str, kind: FileKind, max_rows: int = MAX_ROWS) -> Iterator[Dict[str, Any]]:
    """Yield raw rows from an uploaded file, never more than ``max_rows``.

    CSV rows are keyed by the file's own headers. Excel rows are keyed by
    position onto the seven buyer fields, with the sheet's first row ignored.
    """
    if not os.path.exists(path):
        raise DecodeError(f"file not found: {path}")

    if kind == FileKind.CSV:
        rows = _iter_csv_rows(path)
    else:
        rows = _iter_excel_rows(path, max_rows)

    for produced, row in enumerate(rows, start=1):
        yield row
        if produced >= max_rows:
            return
