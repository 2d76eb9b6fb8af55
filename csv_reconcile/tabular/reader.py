from __future__ import annotations

import csv
import io
from pathlib import Path

import pandas as pd

"""Tabular input readers.

``tokenize`` turns delimited text into rows of string cells. It performs
no type coercion and no cell-count checks; the import session owns the
structural validation. ``read_table_file`` loads a file from disk into
text or (for spreadsheets) directly into rows.

Delimited text goes through the csv module in strict mode so that ragged
rows are preserved for the session's cell-count check. Spreadsheets are
read through pandas with every cell kept as a string.
"""

__all__ = [
    "MalformedInputError",
    "DELIMITERS_BY_SUFFIX",
    "decode_text",
    "tokenize",
    "read_table_file",
    "read_excel_rows",
    "delimiter_for",
]

DELIMITERS_BY_SUFFIX = {
    ".csv": ",",
    ".tsv": "\t",
    ".tab": "\t",
    ".txt": "\t",
}
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


class MalformedInputError(Exception):
    """Raised when delimited text cannot be tokenized."""


def decode_text(raw: bytes) -> str:
    """Decode UTF-8 input (BOM optional); invalid bytes are malformed input."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"invalid UTF-8 at byte {e.start}") from e


def tokenize(text: str | bytes, delimiter: str = "\t") -> list[list[str]]:
    """Split delimited text into rows of string cells.

    A leading UTF-8 BOM is dropped. Empty text yields no rows.
    """
    if isinstance(text, bytes):
        text = decode_text(text)
    if text.startswith("\ufeff"):
        text = text[1:]
    if not text:
        return []
    try:
        return [row for row in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)]
    except csv.Error as e:
        raise MalformedInputError(str(e)) from e


def read_excel_rows(path: Path, sheet_name: str | int = 0) -> list[list[str]]:
    """Read one sheet of a workbook as rows of strings.

    The first row is returned as-is (it is the header row for the import).
    Empty cells become ``""``; fully empty trailing rows are dropped.
    """
    df = pd.read_excel(path, sheet_name=sheet_name, header=None, dtype=str, keep_default_na=False)
    rows: list[list[str]] = []
    for raw in df.itertuples(index=False, name=None):
        rows.append(["" if pd.isna(v) else str(v) for v in raw])
    while rows and all(cell.strip() == "" for cell in rows[-1]):
        rows.pop()
    return rows


def read_table_file(path: Path) -> bytes | list[list[str]]:
    """Load an import file.

    Returns the raw bytes of delimited files (decoded and tokenized later by
    the session, so bad encodings surface as a structure error) and
    pre-tokenized rows for spreadsheets.
    """
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return read_excel_rows(path)
    return path.read_bytes()


def delimiter_for(path: Path, default: str = "\t") -> str:
    return DELIMITERS_BY_SUFFIX.get(path.suffix.lower(), default)
