"""
Spreadsheet parsing for movie imports.

Turns uploaded .xlsx or .csv bytes into ImportRow records. The first row is
the header; recognised column names are mapped case-insensitively onto
ImportRow fields and every other column is ignored.
"""

from __future__ import annotations

import csv
import datetime
import io
import logging
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

TITLE = "title"
RELEASE = "release_year_or_date"
WATCHED = "watched"
RATING = "rating"
NOTE = "note"

COLUMN_ALIASES: dict[str, str] = {
    "title": TITLE,
    "name": TITLE,
    "releasedate": RELEASE,
    "release_date": RELEASE,
    "year": RELEASE,
    "watched": WATCHED,
    "rating": RATING,
    "review": NOTE,
    "notes": NOTE,
}

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
CSV_EXTENSIONS = {".csv", ".txt"}

_TRUE_STRINGS = {"yes", "y", "true", "1", "x", "watched"}
_FALSE_STRINGS = {"no", "n", "false", "0", ""}


class ParseError(Exception):
    """The uploaded file could not be decoded as a spreadsheet; nothing is imported."""


@dataclass
class ImportRow:
    title: str
    release_year_or_date: str | None = None
    watched: bool | None = None
    rating: int | None = None
    note: str | None = None
    line_number: int = 0

    @property
    def search_query(self) -> str:
        return f"{self.title} {self.release_year_or_date or ''}".strip()


@dataclass
class RowParseResult:
    line_number: int
    row: ImportRow | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ParsedSheet:
    rows: list[ImportRow] = field(default_factory=list)
    errors: list[RowParseResult] = field(default_factory=list)
    dropped: int = 0


def resolve_column_alias(header: Any) -> str | None:
    """Map a header cell onto an ImportRow field name, or None if unrecognised."""
    if header is None:
        return None
    return COLUMN_ALIASES.get(str(header).strip().lower())


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_release(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, bool):
        raise ValueError(f"invalid release year/date: {value!r}")
    if isinstance(value, (int, float)):
        return str(int(value))
    text = str(value).strip()
    return text or None


def _coerce_watched(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False if text else None
    raise ValueError(f"invalid watched value: {value!r}")


def _coerce_rating(value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid rating: {value!r}")
    try:
        rating = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"invalid rating: {value!r}")
    if not 1 <= rating <= 10:
        raise ValueError(f"rating out of range 1-10: {value!r}")
    return rating


def parse_row(columns: dict[int, str], cells: Sequence[Any], line_number: int) -> RowParseResult | None:
    """
    Parse one data row using a column-index -> field mapping.

    Returns None for rows without a title (they are dropped, not errors).
    """
    values: dict[str, Any] = {}
    for index, field_name in columns.items():
        if index < len(cells) and field_name not in values:
            values[field_name] = cells[index]

    title = _cell_text(values.get(TITLE))
    if not title:
        return None

    try:
        note = _cell_text(values.get(NOTE)) or None
        row = ImportRow(
            title=title,
            release_year_or_date=_coerce_release(values.get(RELEASE)),
            watched=_coerce_watched(values.get(WATCHED)),
            rating=_coerce_rating(values.get(RATING)),
            note=note,
            line_number=line_number,
        )
    except ValueError as e:
        return RowParseResult(line_number=line_number, error=f"{title}: {e}")

    return RowParseResult(line_number=line_number, row=row)


def _read_excel_rows(content: bytes) -> list[tuple]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise ParseError(f"Could not read workbook: {e}")

    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            raise ParseError("Workbook has no sheets")
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _read_csv_rows(content: bytes) -> list[tuple]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"CSV file is not UTF-8 encoded: {e}")

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel

    try:
        return [tuple(cell if cell != "" else None for cell in row) for row in csv.reader(io.StringIO(text), dialect)]
    except csv.Error as e:
        raise ParseError(f"Could not read CSV: {e}")


def read_table(content: bytes, filename: str) -> list[tuple]:
    extension = PurePath(filename or "").suffix.lower()
    if extension in EXCEL_EXTENSIONS:
        return _read_excel_rows(content)
    if extension in CSV_EXTENSIONS:
        return _read_csv_rows(content)
    raise ParseError(f"Unsupported file type '{extension or filename}'. Upload an .xlsx or .csv file.")


def parse_table(table: Iterable[Sequence[Any]]) -> ParsedSheet:
    rows = iter(table)
    try:
        header = next(rows)
    except StopIteration:
        raise ParseError("Spreadsheet is empty")

    columns = {
        index: field_name
        for index, field_name in ((i, resolve_column_alias(cell)) for i, cell in enumerate(header))
        if field_name
    }
    if TITLE not in columns.values():
        raise ParseError("No title column found (expected one of: title, name)")

    sheet = ParsedSheet()
    # Line 1 is the header.
    for line_number, cells in enumerate(rows, start=2):
        result = parse_row(columns, cells, line_number)
        if result is None:
            sheet.dropped += 1
        elif result.ok:
            sheet.rows.append(result.row)
        else:
            sheet.errors.append(result)

    return sheet


def parse_spreadsheet(content: bytes, filename: str) -> ParsedSheet:
    """
    Parse uploaded spreadsheet bytes into import rows.

    Raises:
        ParseError: If the file cannot be decoded or has no title column
    """
    sheet = parse_table(read_table(content, filename))
    logger.info(
        "Parsed '%s': %d rows, %d row errors, %d rows without title dropped",
        filename,
        len(sheet.rows),
        len(sheet.errors),
        sheet.dropped,
    )
    return sheet
