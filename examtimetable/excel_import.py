"""
Spreadsheet import (.xlsx -> subject records).

- Reads the first worksheet of the workbook
- The first non-empty row is the header; columns are matched by alias
  (e.g. "Subject Code", "Code", "subject_code")
- Every following non-empty row becomes one record:
  {"code", "name", "department", "year"} (stripped, department upper-cased)

The records are not stored here; storage.create_subjects() does that.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from examtimetable.errors import ImportFormatError

logger = logging.getLogger(__name__)

SubjectRecord = dict[str, str]

REQUIRED_FIELDS = ("code", "name", "department", "year")

# canonical field -> accepted header texts (compared lowercased and stripped)
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("subject code", "code", "subject_code"),
    "name": ("subject name", "name", "subject_name"),
    "department": ("department", "dept"),
    "year": ("year",),
}

PARSE_ERROR_MESSAGE = "Failed to parse Excel file. Please check the format."


def _normalize_header(value: Any) -> str:
    return "" if value is None else str(value).strip().lower()


def _cell_text(value: Any) -> str:
    """
    Render a cell value as text. Whole floats lose their '.0' (Excel stores 2 as 2.0).
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def map_columns(header: list[Any]) -> dict[str, int]:
    """
    Map canonical field names to column indexes of the header row.

    The first matching column wins if several aliases are present.
    """
    lookup: dict[str, str] = {}
    for field, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            lookup[alias] = field

    mapping: dict[str, int] = {}
    for idx, cell in enumerate(header):
        field = lookup.get(_normalize_header(cell))
        if field and field not in mapping:
            mapping[field] = idx
    return mapping


def _row_is_empty(row: tuple) -> bool:
    return all(_cell_text(v) == "" for v in row)


def parse_rows(rows: list[tuple]) -> list[SubjectRecord]:
    """
    Turn worksheet rows (header first) into subject records.

    Raises ImportFormatError if a required column is missing from the header or
    a data row lacks one of the required values. Row numbers in messages are
    1-based worksheet row numbers.
    """
    header_idx: Optional[int] = None
    for i, row in enumerate(rows):
        if not _row_is_empty(row):
            header_idx = i
            break

    if header_idx is None:
        return []

    columns = map_columns(list(rows[header_idx]))
    missing_cols = [f for f in REQUIRED_FIELDS if f not in columns]
    if missing_cols:
        raise ImportFormatError(
            "Missing required fields: Subject Code, Subject Name, Department, Year "
            f"(not found: {', '.join(missing_cols)})"
        )

    records: list[SubjectRecord] = []
    for i in range(header_idx + 1, len(rows)):
        row = rows[i]
        if _row_is_empty(row):
            continue

        values = {f: _cell_text(row[c]) if c < len(row) else "" for f, c in columns.items()}
        empty = [f for f in REQUIRED_FIELDS if not values[f]]
        if empty:
            raise ImportFormatError(
                f"Row {i + 1}: missing required fields: Subject Code, Subject Name, Department, Year "
                f"(empty: {', '.join(empty)})"
            )

        records.append(
            {
                "code": values["code"],
                "name": values["name"],
                "department": values["department"].upper(),
                "year": values["year"],
            }
        )

    return records


def parse_subjects_workbook(file: Union[str, Path, BinaryIO]) -> list[SubjectRecord]:
    """
    Parse an .xlsx workbook (path or binary file object) into subject records.
    """
    try:
        wb = load_workbook(file, read_only=True, data_only=True)
        # read-only sheets are parsed lazily; ElementTree and lxml parse errors are SyntaxError subclasses
        try:
            ws = wb.worksheets[0]
            rows = [tuple(r) for r in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
    except (InvalidFileException, zipfile.BadZipFile, SyntaxError, OSError, KeyError, ValueError, IndexError) as exc:
        logger.warning("Could not read workbook %s: %s", file, exc)
        raise ImportFormatError(PARSE_ERROR_MESSAGE) from exc

    records = parse_rows(rows)
    logger.info("Parsed %d subject(s) from workbook", len(records))
    return records
