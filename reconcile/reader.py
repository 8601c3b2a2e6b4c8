"""Readers for the roster export, school workbooks and balance files."""

import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from reconcile import CanonicalStudent, SourceRow
from reconcile.names import (
    normalize_whitespace,
    parse_comma_or_space_name,
    parse_first_space_last,
    parse_separate_columns,
)

log = logging.getLogger(__name__)

# The roster header is expected within the first rows of the export
HEADER_SEARCH_ROWS = 10
WORKBOOK_SUFFIXES = {'.xlsx', '.xlsm'}

_NON_POINTS_RE = re.compile(r'[^0-9-]')
_LEADING_INT_RE = re.compile(r'-?\d+')

Row = list[Any]


@dataclass
class Workbook:
    """All sheets of a school file as lists of cell rows."""

    sheet_names: list[str] = field(default_factory=list)
    sheets: dict[str, list[Row]] = field(default_factory=dict)


@dataclass(frozen=True)
class ColumnInfo:
    """Header and first data value of a sheet column."""

    index: int
    header: str
    sample: str


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def _read_csv_rows(path: Path) -> list[Row]:
    encoding = detect_encoding(path)
    with open(path, 'r', encoding=encoding, newline='') as f:
        content = f.read()

    # Strip BOM if present
    content = content.lstrip('\ufeff')
    return [list(row) for row in csv.reader(io.StringIO(content))]


def _cell_text(row: Row, index: int) -> str:
    """Return the whitespace-normalized text of a cell, '' if absent."""
    if index < 0 or index >= len(row):
        return ''
    value = row[index]
    if value is None:
        return ''
    return normalize_whitespace(str(value))


def _is_blank(row: Row) -> bool:
    return not any(_cell_text(row, i) for i in range(len(row)))


def read_roster(path: Union[str, Path]) -> list[CanonicalStudent]:
    """Read the platform roster export.

    The header row is the first row (within the first few) whose first
    cell is "id"; data rows follow it with id, first name and last name
    in the first three columns.

    Args:
        path: Path to the CSV export.

    Returns:
        Roster students in file order, names upper-cased.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If no header row is found.
    """
    path = Path(path)
    rows = _read_csv_rows(path)

    header_index = -1
    for i, row in enumerate(rows[:HEADER_SEARCH_ROWS]):
        if len(row) >= 3 and _cell_text(row, 0).lower() == 'id':
            header_index = i
            break

    if header_index == -1:
        raise ValueError(f"Could not find header row in roster export {path}")

    students: list[CanonicalStudent] = []
    for row_num, row in enumerate(rows[header_index + 1:], start=header_index + 2):
        if len(row) < 3:
            continue
        student_id = _cell_text(row, 0)
        first_name = _cell_text(row, 1).upper()
        last_name = _cell_text(row, 2).upper()
        if not student_id or not (first_name or last_name):
            log.debug("Row %d in %s skipped: no id or name", row_num, path)
            continue
        students.append(CanonicalStudent(student_id, first_name, last_name))

    log.info("%d students read from %s", len(students), path)
    return students


def read_workbook(path: Union[str, Path]) -> Workbook:
    """Read every sheet of a school file.

    Excel workbooks are read with openpyxl (cell values, not formulas);
    a CSV file becomes a single sheet named after the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file type is unsupported or cannot be parsed.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    workbook = Workbook()

    if suffix == '.csv':
        workbook.sheet_names.append(path.stem)
        workbook.sheets[path.stem] = _read_csv_rows(path)
    elif suffix in WORKBOOK_SUFFIXES:
        if not path.exists():
            raise FileNotFoundError(path)
        try:
            wb = load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
            raise ValueError(f"Failed to parse workbook {path}: {exc}") from exc
        try:
            for ws in wb.worksheets:
                workbook.sheet_names.append(ws.title)
                workbook.sheets[ws.title] = [
                    list(r) for r in ws.iter_rows(values_only=True)
                ]
        finally:
            wb.close()
    else:
        raise ValueError(f"Unsupported school file type: {path.suffix or path.name}")

    log.info(
        "%d sheet(s) read from %s: %s",
        len(workbook.sheet_names), path, ', '.join(workbook.sheet_names),
    )
    return workbook


def column_info(rows: list[Row]) -> list[ColumnInfo]:
    """Describe the columns of a sheet by header and first data value."""
    if len(rows) < 2:
        return []

    header_row = rows[0] or []
    sample_row = rows[1] or []
    return [
        ColumnInfo(
            index=i,
            header=_cell_text(header_row, i) or f'Column {i + 1}',
            sample=_cell_text(sample_row, i),
        )
        for i in range(len(header_row))
    ]


def resolve_column(headers: list[Any], column: Union[int, str]) -> int:
    """Find a column by header text (case-insensitive) or by 0-based index.

    A string is looked up as header text first, so a numeric header such
    as "2024" is found by name; only then is it read as an index.

    Raises:
        ValueError: If the column does not exist.
    """
    if not isinstance(column, int):
        wanted = normalize_whitespace(str(column)).lower()
        for i in range(len(headers)):
            if _cell_text(headers, i).lower() == wanted:
                return i
        if not wanted.isdigit():
            raise ValueError(f"Column not found: {column}")

    index = int(column)
    if 0 <= index < len(headers):
        return index
    raise ValueError(f"Column index {index} out of range (0-{len(headers) - 1})")


def extract_from_name_column(rows: list[Row], column: int) -> list[SourceRow]:
    """Extract candidates from a combined "LAST, FIRST" name column.

    The first row is treated as the header.
    """
    candidates: list[SourceRow] = []
    for i, row in enumerate(rows[1:], start=1):
        original = _cell_text(row or [], column)
        if original:
            candidates.append(SourceRow(
                original_name=original,
                parsed_name=parse_comma_or_space_name(original),
                row_index=i,
            ))
    return candidates


def extract_from_separate_columns(
    rows: list[Row],
    last_column: int,
    first_column: int,
) -> list[SourceRow]:
    """Extract candidates from separate last/first name columns.

    The first row is treated as the header.
    """
    candidates: list[SourceRow] = []
    for i, row in enumerate(rows[1:], start=1):
        row = row or []
        parsed = parse_separate_columns(
            _cell_text(row, last_column), _cell_text(row, first_column),
        )
        if parsed.is_empty:
            continue
        candidates.append(SourceRow(
            original_name=parsed.full_name,
            parsed_name=parsed,
            row_index=i,
        ))
    return candidates


def read_balance_source(path: Union[str, Path]) -> tuple[list[str], list[Row]]:
    """Read a point-balance CSV.

    Returns:
        Header cells and the non-blank data rows.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If there is no data row below the header.
    """
    path = Path(path)
    rows = _read_csv_rows(path)
    if len(rows) < 2:
        raise ValueError(
            f"Balance file {path} must have a header row and at least one data row"
        )

    headers = [_cell_text(rows[0], i) for i in range(len(rows[0]))]
    data_rows = [row for row in rows[1:] if not _is_blank(row)]
    log.info("%d balance rows read from %s", len(data_rows), path)
    return headers, data_rows


def parse_points(value: Any) -> int:
    """Parse a point amount, ignoring separators and units; 0 if unparseable.

    Only the leading signed integer counts, so "12-3" gives 12.
    """
    digits = _NON_POINTS_RE.sub('', '' if value is None else str(value))
    match = _LEADING_INT_RE.match(digits)
    return int(match.group()) if match else 0


def extract_balances(
    rows: list[Row],
    name_column: int,
    points_column: int,
) -> list[SourceRow]:
    """Extract "FIRST LAST" names with their point balances.

    Args:
        rows: Data rows (header already removed).
        name_column: Index of the name column.
        points_column: Index of the points column.

    Returns:
        One SourceRow per row with a name; row_index counts the header as row 0.
    """
    candidates: list[SourceRow] = []
    for i, row in enumerate(rows):
        original = _cell_text(row, name_column)
        if not original:
            continue
        candidates.append(SourceRow(
            original_name=original,
            parsed_name=parse_first_space_last(original),
            row_index=i + 1,
            points=parse_points(_cell_text(row, points_column)),
        ))
    return candidates
