"""
Row codec: one data row <-> one physical text line, given a resolved schema.

Overview
- encode_row(): renders each cell by its column's effective kind and joins with ",".
- decode_row(): splits on "," with a quote-aware scanner and parses each field by kind.
- format_header_line(): the `NAME[rows]{a,b,c}:` line that precedes the first row.

Field renderings
- numeric   -> "" when Missing, else the shortest decimal text ("42", "0.1", "1e+20").
- date      -> "YYYY-MM-DD".
- datetime  -> "DDMonYYYY:HH:MM:SS" (e.g. "15Nov2025:14:30:45"); sub-second parts dropped.
- character -> tabtoon.core.escape.encode_text (always quoted when empty).

Native numeric dates
- Numeric columns reclassified to date/datetime may carry numbers: days (date) or seconds
  (datetime) since 1960-01-01. They are converted on encode.

Notes
- Encode failures are caller precondition violations and raise SchemaMismatch immediately.
- Decode failures inside a field raise RowError subclasses with line/column filled in; a
  wrong field count raises SchemaMismatch.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Final

from .constants import NATIVE_EPOCH_DATE, NATIVE_EPOCH_DATETIME
from .errors import GrammarError, RowError, SchemaMismatch, UnescapeError, UnparsableValue
from .escape import QUOTE, decode_text, encode_text, is_quoted
from .grammar import MONTH_ABBR, ColumnKind, month_from_abbr
from .types import Cell, ColumnDescriptor, Row, TableSchema

__all__ = [
    "split_fields",
    "format_number",
    "format_date",
    "format_datetime",
    "parse_number",
    "parse_date",
    "parse_datetime",
    "calendar_value",
    "encode_cell",
    "decode_cell",
    "encode_row",
    "decode_row",
    "format_header_line",
]

_NUMBER_RE: Final = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_ISO_DATE_RE: Final = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE9_RE: Final = re.compile(r"^(\d{1,2})([A-Za-z]{3})(\d{4})$")
_DATETIME_RE: Final = re.compile(
    r"^(\d{1,2})([A-Za-z]{3})(\d{4}):(\d{1,2}):(\d{2}):(\d{2})(?:\.\d*)?$"
)

# Single "." is the native missing-number marker.
_NATIVE_MISSING: Final[str] = "."

# Integral floats below this magnitude print without a fraction.
_INT_PRINT_LIMIT: Final[float] = 1e16


# -----------------------------------------------------------------------------
# Splitting
# -----------------------------------------------------------------------------


def split_fields(line: str) -> list[str]:
    """
    Split a row line on commas that are outside quoted fields.

    Args:
        line (str): Row text with the cosmetic indent already removed.

    Returns:
        list[str]: Raw field tokens; quoted tokens keep their quotes and escapes.

    Raises:
        UnescapeError: If a quoted field is unterminated, ends in a dangling backslash,
            or is followed by anything other than a comma.
    """
    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            buf.append(ch)
            if ch == "\\":
                if i + 1 >= n:
                    raise UnescapeError("dangling backslash at end of line")
                buf.append(line[i + 1])
                i += 2
                continue
            if ch == QUOTE:
                in_quotes = False
                if i + 1 < n and line[i + 1] != ",":
                    raise UnescapeError(
                        f"unexpected {line[i + 1]!r} after closing quote at position {i + 1}"
                    )
            i += 1
            continue
        if ch == ",":
            fields.append("".join(buf))
            buf = []
        else:
            if ch == QUOTE and not buf:
                in_quotes = True
            buf.append(ch)
        i += 1
    if in_quotes:
        raise UnescapeError("quoted field is missing its closing quote")
    fields.append("".join(buf))
    return fields


# -----------------------------------------------------------------------------
# Scalar renderings
# -----------------------------------------------------------------------------


def format_number(value: float | int) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if math.isinf(value):
        raise SchemaMismatch(f"cannot encode non-finite number {value!r}")
    if value.is_integer() and abs(value) < _INT_PRINT_LIMIT:
        return str(int(value))
    return repr(value)


def format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_datetime(value: datetime) -> str:
    return (
        f"{value.day:02d}{MONTH_ABBR[value.month - 1]}{value.year:04d}"
        f":{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def parse_number(token: str) -> float | None:
    text = token.strip()
    if text == "" or text == _NATIVE_MISSING:
        return None
    if not _NUMBER_RE.match(text):
        raise UnparsableValue(f"not a number: {token!r}")
    value = float(text)
    if not math.isfinite(value):
        raise UnparsableValue(f"number out of range: {token!r}")
    return value


def parse_date(token: str) -> date | None:
    """Parse `YYYY-MM-DD` (or `DDMONYYYY`); empty means Missing."""
    text = token.strip()
    if text == "":
        return None
    try:
        m = _ISO_DATE_RE.match(text)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        m = _DATE9_RE.match(text)
        if m:
            return date(int(m.group(3)), month_from_abbr(m.group(2)), int(m.group(1)))
    except (ValueError, GrammarError) as exc:
        raise UnparsableValue(f"invalid date {token!r}: {exc}") from exc
    raise UnparsableValue(f"not a date: {token!r}")


def parse_datetime(token: str) -> datetime | None:
    """Parse `DDMonYYYY:HH:MM:SS` (ISO-8601 accepted as fallback); empty means Missing."""
    text = token.strip()
    if text == "":
        return None
    try:
        m = _DATETIME_RE.match(text)
        if m:
            return datetime(
                int(m.group(3)),
                month_from_abbr(m.group(2)),
                int(m.group(1)),
                int(m.group(4)),
                int(m.group(5)),
                int(m.group(6)),
            )
        parsed = datetime.fromisoformat(text)
    except (ValueError, GrammarError) as exc:
        raise UnparsableValue(f"invalid datetime {token!r}: {exc}") from exc
    if parsed.tzinfo is not None:
        raise UnparsableValue(f"timezone offsets are not supported: {token!r}")
    return parsed.replace(microsecond=0)


# -----------------------------------------------------------------------------
# Cells
# -----------------------------------------------------------------------------


def _is_missing(cell: Cell) -> bool:
    return cell is None or (isinstance(cell, float) and math.isnan(cell))


def _wrong_cell(column: ColumnDescriptor, kind: ColumnKind, cell: Cell) -> SchemaMismatch:
    return SchemaMismatch(
        f"column {column.name!r} ({kind.value}) cannot hold {type(cell).__name__} value {cell!r}"
    )


def calendar_value(kind: ColumnKind, cell: date | float | int) -> date | datetime:
    """
    Coerce a non-missing date/datetime cell to a calendar object for `kind`.

    Numbers are native values: days (date) or seconds (datetime) since 1960-01-01,
    fractions floored. A datetime under a date column keeps its date part; a date under a
    datetime column becomes midnight. Timezone-aware datetimes are converted to naive UTC.

    Raises:
        SchemaMismatch: If a native number is non-finite or outside the calendar range.
    """
    if isinstance(cell, datetime):
        if cell.tzinfo is not None:
            cell = cell.astimezone(timezone.utc).replace(tzinfo=None)
        if kind is ColumnKind.DATE:
            return cell.date()
        return cell.replace(microsecond=0)
    if isinstance(cell, date):
        if kind is ColumnKind.DATE:
            return cell
        return datetime(cell.year, cell.month, cell.day)
    try:
        if kind is ColumnKind.DATE:
            return NATIVE_EPOCH_DATE + timedelta(days=math.floor(cell))
        return NATIVE_EPOCH_DATETIME + timedelta(seconds=math.floor(cell))
    except (OverflowError, ValueError) as exc:
        raise SchemaMismatch(f"native value {cell!r} out of range for {kind.value}") from exc


def encode_cell(column: ColumnDescriptor, cell: Cell) -> str:
    """
    Render one cell for `column`.

    Raises:
        SchemaMismatch: If the cell variant does not fit the column's effective kind.
    """
    kind = column.effective_kind
    if not kind.is_numeric_like:
        if cell is None:
            return encode_text("")
        if not isinstance(cell, str):
            raise _wrong_cell(column, kind, cell)
        return encode_text(cell)

    if _is_missing(cell):
        return ""
    if not isinstance(cell, (int, float, date)):
        raise _wrong_cell(column, kind, cell)

    if kind is ColumnKind.NUMERIC:
        if isinstance(cell, date):
            raise _wrong_cell(column, kind, cell)
        return format_number(cell)

    value = calendar_value(kind, cell)
    if isinstance(value, datetime):
        return format_datetime(value)
    return format_date(value)


def decode_cell(column: ColumnDescriptor, token: str) -> Cell:
    """
    Parse one raw field token for `column`.

    Raises:
        UnescapeError: Bad quoting/escapes in a character field.
        UnparsableValue: Field does not parse under the column's kind.
    """
    kind = column.effective_kind
    if not kind.is_numeric_like:
        return decode_text(token)
    if is_quoted(token.strip()):
        raise UnparsableValue(f"quoted value in {kind.value} column: {token!r}")
    if kind is ColumnKind.NUMERIC:
        return parse_number(token)
    if kind is ColumnKind.DATE:
        return parse_date(token)
    return parse_datetime(token)


# -----------------------------------------------------------------------------
# Rows
# -----------------------------------------------------------------------------


def encode_row(row: Sequence[Cell], schema: TableSchema) -> str:
    """
    Render one row as a comma-joined line (without the cosmetic indent).

    Raises:
        SchemaMismatch: On a wrong cell count or a cell that does not fit its column.
    """
    if len(row) != len(schema.columns):
        raise SchemaMismatch(
            f"row has {len(row)} cells but schema {schema.schema_name!r} has {len(schema.columns)} columns"
        )
    return ",".join(encode_cell(col, cell) for col, cell in zip(schema.columns, row))


def decode_row(line: str, schema: TableSchema, *, line_number: int | None = None) -> Row:
    """
    Parse one row line against `schema`.

    Args:
        line (str): Row text with the cosmetic indent already removed.
        schema (TableSchema): Resolved schema.
        line_number (int | None): 1-based physical line, used in error messages.

    Returns:
        Row: One cell per column.

    Raises:
        SchemaMismatch: If the field count differs from the column count.
        UnescapeError | UnparsableValue: On a bad field (line/column filled in).
    """
    try:
        tokens = split_fields(line)
    except RowError as exc:
        raise exc.at(line_number=line_number) from exc
    if len(tokens) != len(schema.columns):
        where = f"line {line_number}: " if line_number is not None else ""
        raise SchemaMismatch(
            f"{where}row has {len(tokens)} fields but schema has {len(schema.columns)} columns"
        )
    cells: list[Cell] = []
    for col, token in zip(schema.columns, tokens):
        try:
            cells.append(decode_cell(col, token))
        except RowError as exc:
            raise exc.at(line_number=line_number, column=col.name) from exc
    return tuple(cells)


def format_header_line(schema: TableSchema, row_count: int) -> str:
    names = ",".join(schema.column_names)
    return f"{schema.schema_name}[{row_count}]{{{names}}}:"
