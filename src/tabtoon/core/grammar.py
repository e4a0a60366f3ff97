"""
Canonical tabtoon wire grammar and helpers.

Defines the column kinds, the metadata key vocabulary, indentation levels, and the
Date/DateTime reclassification heuristic. Zero-IO; validators across tabtoon.core.types
and the codecs call these helpers.

Wire layout
-----------
```
_metadata:
  source: <string>
  schema_name: <identifier>
  dataset_label: <string>
  columns: <integer>
  rows: <integer>
  column_info:
    <column-name>:
      type: numeric|character|date|datetime
      length: <integer>
      label: <string>
      format: <string>
<SCHEMA_NAME>[<rowcount>]{<col1>,...,<colN>}:
  <row fields>
```

Naming policy
-------------
- Enum classes: PascalCase; member names: UPPER_SNAKE.
- Enum serialized values (the `type:` attribute on the wire): lower_snake.
- Metadata keys: lower_snake.

Reclassification
----------------
A Numeric column is treated as DateTime when its display format name contains
`DATETIME` or `DTDATE`, else as Date when it contains `DATE`. The match is a
case-insensitive substring test, so any format name that happens to contain `DATE`
is reclassified (e.g. `UPDATED8.`). This is a heuristic, not a format registry.

Examples
--------
>>> from tabtoon.core.grammar import ColumnKind, column_kind_from_value, reclassify_kind
>>> column_kind_from_value(" Character ") == ColumnKind.CHARACTER
True
>>> reclassify_kind(ColumnKind.NUMERIC, "datetime20.").value
'datetime'
>>> reclassify_kind(ColumnKind.NUMERIC, "DATE9.").value
'date'
>>> reclassify_kind(ColumnKind.NUMERIC, "BEST12.").value
'numeric'
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Final

from .errors import GrammarError

__all__ = [
    "ColumnKind",
    "METADATA_MARKER",
    "KEY_SOURCE",
    "KEY_SCHEMA_NAME",
    "KEY_DATASET_LABEL",
    "KEY_COLUMNS",
    "KEY_ROWS",
    "KEY_COLUMN_INFO",
    "ATTR_TYPE",
    "ATTR_LENGTH",
    "ATTR_LABEL",
    "ATTR_FORMAT",
    "TOP_LEVEL_KEYS",
    "COLUMN_ATTRS",
    "INDENT_TOP",
    "INDENT_COLUMN",
    "INDENT_ATTR",
    "ROW_INDENT",
    "HEADER_CHARS",
    "MONTH_ABBR",
    "column_kind_from_value",
    "reclassify_kind",
    "is_valid_column_name",
    "assert_column_name",
    "assert_single_line",
    "month_from_abbr",
]


class ColumnKind(str, Enum):
    """Semantic type tag governing a column's encode/decode rules."""

    NUMERIC = "numeric"
    CHARACTER = "character"
    DATE = "date"
    DATETIME = "datetime"

    @property
    def is_numeric_like(self) -> bool:
        """True for kinds whose empty field means Missing (everything but Character)."""
        return self is not ColumnKind.CHARACTER


# -----------------------------------------------------------------------------
# Metadata vocabulary
# -----------------------------------------------------------------------------

METADATA_MARKER: Final[str] = "_metadata:"

KEY_SOURCE: Final[str] = "source"
KEY_SCHEMA_NAME: Final[str] = "schema_name"
KEY_DATASET_LABEL: Final[str] = "dataset_label"
KEY_COLUMNS: Final[str] = "columns"
KEY_ROWS: Final[str] = "rows"
KEY_COLUMN_INFO: Final[str] = "column_info"

ATTR_TYPE: Final[str] = "type"
ATTR_LENGTH: Final[str] = "length"
ATTR_LABEL: Final[str] = "label"
ATTR_FORMAT: Final[str] = "format"

TOP_LEVEL_KEYS: Final[frozenset[str]] = frozenset(
    {KEY_SOURCE, KEY_SCHEMA_NAME, KEY_DATASET_LABEL, KEY_COLUMNS, KEY_ROWS, KEY_COLUMN_INFO}
)
COLUMN_ATTRS: Final[frozenset[str]] = frozenset({ATTR_TYPE, ATTR_LENGTH, ATTR_LABEL, ATTR_FORMAT})

# Leading-space counts for each metadata level.
INDENT_TOP: Final[int] = 2
INDENT_COLUMN: Final[int] = 4
INDENT_ATTR: Final[int] = 6

# Cosmetic prefix on row lines.
ROW_INDENT: Final[str] = "  "

# A table header line carries all of these.
HEADER_CHARS: Final[frozenset[str]] = frozenset("[]{}")

MONTH_ABBR: Final[tuple[str, ...]] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
_MONTH_BY_ABBR: Final[dict[str, int]] = {m.upper(): i for i, m in enumerate(MONTH_ABBR, start=1)}

# Ordered: DATETIME tokens must win over the bare DATE token.
_DATETIME_TOKENS: Final[tuple[str, ...]] = ("DATETIME", "DTDATE")
_DATE_TOKENS: Final[tuple[str, ...]] = ("DATE",)

# Names appear in the header field list and before a colon in column blocks.
_NAME_FORBIDDEN_RE = re.compile(r"[\s,:\[\]{}\"]")


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def column_kind_from_value(value: str | ColumnKind) -> ColumnKind:
    """
    Normalize a wire `type:` value (or enum) to ColumnKind.

    Args:
        value (str | ColumnKind): Raw type string; case and surrounding whitespace ignored.

    Returns:
        ColumnKind: Canonical kind.

    Raises:
        GrammarError: If the value is not one of numeric/character/date/datetime.
    """
    if isinstance(value, ColumnKind):
        return value
    norm = str(value).strip().lower()
    try:
        return ColumnKind(norm)
    except ValueError as exc:
        allowed = ", ".join(k.value for k in ColumnKind)
        raise GrammarError(f"unknown column type {value!r} (expected one of: {allowed})") from exc


def reclassify_kind(kind: ColumnKind, display_format: str | None) -> ColumnKind:
    """
    Apply the display-format heuristic to a Numeric kind.

    Args:
        kind (ColumnKind): Declared kind.
        display_format (str | None): Display format name, if any.

    Returns:
        ColumnKind: DATETIME or DATE for matching Numeric columns; otherwise `kind` unchanged.
    """
    if kind is not ColumnKind.NUMERIC or not display_format:
        return kind
    name = display_format.upper()
    if any(token in name for token in _DATETIME_TOKENS):
        return ColumnKind.DATETIME
    if any(token in name for token in _DATE_TOKENS):
        return ColumnKind.DATE
    return kind


def is_valid_column_name(name: str) -> bool:
    return bool(name) and _NAME_FORBIDDEN_RE.search(name) is None


def assert_column_name(name: str, *, what: str = "column name") -> str:
    """Raise GrammarError unless `name` can be written into a header and a column block."""
    if not is_valid_column_name(name):
        raise GrammarError(
            f"{what} must be non-empty without whitespace or any of , : [ ] {{ }} \", got {name!r}"
        )
    return name


def assert_single_line(value: str, *, what: str) -> str:
    if "\n" in value or "\r" in value:
        raise GrammarError(f"{what} must not contain line breaks, got {value!r}")
    return value


def month_from_abbr(abbr: str) -> int:
    """Map a 3-letter English month name (any case) to 1..12; GrammarError otherwise."""
    try:
        return _MONTH_BY_ABBR[abbr.upper()]
    except KeyError as exc:
        raise GrammarError(f"unknown month abbreviation {abbr!r}") from exc
