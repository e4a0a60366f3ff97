"""
Metadata codec: TableSchema <-> the indented `_metadata:` block and the table header line.

Encode
- encode_metadata() emits the marker, the top-level keys at 2 spaces, and one block per
  column (name at 4 spaces, attributes at 6 spaces in the order type, length, label, format).
- The `type:` attribute carries the effective kind (after date/datetime reclassification).

Decode
- MetadataParser is an explicit state machine over physical lines:

    START --"_metadata:"--> IN_METADATA --"column_info:"--> IN_COLUMN_BLOCK
    IN_METADATA | IN_COLUMN_BLOCK --header line--> DONE

  Indentation drives each line's meaning: 2 spaces is a top-level key, 4 spaces opens a
  column block (flushing the previous one), 6 spaces sets an attribute on the open column.
- The header line is the first line that contains all of `[ ] { }` and has the shape
  `NAME[rows]{a,b,c}:`. It closes the open column and ends the metadata.
- result() cross-checks the parsed column blocks against the declared `columns:` value and
  the header field list, and the header row count against `rows:`.

Notes
- Unknown keys, duplicate keys, and unexpected indentation are MalformedMetadata.
- Count or name disagreements are SchemaMismatch.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from pydantic import ValidationError

from .errors import GrammarError, MalformedMetadata, SchemaMismatch
from .grammar import (
    ATTR_FORMAT,
    ATTR_LABEL,
    ATTR_LENGTH,
    ATTR_TYPE,
    COLUMN_ATTRS,
    HEADER_CHARS,
    INDENT_ATTR,
    INDENT_COLUMN,
    INDENT_TOP,
    KEY_COLUMN_INFO,
    KEY_COLUMNS,
    KEY_DATASET_LABEL,
    KEY_ROWS,
    KEY_SCHEMA_NAME,
    KEY_SOURCE,
    METADATA_MARKER,
    TOP_LEVEL_KEYS,
    ColumnKind,
    column_kind_from_value,
)
from .types import ColumnDescriptor, TableSchema

__all__ = [
    "ParserState",
    "HeaderLine",
    "MetadataParser",
    "indent_of",
    "has_header_chars",
    "is_header_line",
    "parse_header_line",
    "encode_metadata",
    "decode_metadata",
]

log = logging.getLogger(__name__)

_HEADER_RE: Final = re.compile(r"^\s*([^\s,:\[\]{}\"]+)\[(\d+)\]\{([^{}]*)\}:\s*$")


class ParserState(str, Enum):
    START = "start"
    IN_METADATA = "in_metadata"
    IN_COLUMN_BLOCK = "in_column_block"
    DONE = "done"


@dataclass(frozen=True)
class HeaderLine:
    """Parsed `NAME[rows]{a,b,c}:` line."""

    schema_name: str
    row_count: int
    column_names: tuple[str, ...]


# -----------------------------------------------------------------------------
# Line predicates
# -----------------------------------------------------------------------------


def indent_of(line: str) -> int:
    """Length of the leading whitespace run."""
    return len(line) - len(line.lstrip())


def has_header_chars(line: str) -> bool:
    return HEADER_CHARS.issubset(line)


def is_header_line(line: str) -> bool:
    return has_header_chars(line) and _HEADER_RE.match(line) is not None


def parse_header_line(line: str, *, line_number: int | None = None) -> HeaderLine:
    """
    Parse a table header line.

    Raises:
        MalformedMetadata: If the line does not have the `NAME[rows]{a,b,c}:` shape.
    """
    m = _HEADER_RE.match(line)
    if m is None:
        raise MalformedMetadata(f"malformed table header line: {line.strip()!r}", line_number=line_number)
    body = m.group(3).strip()
    names = tuple(n.strip() for n in body.split(",")) if body else ()
    return HeaderLine(schema_name=m.group(1), row_count=int(m.group(2)), column_names=names)


# -----------------------------------------------------------------------------
# Encode
# -----------------------------------------------------------------------------


def encode_metadata(
    schema: TableSchema, *, row_count: int, source: str | None = None
) -> list[str]:
    """
    Render the metadata block for `schema`.

    Args:
        schema (TableSchema): Schema to describe.
        row_count (int): Value written as `rows:`.
        source (str | None): Fallback for `source:` when the schema carries none.

    Returns:
        list[str]: Lines without trailing newlines, starting with the `_metadata:` marker.
    """
    top = " " * INDENT_TOP
    col_pad = " " * INDENT_COLUMN
    attr_pad = " " * INDENT_ATTR

    lines = [METADATA_MARKER]
    src = schema.source or source
    if src:
        lines.append(f"{top}{KEY_SOURCE}: {src}")
    lines.append(f"{top}{KEY_SCHEMA_NAME}: {schema.schema_name}")
    if schema.dataset_label:
        lines.append(f"{top}{KEY_DATASET_LABEL}: {schema.dataset_label}")
    lines.append(f"{top}{KEY_COLUMNS}: {len(schema.columns)}")
    lines.append(f"{top}{KEY_ROWS}: {row_count}")
    lines.append(f"{top}{KEY_COLUMN_INFO}:")
    for col in schema.columns:
        kind = col.effective_kind
        lines.append(f"{col_pad}{col.name}:")
        lines.append(f"{attr_pad}{ATTR_TYPE}: {kind.value}")
        if kind is ColumnKind.CHARACTER:
            lines.append(f"{attr_pad}{ATTR_LENGTH}: {col.character_length}")
        if col.label:
            lines.append(f"{attr_pad}{ATTR_LABEL}: {col.label}")
        if col.display_format:
            lines.append(f"{attr_pad}{ATTR_FORMAT}: {col.display_format}")
    return lines


# -----------------------------------------------------------------------------
# Decode
# -----------------------------------------------------------------------------


@dataclass
class _OpenColumn:
    name: str
    line_number: int
    attrs: dict[str, str] = field(default_factory=dict)


def _split_key_value(body: str, line_number: int) -> tuple[str, str]:
    key, sep, value = body.partition(":")
    if not sep or not key.strip():
        raise MalformedMetadata(f"expected 'key: value', got {body!r}", line_number=line_number)
    return key.strip(), value.strip()


def _parse_count(raw: str, key: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise MalformedMetadata(f"{key!r} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise MalformedMetadata(f"{key!r} must be non-negative, got {value}")
    return value


class MetadataParser:
    """
    Line-at-a-time parser for the metadata block.

    Feed physical lines with feed(); it returns True once the table header line has been
    consumed. Then call result() for the validated schema.

    Examples:
        >>> p = MetadataParser()
        >>> lines = [
        ...     "_metadata:",
        ...     "  schema_name: T",
        ...     "  columns: 1",
        ...     "  rows: 0",
        ...     "  column_info:",
        ...     "    x:",
        ...     "      type: numeric",
        ...     "T[0]{x}:",
        ... ]
        >>> [p.feed(line, i) for i, line in enumerate(lines, start=1)][-1]
        True
        >>> p.result().column_names
        ['x']
    """

    def __init__(self) -> None:
        self.state = ParserState.START
        self.top: dict[str, str] = {}
        self.columns: list[ColumnDescriptor] = []
        self.header: HeaderLine | None = None
        self.header_line_number = 0
        self._open: _OpenColumn | None = None
        self._seen_column_info = False

    def feed(self, line: str, line_number: int) -> bool:
        if self.state is ParserState.DONE:
            raise MalformedMetadata("metadata already complete", line_number=line_number)
        body = line.strip()
        if not body:
            return False
        indent = indent_of(line)

        if self.state is ParserState.START:
            if body == METADATA_MARKER:
                self.state = ParserState.IN_METADATA
                return False
            raise MalformedMetadata(
                f"expected {METADATA_MARKER!r} before any other content, got {body!r}",
                line_number=line_number,
            )

        if has_header_chars(line):
            if _HEADER_RE.match(line):
                self._flush()
                self.header = parse_header_line(line, line_number=line_number)
                self.header_line_number = line_number
                self.state = ParserState.DONE
                return True
            if indent == 0:
                raise MalformedMetadata(
                    f"malformed table header line: {body!r}", line_number=line_number
                )

        key, value = _split_key_value(body, line_number)
        if indent == INDENT_TOP:
            self._top_level(key, value, line_number)
        elif indent == INDENT_COLUMN:
            self._open_column(key, value, line_number)
        elif indent == INDENT_ATTR:
            self._attribute(key, value, line_number)
        else:
            raise MalformedMetadata(f"unexpected indentation {indent}", line_number=line_number)
        return False

    def _top_level(self, key: str, value: str, line_number: int) -> None:
        self._flush()
        if key == KEY_COLUMN_INFO:
            if value:
                raise MalformedMetadata(
                    f"{KEY_COLUMN_INFO!r} takes no value, got {value!r}", line_number=line_number
                )
            if self._seen_column_info:
                raise MalformedMetadata(
                    f"duplicate {KEY_COLUMN_INFO!r} key", line_number=line_number
                )
            self._seen_column_info = True
            self.state = ParserState.IN_COLUMN_BLOCK
            return
        if key not in TOP_LEVEL_KEYS:
            raise MalformedMetadata(f"unknown metadata key {key!r}", line_number=line_number)
        if key in self.top:
            raise MalformedMetadata(f"duplicate metadata key {key!r}", line_number=line_number)
        self.top[key] = value
        self.state = ParserState.IN_METADATA

    def _open_column(self, name: str, value: str, line_number: int) -> None:
        if self.state is not ParserState.IN_COLUMN_BLOCK:
            raise MalformedMetadata(
                f"column block {name!r} outside {KEY_COLUMN_INFO!r}", line_number=line_number
            )
        if value:
            raise MalformedMetadata(
                f"column line must end with ':', got {name}: {value}", line_number=line_number
            )
        self._flush()
        self._open = _OpenColumn(name=name, line_number=line_number)

    def _attribute(self, key: str, value: str, line_number: int) -> None:
        if self.state is not ParserState.IN_COLUMN_BLOCK or self._open is None:
            raise MalformedMetadata(
                f"attribute {key!r} outside a column block", line_number=line_number
            )
        if key not in COLUMN_ATTRS:
            raise MalformedMetadata(f"unknown column attribute {key!r}", line_number=line_number)
        if key in self._open.attrs:
            raise MalformedMetadata(
                f"duplicate attribute {key!r} for column {self._open.name!r}",
                line_number=line_number,
            )
        self._open.attrs[key] = value

    def _flush(self) -> None:
        col = self._open
        if col is None:
            return
        self._open = None
        attrs = col.attrs
        if ATTR_TYPE not in attrs:
            raise MalformedMetadata(f"column {col.name!r} has no type", line_number=col.line_number)
        try:
            kind = column_kind_from_value(attrs[ATTR_TYPE])
            length = _parse_count(attrs[ATTR_LENGTH], ATTR_LENGTH) if ATTR_LENGTH in attrs else None
            descriptor = ColumnDescriptor(
                name=col.name,
                kind=kind,
                display_format=attrs.get(ATTR_FORMAT),
                label=attrs.get(ATTR_LABEL),
                character_length=length,
            )
        except (GrammarError, MalformedMetadata, ValidationError) as exc:
            raise MalformedMetadata(
                f"invalid column {col.name!r}: {exc}", line_number=col.line_number
            ) from exc
        self.columns.append(descriptor)

    def result(self) -> TableSchema:
        """
        Validate the parsed block and build the schema.

        Raises:
            MalformedMetadata: If no header line was seen or a top-level value is invalid.
            SchemaMismatch: If declared counts or header fields disagree with column blocks.
        """
        if self.state is not ParserState.DONE or self.header is None:
            if self.state is ParserState.START:
                raise MalformedMetadata(f"no {METADATA_MARKER!r} block found")
            raise MalformedMetadata("no table header line found")
        header = self.header
        parsed_names = [c.name for c in self.columns]

        schema_name = self.top.get(KEY_SCHEMA_NAME) or header.schema_name
        if schema_name.upper() != header.schema_name.upper():
            raise SchemaMismatch(
                f"header names table {header.schema_name!r} but schema_name is {schema_name!r}"
            )

        declared_cols: int | None = None
        if KEY_COLUMNS in self.top:
            declared_cols = _parse_count(self.top[KEY_COLUMNS], KEY_COLUMNS)
            if declared_cols != len(self.columns):
                raise SchemaMismatch(
                    f"declared columns: {declared_cols} but {len(self.columns)} column blocks parsed"
                )
        if len(header.column_names) != len(self.columns):
            raise SchemaMismatch(
                f"header lists {len(header.column_names)} columns but {len(self.columns)} column blocks parsed"
            )
        if list(header.column_names) != parsed_names:
            raise SchemaMismatch(
                f"header columns {list(header.column_names)!r} != column blocks {parsed_names!r}"
            )

        declared_rows = header.row_count
        if KEY_ROWS in self.top:
            declared_rows = _parse_count(self.top[KEY_ROWS], KEY_ROWS)
            if declared_rows != header.row_count:
                raise SchemaMismatch(
                    f"declared rows: {declared_rows} but header says [{header.row_count}]"
                )

        try:
            schema = TableSchema(
                schema_name=schema_name,
                columns=tuple(self.columns),
                dataset_label=self.top.get(KEY_DATASET_LABEL),
                source=self.top.get(KEY_SOURCE),
                declared_row_count=declared_rows,
                declared_column_count=len(self.columns),
            )
        except ValidationError as exc:
            raise MalformedMetadata(f"invalid schema: {exc}") from exc
        log.debug(
            "parsed metadata for %s: %d columns, %d declared rows",
            schema.schema_name,
            len(schema.columns),
            declared_rows,
        )
        return schema


def decode_metadata(lines: Iterable[str]) -> tuple[TableSchema, int]:
    """
    Parse the metadata block from the start of `lines`.

    Args:
        lines (Iterable[str]): Physical lines (newlines optional).

    Returns:
        tuple[TableSchema, int]: The schema and the 1-based line number of the header line;
        row data starts on the following line.

    Raises:
        MalformedMetadata | SchemaMismatch: See MetadataParser.result.
    """
    parser = MetadataParser()
    for line_number, line in enumerate(lines, start=1):
        if parser.feed(line.rstrip("\r\n"), line_number):
            break
    return parser.result(), parser.header_line_number
