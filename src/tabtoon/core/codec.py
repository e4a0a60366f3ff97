"""
Table codec: whole-file encode/decode composed from the metadata and row codecs.

Overview
- iter_encode()/encode_table(): metadata block, header line, then one indented line per row.
- decode_lines(): feeds lines to MetadataParser until the header line, then decodes each
  following line as a row. Works on any iterable of lines, so files can be streamed.
- decode_table(): convenience wrapper over a full text that aborts on the first error.

Row-error policy
- on_row_error="raise" (default): the first UnescapeError/UnparsableValue aborts the decode.
- on_row_error="collect": bad rows are skipped, logged, and returned in DecodeResult.errors
  in line order.
- SchemaMismatch and MalformedMetadata always abort, whatever the policy.

Row count
- A declared `rows:` value that disagrees with the number of row lines is logged as a
  warning, or raised as SchemaMismatch when strict_row_count=True. The decoded schema's
  declared counts always describe the rows actually returned.

Notes
- Text is split on "\\n" only; other Unicode line separators may appear inside values.
- Completely empty lines after the header are skipped; a row whose only column is a
  missing number is written as the bare indent and is still a row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

from .errors import RowError, SchemaMismatch
from .grammar import ROW_INDENT
from .metadata import MetadataParser, encode_metadata
from .rows import decode_row, encode_row, format_header_line
from .types import Row, Table

__all__ = [
    "OnRowError",
    "DecodeResult",
    "iter_encode",
    "encode_table",
    "decode_lines",
    "decode_table",
]

log = logging.getLogger(__name__)

OnRowError = Literal["raise", "collect"]
_ROW_ERROR_POLICIES = ("raise", "collect")


@dataclass(frozen=True)
class DecodeResult:
    """
    Output of a decode.

    Attributes:
        table (Table): Decoded table (bad rows excluded under the collect policy).
        errors (tuple[RowError, ...]): Skipped-row errors, in line order.
    """

    table: Table
    errors: tuple[RowError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def iter_encode(table: Table, *, source: str | None = None) -> Iterator[str]:
    """
    Yield the lines (without newlines) of the text form of `table`.

    Raises:
        SchemaMismatch: When a cell does not fit its column. Lines already yielded are
            incomplete output; use encode_table() to get all-or-nothing behaviour.
    """
    schema = table.schema
    n = len(table.rows)
    yield from encode_metadata(schema, row_count=n, source=source)
    yield format_header_line(schema, n)
    for row in table.rows:
        yield ROW_INDENT + encode_row(row, schema)


def encode_table(table: Table, *, source: str | None = None) -> str:
    """
    Encode `table` to text, newline-terminated.

    Args:
        table (Table): Table to encode.
        source (str | None): `source:` value used when the schema carries none.

    Returns:
        str: Complete file text.

    Raises:
        SchemaMismatch: On any invalid cell; nothing is returned in that case.

    Examples:
        >>> from tabtoon.core.types import ColumnDescriptor, TableSchema, Table
        >>> schema = TableSchema(
        ...     schema_name="t",
        ...     columns=[ColumnDescriptor(name="a", kind="numeric")],
        ... )
        >>> print(encode_table(Table(schema, [(1.0,), (2.5,)])), end="")
        _metadata:
          schema_name: T
          columns: 1
          rows: 2
          column_info:
            a:
              type: numeric
        T[2]{a}:
          1
          2.5
    """
    lines = list(iter_encode(table, source=source))
    log.debug("encoded %s: %d lines", table.schema.schema_name, len(lines))
    return "\n".join(lines) + "\n"


def decode_lines(
    lines: Iterable[str],
    *,
    on_row_error: OnRowError = "raise",
    strict_row_count: bool = False,
) -> DecodeResult:
    """
    Decode a table from physical lines.

    Args:
        lines (Iterable[str]): Lines of the file; trailing "\\r\\n"/"\\n" are ignored.
        on_row_error ("raise" | "collect"): Row-error policy.
        strict_row_count (bool): Raise SchemaMismatch when `rows:` disagrees with the data.

    Returns:
        DecodeResult: Table plus any skipped-row errors.

    Raises:
        ValueError: Unknown on_row_error policy.
        MalformedMetadata | SchemaMismatch: Structural failures.
        UnescapeError | UnparsableValue: Row failures under the "raise" policy.
    """
    if on_row_error not in _ROW_ERROR_POLICIES:
        raise ValueError(f"on_row_error must be one of {_ROW_ERROR_POLICIES}, got {on_row_error!r}")

    it = iter(lines)
    parser = MetadataParser()
    line_number = 0
    for raw in it:
        line_number += 1
        if parser.feed(raw.rstrip("\r\n"), line_number):
            break
    schema = parser.result()

    rows: list[Row] = []
    errors: list[RowError] = []
    for raw in it:
        line_number += 1
        line = raw.rstrip("\r\n")
        if not line:
            continue
        body = line[len(ROW_INDENT) :] if line.startswith(ROW_INDENT) else line
        try:
            rows.append(decode_row(body, schema, line_number=line_number))
        except RowError as exc:
            if on_row_error == "raise":
                raise
            log.warning("skipping row: %s", exc)
            errors.append(exc)

    row_lines = len(rows) + len(errors)
    declared = schema.declared_row_count
    if declared is not None and declared != row_lines:
        msg = f"{schema.schema_name}: declared rows: {declared} but found {row_lines} row lines"
        if strict_row_count:
            raise SchemaMismatch(msg)
        log.warning(msg)
    if declared != len(rows):
        schema = schema.with_counts(len(rows))

    log.debug(
        "decoded %s: %d rows, %d skipped", schema.schema_name, len(rows), len(errors)
    )
    return DecodeResult(table=Table(schema, tuple(rows)), errors=tuple(errors))


def decode_table(text: str, *, strict_row_count: bool = False) -> Table:
    """
    Decode a complete text, aborting on the first error of any kind.

    Raises:
        MalformedMetadata | SchemaMismatch | UnescapeError | UnparsableValue
    """
    return decode_lines(text.split("\n"), strict_row_count=strict_row_count).table
