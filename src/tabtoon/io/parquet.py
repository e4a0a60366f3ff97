"""
Parquet files as the native dataset catalog for tabtoon tables.

Overview
- write_parquet(): Table -> Arrow table whose field metadata carries each column's catalog
  attributes, written with tmp -> fsync -> atomic rename.
- read_parquet(): reads those attributes back and rebuilds the Table through
  tabtoon.io.frames.table_from_frame.

Metadata keys
- Field level:  tabtoon.kind, tabtoon.label, tabtoon.format, tabtoon.length
- Schema level: tabtoon.schema_name, tabtoon.dataset_label, tabtoon.source

Notes
- Parquet files written by other tools are accepted: missing metadata falls back to the
  dtype mapping in tabtoon.io.frames and the file stem as schema name.
- Compression comes from ToonSettings.compression.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from tabtoon.core.types import Table

from .config import ToonSettings
from .errors import IoSchemaError
from .frames import ColumnHint, frame_from_table, table_from_frame
from .fs import require_file, require_path, write_atomic

__all__ = [
    "FIELD_KIND",
    "FIELD_LABEL",
    "FIELD_FORMAT",
    "FIELD_LENGTH",
    "TABLE_SCHEMA_NAME",
    "TABLE_DATASET_LABEL",
    "TABLE_SOURCE",
    "to_arrow",
    "write_parquet",
    "read_parquet",
]

log = logging.getLogger(__name__)

FIELD_KIND = b"tabtoon.kind"
FIELD_LABEL = b"tabtoon.label"
FIELD_FORMAT = b"tabtoon.format"
FIELD_LENGTH = b"tabtoon.length"

TABLE_SCHEMA_NAME = b"tabtoon.schema_name"
TABLE_DATASET_LABEL = b"tabtoon.dataset_label"
TABLE_SOURCE = b"tabtoon.source"


def to_arrow(table: Table) -> pa.Table:
    """Convert `table` to an Arrow table with tabtoon catalog metadata attached."""
    arrow = frame_from_table(table).to_arrow()
    fields: list[pa.Field] = []
    for field, col in zip(arrow.schema, table.schema.columns):
        meta: dict[bytes, bytes] = {FIELD_KIND: col.effective_kind.value.encode()}
        if col.label:
            meta[FIELD_LABEL] = col.label.encode()
        if col.display_format:
            meta[FIELD_FORMAT] = col.display_format.encode()
        if col.character_length is not None:
            meta[FIELD_LENGTH] = str(col.character_length).encode()
        fields.append(field.with_metadata(meta))

    schema_meta: dict[bytes, bytes] = {TABLE_SCHEMA_NAME: table.schema.schema_name.encode()}
    if table.schema.dataset_label:
        schema_meta[TABLE_DATASET_LABEL] = table.schema.dataset_label.encode()
    if table.schema.source:
        schema_meta[TABLE_SOURCE] = table.schema.source.encode()
    return pa.Table.from_arrays(arrow.columns, schema=pa.schema(fields, metadata=schema_meta))


def write_parquet(
    table: Table,
    path: str | os.PathLike[str],
    settings: ToonSettings | None = None,
) -> str:
    """
    Write `table` as a Parquet file with catalog metadata.

    Args:
        table (Table): Table to persist.
        path (str | PathLike): Destination file.
        settings (ToonSettings | None): Supplies the compression codec.

    Returns:
        str: The destination path.

    Raises:
        MissingRequiredInput: If path is empty.
        IoWriteError: If the atomic write fails.
    """
    settings = settings or ToonSettings()
    dest = require_path(path, what="output path")
    arrow = to_arrow(table)
    write_atomic(dest, lambda tmp: pq.write_table(arrow, tmp, compression=settings.compression))
    log.info("wrote %s (%d rows) to %s", table.schema.schema_name, len(table), dest)
    return dest


def _text(meta: dict[bytes, bytes], key: bytes) -> str | None:
    raw = meta.get(key)
    return raw.decode("utf-8") if raw is not None else None


def _hint_for(field: pa.Field) -> ColumnHint:
    meta = dict(field.metadata or {})
    length_raw = _text(meta, FIELD_LENGTH)
    try:
        length = int(length_raw) if length_raw is not None else None
    except ValueError as exc:
        raise IoSchemaError(f"field {field.name!r} has invalid length {length_raw!r}") from exc
    return ColumnHint(
        kind=_text(meta, FIELD_KIND),
        label=_text(meta, FIELD_LABEL),
        display_format=_text(meta, FIELD_FORMAT),
        character_length=length,
    )


def read_parquet(path: str | os.PathLike[str], *, schema_name: str | None = None) -> Table:
    """
    Read a Parquet file into a Table, honouring tabtoon catalog metadata when present.

    Args:
        path (str | PathLike): Parquet file.
        schema_name (str | None): Overrides the stored schema name (default: metadata,
            then the file stem).

    Returns:
        Table

    Raises:
        MissingRequiredInput: If path is empty.
        ResourceNotFound: If the file does not exist.
        IoSchemaError: If a column cannot be mapped to a tabtoon kind.
    """
    src = require_file(path)
    arrow = pq.read_table(src)
    meta = dict(arrow.schema.metadata or {})
    name = schema_name or _text(meta, TABLE_SCHEMA_NAME) or Path(src).stem
    hints = {field.name: _hint_for(field) for field in arrow.schema}
    df = pl.from_arrow(arrow)
    if not isinstance(df, pl.DataFrame):
        raise IoSchemaError(f"{src} did not load as a table")
    table = table_from_frame(
        df,
        name,
        dataset_label=_text(meta, TABLE_DATASET_LABEL),
        source=_text(meta, TABLE_SOURCE),
        hints=hints,
    )
    log.info("read %s (%d rows) from %s", table.schema.schema_name, len(table), src)
    return table
