"""
Polars adapters: DataFrame <-> Table (the dataset source and sink for the codec).

Overview
- table_from_frame(): derives a TableSchema from frame dtypes plus optional per-column
  hints (label, display format, character length, kind) and snapshots the rows.
- frame_from_table(): materializes a decoded Table as a DataFrame.
- hints_from_schema(): captures the catalog attributes a frame cannot carry, so a
  DataFrame -> Table -> DataFrame -> Table cycle can restore them.

Dtype mapping
- integer/float/boolean/null   -> numeric
- String/Categorical/Enum      -> character (length = max UTF-8 byte length, at least 1)
- Date                         -> date (format DATE9.)
- Datetime                     -> datetime (format DATETIME20.; tz-aware values converted to UTC)
- Decimal                      -> numeric (cast to Float64)
- anything else                -> IoSchemaError

Notes
- Decoded numeric columns are Float64; calendar columns are Date and Datetime("us").
- Numeric columns reclassified to date/datetime by a hint are materialized as calendar
  columns (native numbers are converted through the 1960-01-01 epoch).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import polars as pl
from pydantic import ValidationError

from tabtoon.core.constants import DEFAULT_DATE_FORMAT, DEFAULT_DATETIME_FORMAT
from tabtoon.core.errors import GrammarError
from tabtoon.core.grammar import ColumnKind, column_kind_from_value
from tabtoon.core.rows import calendar_value
from tabtoon.core.types import Cell, ColumnDescriptor, Table, TableSchema

from .errors import IoSchemaError, MissingRequiredInput

__all__ = [
    "ColumnHint",
    "kind_for_dtype",
    "table_from_frame",
    "frame_from_table",
    "hints_from_schema",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnHint:
    """
    Catalog attributes for one column that a polars dtype cannot express.

    Attributes:
        kind (ColumnKind | str | None): Overrides the dtype-derived kind.
        label (str | None): Column label.
        display_format (str | None): Display format name (drives date/datetime reclassification).
        character_length (int | None): Capacity for character columns.
    """

    kind: ColumnKind | str | None = None
    label: str | None = None
    display_format: str | None = None
    character_length: int | None = None


def _coerce_hint(name: str, hint: ColumnHint | Mapping[str, Any]) -> ColumnHint:
    if isinstance(hint, ColumnHint):
        return hint
    if isinstance(hint, Mapping):
        unknown = set(hint) - {"kind", "label", "display_format", "character_length"}
        if unknown:
            raise IoSchemaError(f"unknown hint keys for column {name!r}: {sorted(unknown)!r}")
        return ColumnHint(**dict(hint))
    raise IoSchemaError(f"hint for column {name!r} must be a ColumnHint or mapping")


def kind_for_dtype(dtype: pl.DataType) -> ColumnKind:
    """
    Map a polars dtype to a column kind.

    Raises:
        IoSchemaError: For nested, binary, time-of-day, duration, or object dtypes.
    """
    if dtype == pl.Date:
        return ColumnKind.DATE
    if dtype == pl.Datetime:
        return ColumnKind.DATETIME
    if dtype == pl.Boolean or dtype == pl.Null or dtype.is_numeric():
        return ColumnKind.NUMERIC
    if dtype == pl.String or dtype == pl.Categorical or dtype == pl.Enum:
        return ColumnKind.CHARACTER
    raise IoSchemaError(f"unsupported dtype {dtype}")


def _max_byte_length(series: pl.Series) -> int:
    longest = series.cast(pl.String).str.len_bytes().max()
    return max(int(longest or 0), 1)  # type: ignore[arg-type]


def _normalize_dtypes(df: pl.DataFrame) -> pl.DataFrame:
    exprs = []
    for name, dtype in df.schema.items():
        if dtype == pl.Datetime and getattr(dtype, "time_zone", None):
            exprs.append(pl.col(name).dt.convert_time_zone("UTC").dt.replace_time_zone(None))
        elif dtype == pl.Decimal:
            exprs.append(pl.col(name).cast(pl.Float64))
    if not exprs:
        return df
    log.debug("normalizing %d columns (tz-aware datetimes, decimals)", len(exprs))
    return df.with_columns(exprs)


def table_from_frame(
    df: pl.DataFrame,
    schema_name: str,
    *,
    dataset_label: str | None = None,
    source: str | None = None,
    hints: Mapping[str, ColumnHint | Mapping[str, Any]] | None = None,
) -> Table:
    """
    Snapshot a polars DataFrame as a Table.

    Args:
        df (pl.DataFrame): Source frame; column order becomes schema order.
        schema_name (str): Table identifier (upper-cased in the schema).
        dataset_label (str | None): Optional table description.
        source (str | None): Optional provenance string.
        hints (Mapping[str, ColumnHint | Mapping] | None): Per-column catalog overrides.

    Returns:
        Table: Schema derived from dtypes and hints, rows from df.iter_rows().

    Raises:
        MissingRequiredInput: If schema_name is empty.
        IoSchemaError: On unsupported dtypes, hints for unknown columns, or descriptors
            that fail validation (e.g., a column name containing a comma).
    """
    if not schema_name or not str(schema_name).strip():
        raise MissingRequiredInput("schema_name is required")
    hints = dict(hints or {})
    unknown = set(hints) - set(df.columns)
    if unknown:
        raise IoSchemaError(f"hints given for unknown columns: {sorted(unknown)!r}")

    df = _normalize_dtypes(df)
    columns: list[ColumnDescriptor] = []
    for name, dtype in df.schema.items():
        hint = _coerce_hint(name, hints.get(name, ColumnHint()))
        try:
            kind = column_kind_from_value(hint.kind) if hint.kind is not None else kind_for_dtype(dtype)
        except GrammarError as exc:
            raise IoSchemaError(f"column {name!r}: {exc}") from exc
        fmt = hint.display_format
        if fmt is None and hint.kind is None:
            if kind is ColumnKind.DATE:
                fmt = DEFAULT_DATE_FORMAT
            elif kind is ColumnKind.DATETIME:
                fmt = DEFAULT_DATETIME_FORMAT
        length = hint.character_length
        if kind is ColumnKind.CHARACTER and length is None:
            length = _max_byte_length(df.get_column(name))
        try:
            columns.append(
                ColumnDescriptor(
                    name=name,
                    kind=kind,
                    display_format=fmt,
                    label=hint.label,
                    character_length=length if kind is ColumnKind.CHARACTER else None,
                )
            )
        except ValidationError as exc:
            raise IoSchemaError(f"column {name!r} cannot be described: {exc}") from exc

    try:
        schema = TableSchema(
            schema_name=schema_name,
            columns=tuple(columns),
            dataset_label=dataset_label,
            source=source,
        )
    except ValidationError as exc:
        raise IoSchemaError(f"invalid schema for {schema_name!r}: {exc}") from exc

    rows = tuple(df.iter_rows())
    log.debug("snapshotted frame as %s: %d rows x %d columns", schema.schema_name, len(rows), len(columns))
    return Table(schema, rows)


_FRAME_DTYPES: dict[ColumnKind, Any] = {
    ColumnKind.NUMERIC: pl.Float64,
    ColumnKind.CHARACTER: pl.String,
    ColumnKind.DATE: pl.Date,
    ColumnKind.DATETIME: pl.Datetime("us"),
}


def _frame_values(kind: ColumnKind, values: list[Cell]) -> list[Any]:
    if kind is ColumnKind.CHARACTER:
        return [("" if v is None else v) for v in values]
    if kind is ColumnKind.NUMERIC:
        return [None if v is None else float(v) for v in values]  # type: ignore[arg-type]
    out: list[Any] = []
    for v in values:
        if v is None or (isinstance(v, float) and v != v):
            out.append(None)
        else:
            out.append(calendar_value(kind, v))  # type: ignore[arg-type]
    return out


def frame_from_table(table: Table) -> pl.DataFrame:
    """
    Materialize `table` as a polars DataFrame.

    Returns:
        pl.DataFrame: One column per schema column, dtypes by effective kind.
    """
    series: list[pl.Series] = []
    for idx, col in enumerate(table.schema.columns):
        kind = col.effective_kind
        values = _frame_values(kind, [row[idx] for row in table.rows])
        series.append(pl.Series(col.name, values, dtype=_FRAME_DTYPES[kind]))
    return pl.DataFrame(series)


def hints_from_schema(schema: TableSchema) -> dict[str, ColumnHint]:
    """Per-column hints that reproduce `schema`'s catalog attributes on a frame."""
    return {
        col.name: ColumnHint(
            kind=col.effective_kind,
            label=col.label,
            display_format=col.display_format,
            character_length=col.character_length,
        )
        for col in schema.columns
    }
