"""
Type model for tabtoon tables: column descriptors, table schemas, cells, rows, tables.

Responsibilities
- Define ColumnDescriptor and TableSchema as frozen Pydantic v2 models whose validators
  enforce the construction-time invariants (names, single-line metadata values,
  character length present iff kind is character, unique column names).
- Define the Cell/Row aliases and the immutable Table container.

Cells
- Cells are plain Python values:
    - None      -> Missing (numeric/date/datetime columns)
    - str       -> Text (character columns; "" is a legitimate value)
    - float/int -> Number
    - date      -> CalendarDate
    - datetime  -> Timestamp
- A character column never decodes to None: missing and empty text are the same wire form.

Style
- Zero-IO (stdlib + pydantic only).
- Validators raise GrammarError/SchemaError; pydantic surfaces them as ValidationError.
- Table raises SchemaMismatch directly since it is a plain dataclass.

Examples
    >>> from tabtoon.core.types import ColumnDescriptor, TableSchema, Table
    >>> schema = TableSchema(
    ...     schema_name="people",
    ...     columns=[
    ...         ColumnDescriptor(name="id", kind="character", character_length=5),
    ...         ColumnDescriptor(name="age", kind="numeric"),
    ...     ],
    ... )
    >>> schema.schema_name
    'PEOPLE'
    >>> t = Table(schema, [("00123", 41.0), ("", None)])
    >>> t.schema.declared_row_count, t.schema.declared_column_count
    (2, 2)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from .errors import SchemaError, SchemaMismatch
from .grammar import (
    ColumnKind,
    assert_column_name,
    assert_single_line,
    column_kind_from_value,
    reclassify_kind,
)

__all__ = [
    "Cell",
    "Row",
    "ColumnDescriptor",
    "TableSchema",
    "Table",
]

Cell = Union[None, str, float, int, date, datetime]
Row = tuple[Cell, ...]


class ColumnDescriptor(BaseModel):
    """
    One column of a table schema.

    Attributes:
        name (str): Column name; unique within a table, order-significant.
        kind (ColumnKind): Declared kind (string values are normalized).
        display_format (str | None): Display format name (e.g. "DATE9.", "DATETIME20.").
        label (str | None): Human-readable description.
        character_length (int | None): Capacity for character columns; required iff
            kind is character.

    Raises:
        pydantic.ValidationError: Wrapping GrammarError (bad name/kind, multi-line values)
            or SchemaError (character_length rules).

    Notes:
        `effective_kind` is the kind written to the wire: Numeric columns are reclassified
        to Date/DateTime from their display format (see tabtoon.core.grammar.reclassify_kind).

    Examples:
        >>> from tabtoon.core.types import ColumnDescriptor
        >>> ColumnDescriptor(name="visit", kind="numeric", display_format="DATE9.").effective_kind.value
        'date'
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    kind: ColumnKind
    display_format: str | None = None
    label: str | None = None
    character_length: int | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        return assert_column_name(v.strip())

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> Any:
        if v is None:
            return v
        return column_kind_from_value(v)

    @field_validator("display_format", "label", mode="before")
    @classmethod
    def _single_line_optional(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return v
        text = str(v).strip()
        if not text:
            return None
        return assert_single_line(text, what=info.field_name)

    @model_validator(mode="after")
    def _check_length(self) -> ColumnDescriptor:
        if self.kind is ColumnKind.CHARACTER:
            if self.character_length is None:
                raise SchemaError(f"character column {self.name!r} requires character_length")
            if self.character_length < 1:
                raise SchemaError(
                    f"character_length must be positive for {self.name!r}, got {self.character_length}"
                )
        elif self.character_length is not None:
            raise SchemaError(
                f"character_length is only valid for character columns ({self.name!r} is {self.kind.value})"
            )
        return self

    @property
    def effective_kind(self) -> ColumnKind:
        return reclassify_kind(self.kind, self.display_format)


class TableSchema(BaseModel):
    """
    Ordered column descriptors plus table-level attributes.

    Attributes:
        schema_name (str): Table identifier, upper-cased on construction.
        columns (tuple[ColumnDescriptor, ...]): Column order fixes header and row alignment.
        dataset_label (str | None): Optional table description.
        source (str | None): Optional provenance string (written as `source:`).
        declared_row_count (int | None): Row count asserted by metadata (advisory).
        declared_column_count (int | None): Column count asserted by metadata.

    Raises:
        pydantic.ValidationError: Wrapping GrammarError (bad schema name, multi-line values)
            or SchemaError (duplicate column names).

    Notes:
        Count agreement is not checked here: the table codec needs to build a schema from a
        file whose declared counts may be wrong and report that as SchemaMismatch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_name: str
    columns: tuple[ColumnDescriptor, ...] = Field(default_factory=tuple)
    dataset_label: str | None = None
    source: str | None = None
    declared_row_count: int | None = Field(default=None, ge=0)
    declared_column_count: int | None = Field(default=None, ge=0)

    @field_validator("schema_name", mode="before")
    @classmethod
    def _normalize_schema_name(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        return assert_column_name(v.strip(), what="schema name").upper()

    @field_validator("dataset_label", "source", mode="before")
    @classmethod
    def _single_line_optional(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return v
        text = str(v).strip()
        if not text:
            return None
        return assert_single_line(text, what=info.field_name)

    @model_validator(mode="after")
    def _check_unique_names(self) -> TableSchema:
        seen: set[str] = set()
        dupes: list[str] = []
        for col in self.columns:
            if col.name in seen:
                dupes.append(col.name)
            seen.add(col.name)
        if dupes:
            raise SchemaError(f"duplicate column names: {dupes!r}")
        return self

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnDescriptor:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"unknown column: {name!r}")

    def with_counts(self, rows: int) -> TableSchema:
        """Return a copy with both declared counts set from the data."""
        return self.model_copy(
            update={"declared_row_count": rows, "declared_column_count": len(self.columns)}
        )


@dataclass(frozen=True)
class Table:
    """
    Immutable schema + rows pair produced by one conversion call.

    Attributes:
        schema (TableSchema): Schema with declared counts resolved against the rows.
        rows (tuple[Row, ...]): Rows in order; each has exactly one cell per column.

    Raises:
        SchemaMismatch: If a row has the wrong length, or a declared count disagrees
            with the data.

    Notes:
        Absent declared counts are filled from the data so that a decoded table compares
        equal to the table it was encoded from.
    """

    schema: TableSchema
    rows: tuple[Row, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        rows = tuple(tuple(r) for r in self.rows)
        width = len(self.schema.columns)
        for i, row in enumerate(rows):
            if len(row) != width:
                raise SchemaMismatch(
                    f"row {i} has {len(row)} cells but schema {self.schema.schema_name!r} has {width} columns"
                )
        declared_rows = self.schema.declared_row_count
        declared_cols = self.schema.declared_column_count
        if declared_rows is not None and declared_rows != len(rows):
            raise SchemaMismatch(f"declared row count {declared_rows} != actual {len(rows)}")
        if declared_cols is not None and declared_cols != width:
            raise SchemaMismatch(f"declared column count {declared_cols} != actual {width}")
        object.__setattr__(self, "rows", rows)
        if declared_rows is None or declared_cols is None:
            object.__setattr__(self, "schema", self.schema.with_counts(len(rows)))

    @classmethod
    def from_records(
        cls, schema: TableSchema, records: Iterable[dict[str, Cell]]
    ) -> Table:
        """Build a table from mappings keyed by column name; absent keys become None."""
        names = schema.column_names
        rows: list[Row] = []
        for rec in records:
            unknown = set(rec) - set(names)
            if unknown:
                raise SchemaMismatch(f"record has unknown columns: {sorted(unknown)!r}")
            rows.append(tuple(rec.get(n) for n in names))
        return cls(schema, tuple(rows))

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def column_names(self) -> list[str]:
        return self.schema.column_names

    def column_values(self, name: str) -> list[Cell]:
        idx = self.column_names.index(name)
        return [row[idx] for row in self.rows]

    def records(self) -> list[dict[str, Cell]]:
        names = self.column_names
        return [dict(zip(names, row)) for row in self.rows]

