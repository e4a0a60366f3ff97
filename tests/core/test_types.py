from datetime import date

import pytest
from pydantic import ValidationError

from tabtoon.core.errors import SchemaMismatch
from tabtoon.core.grammar import ColumnKind
from tabtoon.core.types import ColumnDescriptor, Table, TableSchema


def _schema(**kwargs) -> TableSchema:
    return TableSchema(
        schema_name="demo",
        columns=[
            ColumnDescriptor(name="id", kind="character", character_length=5),
            ColumnDescriptor(name="score", kind="numeric"),
        ],
        **kwargs,
    )


def test_kind_strings_are_normalized() -> None:
    col = ColumnDescriptor(name="x", kind="NUMERIC")
    assert col.kind is ColumnKind.NUMERIC


def test_character_requires_positive_length() -> None:
    with pytest.raises(ValidationError, match="requires character_length"):
        ColumnDescriptor(name="id", kind="character")
    with pytest.raises(ValidationError, match="positive"):
        ColumnDescriptor(name="id", kind="character", character_length=0)


def test_length_forbidden_outside_character() -> None:
    with pytest.raises(ValidationError, match="only valid for character"):
        ColumnDescriptor(name="n", kind="numeric", character_length=8)


@pytest.mark.parametrize("name", ["a,b", "with space", "x[1]", ""])
def test_bad_column_names_rejected(name: str) -> None:
    with pytest.raises(ValidationError):
        ColumnDescriptor(name=name, kind="numeric")


def test_multi_line_label_rejected() -> None:
    with pytest.raises(ValidationError, match="line breaks"):
        ColumnDescriptor(name="n", kind="numeric", label="first\nsecond")


def test_blank_optional_values_become_none() -> None:
    col = ColumnDescriptor(name="n", kind="numeric", label="   ", display_format="")
    assert col.label is None
    assert col.display_format is None


def test_unknown_fields_forbidden() -> None:
    with pytest.raises(ValidationError):
        ColumnDescriptor(name="n", kind="numeric", width=3)


def test_effective_kind_reclassifies_numeric_only() -> None:
    assert ColumnDescriptor(name="d", kind="numeric", display_format="DATE9.").effective_kind is ColumnKind.DATE
    assert (
        ColumnDescriptor(name="t", kind="numeric", display_format="DATETIME20.").effective_kind
        is ColumnKind.DATETIME
    )
    assert (
        ColumnDescriptor(name="c", kind="character", character_length=9, display_format="DATE9.").effective_kind
        is ColumnKind.CHARACTER
    )


def test_schema_name_upper_cased() -> None:
    assert _schema().schema_name == "DEMO"


def test_duplicate_column_names_rejected() -> None:
    with pytest.raises(ValidationError, match="duplicate"):
        TableSchema(
            schema_name="t",
            columns=[
                ColumnDescriptor(name="a", kind="numeric"),
                ColumnDescriptor(name="a", kind="numeric"),
            ],
        )


def test_negative_declared_counts_rejected() -> None:
    with pytest.raises(ValidationError):
        _schema(declared_row_count=-1)


def test_schema_lookup() -> None:
    schema = _schema()
    assert schema.column_names == ["id", "score"]
    assert schema.column("score").kind is ColumnKind.NUMERIC
    with pytest.raises(KeyError):
        schema.column("missing")


def test_table_fills_declared_counts() -> None:
    table = Table(_schema(), [("00123", 1.0), ("", None), ("x", 3)])
    assert table.schema.declared_row_count == 3
    assert table.schema.declared_column_count == 2
    assert len(table) == 3
    assert isinstance(table.rows, tuple) and isinstance(table.rows[0], tuple)


def test_table_rejects_wrong_row_width() -> None:
    with pytest.raises(SchemaMismatch, match="row 1"):
        Table(_schema(), [("a", 1.0), ("b",)])


def test_table_rejects_disagreeing_declared_counts() -> None:
    with pytest.raises(SchemaMismatch, match="row count"):
        Table(_schema(declared_row_count=5), [("a", 1.0)])
    with pytest.raises(SchemaMismatch, match="column count"):
        Table(_schema(declared_column_count=3), [("a", 1.0)])


def test_table_records_helpers() -> None:
    schema = TableSchema(
        schema_name="visits",
        columns=[
            ColumnDescriptor(name="id", kind="character", character_length=3),
            ColumnDescriptor(name="visit", kind="date"),
        ],
    )
    table = Table.from_records(schema, [{"id": "a", "visit": date(2025, 1, 2)}, {"id": "b"}])
    assert table.rows == (("a", date(2025, 1, 2)), ("b", None))
    assert table.column_values("visit") == [date(2025, 1, 2), None]
    assert table.records()[1] == {"id": "b", "visit": None}
    with pytest.raises(SchemaMismatch, match="unknown columns"):
        Table.from_records(schema, [{"id": "a", "extra": 1}])
