import logging
from datetime import date, datetime

import pytest

from tabtoon.core.codec import decode_lines, decode_table, encode_table, iter_encode
from tabtoon.core.errors import (
    MalformedMetadata,
    SchemaMismatch,
    UnescapeError,
    UnparsableValue,
)
from tabtoon.core.types import ColumnDescriptor, Table, TableSchema

SCHEMA = TableSchema(
    schema_name="demo",
    dataset_label="Demo table",
    source="unit",
    columns=[
        ColumnDescriptor(name="id", kind="character", character_length=5, label="Identifier"),
        ColumnDescriptor(name="score", kind="numeric"),
        ColumnDescriptor(name="visit", kind="date", display_format="DATE9."),
        ColumnDescriptor(name="stamp", kind="datetime", display_format="DATETIME20."),
        ColumnDescriptor(name="note", kind="character", character_length=40),
    ],
)

ROWS = [
    ("00123", 1.5, date(2025, 11, 15), datetime(2025, 11, 15, 14, 30, 45), 'Text with "quotes"'),
    ("", None, None, None, "line1\nline2"),
]

EXPECTED = """\
_metadata:
  source: unit
  schema_name: DEMO
  dataset_label: Demo table
  columns: 5
  rows: 2
  column_info:
    id:
      type: character
      length: 5
      label: Identifier
    score:
      type: numeric
    visit:
      type: date
      format: DATE9.
    stamp:
      type: datetime
      format: DATETIME20.
    note:
      type: character
      length: 40
DEMO[2]{id,score,visit,stamp,note}:
  00123,1.5,2025-11-15,15Nov2025:14:30:45,"Text with \\"quotes\\""
  "",,,,"line1\\nline2"
"""

BAD_ROWS = """\
_metadata:
  schema_name: T
  columns: 2
  rows: 3
  column_info:
    a:
      type: numeric
    b:
      type: character
      length: 10
T[3]{a,b}:
  1,"x"
  oops,"y"
  3,"unterminated
"""


def _single(kind: str = "numeric", **extra) -> TableSchema:
    return TableSchema(schema_name="one", columns=[ColumnDescriptor(name="v", kind=kind, **extra)])


def test_encode_exact_text() -> None:
    assert encode_table(Table(SCHEMA, ROWS)) == EXPECTED


def test_round_trip_identity() -> None:
    table = Table(SCHEMA, ROWS)
    assert decode_table(encode_table(table)) == table


def test_iter_encode_matches_encode_table() -> None:
    table = Table(SCHEMA, ROWS)
    assert list(iter_encode(table)) == EXPECTED.rstrip("\n").split("\n")


def test_leading_zeros_survive() -> None:
    table = decode_table(EXPECTED)
    assert table.rows[0][0] == "00123"


def test_missing_number_and_empty_text_are_distinct_on_the_wire() -> None:
    text = encode_table(Table(SCHEMA, ROWS))
    row_line = text.splitlines()[-1]
    assert row_line.startswith('  "",,,,')
    decoded = decode_table(text)
    assert decoded.rows[1][0] == ""
    assert decoded.rows[1][1] is None


def test_multi_line_text_stays_on_one_physical_line() -> None:
    text = encode_table(Table(SCHEMA, ROWS))
    assert len(text.split("\n")) == len(EXPECTED.split("\n"))
    assert decode_table(text).rows[1][4] == "line1\nline2"


@pytest.mark.parametrize(
    "value",
    [
        "\\n",
        "C:\\new,folder",
        'quote " and backslash \\',
        "a\u2028b",
        "comma, and\r\nCRLF",
        "",
    ],
)
def test_awkward_text_round_trips(value: str) -> None:
    schema = _single("character", character_length=64)
    table = Table(schema, [(value,)])
    assert decode_table(encode_table(table)).rows == ((value,),)


def test_single_missing_numeric_row_survives() -> None:
    table = Table(_single(), [(None,), (2.0,), (None,)])
    text = encode_table(table)
    assert "\n  \n" in text
    assert decode_table(text) == table


def test_zero_rows() -> None:
    table = Table(SCHEMA, [])
    text = encode_table(table)
    assert "DEMO[0]{id,score,visit,stamp,note}:" in text
    assert decode_table(text) == table


def test_header_reflects_row_count_and_column_order() -> None:
    schema = TableSchema(
        schema_name="schema",
        columns=[ColumnDescriptor(name=n, kind="numeric") for n in ("a", "b", "c")],
    )
    text = encode_table(Table(schema, [(1, 2, 3), (4, 5, 6), (7, 8, 9)]))
    assert "\nSCHEMA[3]{a,b,c}:\n" in text


def test_native_numeric_dates_decode_to_calendar_values() -> None:
    schema = TableSchema(
        schema_name="native",
        columns=[
            ColumnDescriptor(name="d", kind="numeric", display_format="DATE9."),
            ColumnDescriptor(name="ts", kind="numeric", display_format="DATETIME20."),
        ],
    )
    text = encode_table(Table(schema, [(24060, 2_078_836_245.0)]))
    assert "  2025-11-15,15Nov2025:14:30:45\n" in text
    decoded = decode_table(text)
    assert decoded.rows == ((date(2025, 11, 15), datetime(2025, 11, 15, 14, 30, 45)),)
    assert decoded.schema.column("d").kind.value == "date"


def test_crlf_line_endings_accepted() -> None:
    decoded = decode_table(EXPECTED.replace("\n", "\r\n"))
    assert decoded == decode_table(EXPECTED)


def test_encode_invalid_cell_produces_no_output() -> None:
    table = Table(_single(), [(1.0,), ("not a number",)])
    with pytest.raises(SchemaMismatch):
        encode_table(table)


# -----------------------------------------------------------------------------
# Structural errors
# -----------------------------------------------------------------------------


def test_header_field_list_mismatch() -> None:
    text = EXPECTED.replace("{id,score,visit,stamp,note}", "{id,score,visit,stamp}")
    with pytest.raises(SchemaMismatch):
        decode_table(text)


def test_declared_column_count_mismatch() -> None:
    text = EXPECTED.replace("  columns: 5", "  columns: 4")
    with pytest.raises(SchemaMismatch, match="declared columns: 4"):
        decode_table(text)


def test_row_with_extra_field_is_structural() -> None:
    text = EXPECTED.replace('"line1\\nline2"', '"line1\\nline2",extra')
    with pytest.raises(SchemaMismatch):
        decode_lines(text.split("\n"), on_row_error="collect")


def test_garbage_input() -> None:
    with pytest.raises(MalformedMetadata):
        decode_table("id,name\n1,alice\n")


def test_unknown_policy() -> None:
    with pytest.raises(ValueError, match="on_row_error"):
        decode_lines([], on_row_error="ignore")


# -----------------------------------------------------------------------------
# Row errors and policies
# -----------------------------------------------------------------------------


def test_raise_policy_stops_at_first_bad_row() -> None:
    with pytest.raises(UnparsableValue) as ei:
        decode_table(BAD_ROWS)
    assert ei.value.line_number == 13
    assert ei.value.column == "a"


def test_collect_policy_skips_bad_rows(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="tabtoon.core.codec"):
        result = decode_lines(BAD_ROWS.split("\n"), on_row_error="collect")
    assert not result.ok
    assert result.table.rows == ((1.0, "x"),)
    assert result.table.schema.declared_row_count == 1
    assert [type(e) for e in result.errors] == [UnparsableValue, UnescapeError]
    assert [e.line_number for e in result.errors] == [13, 14]
    assert sum("skipping row" in r.getMessage() for r in caplog.records) == 2


def test_row_count_disagreement_warns_by_default(caplog: pytest.LogCaptureFixture) -> None:
    text = EXPECTED.replace("  rows: 2", "  rows: 3").replace("DEMO[2]", "DEMO[3]")
    with caplog.at_level(logging.WARNING, logger="tabtoon.core.codec"):
        table = decode_table(text)
    assert len(table) == 2
    assert table.schema.declared_row_count == 2
    assert any("declared rows: 3" in r.getMessage() for r in caplog.records)


def test_row_count_disagreement_strict() -> None:
    text = EXPECTED.replace("  rows: 2", "  rows: 3").replace("DEMO[2]", "DEMO[3]")
    with pytest.raises(SchemaMismatch, match="declared rows: 3"):
        decode_table(text, strict_row_count=True)


def test_out_of_range_number_is_unparsable() -> None:
    text = encode_table(Table(_single(), [(1.0,)])).replace("\n  1\n", "\n  1e999\n")
    with pytest.raises(UnparsableValue, match="out of range"):
        decode_table(text)


def test_out_of_range_native_date_is_schema_mismatch() -> None:
    table = Table(_single(display_format="DATE9."), [(1e12,)])
    with pytest.raises(SchemaMismatch, match="out of range for date"):
        encode_table(table)
