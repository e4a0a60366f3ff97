import pytest

from tabtoon.core.errors import GrammarError
from tabtoon.core.grammar import (
    ColumnKind,
    assert_column_name,
    assert_single_line,
    column_kind_from_value,
    is_valid_column_name,
    month_from_abbr,
    reclassify_kind,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("numeric", ColumnKind.NUMERIC),
        ("Character", ColumnKind.CHARACTER),
        ("  DATE ", ColumnKind.DATE),
        ("datetime", ColumnKind.DATETIME),
        (ColumnKind.DATE, ColumnKind.DATE),
    ],
)
def test_column_kind_from_value_normalizes(raw, expected: ColumnKind) -> None:
    assert column_kind_from_value(raw) is expected


def test_column_kind_from_value_rejects_unknown() -> None:
    with pytest.raises(GrammarError) as ei:
        column_kind_from_value("integer")
    assert "numeric" in str(ei.value)


@pytest.mark.parametrize(
    ("fmt", "expected"),
    [
        ("DATETIME20.", ColumnKind.DATETIME),
        ("dtdate9.", ColumnKind.DATETIME),
        ("DATE9.", ColumnKind.DATE),
        ("E8601DA10.", ColumnKind.NUMERIC),
        ("BEST12.", ColumnKind.NUMERIC),
        ("", ColumnKind.NUMERIC),
        (None, ColumnKind.NUMERIC),
        # substring match: a format merely containing DATE is treated as a date
        ("UPDATED8.", ColumnKind.DATE),
    ],
)
def test_reclassify_numeric_by_display_format(fmt, expected: ColumnKind) -> None:
    assert reclassify_kind(ColumnKind.NUMERIC, fmt) is expected


@pytest.mark.parametrize("kind", [ColumnKind.CHARACTER, ColumnKind.DATE, ColumnKind.DATETIME])
def test_reclassify_leaves_non_numeric_kinds(kind: ColumnKind) -> None:
    assert reclassify_kind(kind, "DATETIME20.") is kind


def test_numeric_like_kinds() -> None:
    assert ColumnKind.NUMERIC.is_numeric_like
    assert ColumnKind.DATE.is_numeric_like
    assert ColumnKind.DATETIME.is_numeric_like
    assert not ColumnKind.CHARACTER.is_numeric_like


@pytest.mark.parametrize("name", ["id", "VISIT_DT", "x1", "naïve"])
def test_valid_column_names(name: str) -> None:
    assert is_valid_column_name(name)
    assert assert_column_name(name) == name


@pytest.mark.parametrize("name", ["", "a b", "a,b", "a:b", "a[1]", "a{b}", 'a"b', "tab\there"])
def test_invalid_column_names(name: str) -> None:
    assert not is_valid_column_name(name)
    with pytest.raises(GrammarError):
        assert_column_name(name)


def test_assert_single_line() -> None:
    assert assert_single_line("one line", what="label") == "one line"
    with pytest.raises(GrammarError, match="label"):
        assert_single_line("two\nlines", what="label")
    with pytest.raises(GrammarError):
        assert_single_line("cr\rhere", what="label")


def test_month_from_abbr_any_case() -> None:
    assert month_from_abbr("Jan") == 1
    assert month_from_abbr("nov") == 11
    assert month_from_abbr("DEC") == 12
    with pytest.raises(GrammarError):
        month_from_abbr("Foo")
