import pytest

from tabtoon.core.errors import UnescapeError
from tabtoon.core.escape import (
    decode_text,
    encode_text,
    escape_text,
    needs_quoting,
    unescape_text,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("plain", False),
        ("", True),
        ("a,b", True),
        ('say "hi"', True),
        ("two\nlines", True),
        ("carriage\rreturn", True),
        ("back\\slash", False),
        ("trailing   ", False),
    ],
)
def test_needs_quoting(value: str, expected: bool) -> None:
    assert needs_quoting(value) is expected


def test_unquoted_values_are_right_trimmed() -> None:
    assert encode_text("abc   ") == "abc"
    assert encode_text("  lead") == "  lead"


def test_empty_text_is_quoted() -> None:
    assert encode_text("") == '""'
    assert decode_text('""') == ""


def test_quotes_are_escaped_and_restored() -> None:
    token = encode_text('Text with "quotes"')
    assert token == '"Text with \\"quotes\\""'
    assert decode_text(token) == 'Text with "quotes"'


def test_line_breaks_become_two_character_tokens() -> None:
    token = encode_text("line1\nline2\rend")
    assert "\n" not in token and "\r" not in token
    assert token == '"line1\\nline2\\rend"'
    assert decode_text(token) == "line1\nline2\rend"


def test_backslash_is_escaped_before_quotes() -> None:
    # a, backslash, quote, b
    value = 'a\\"b'
    assert escape_text(value) == 'a\\\\\\"b'
    assert decode_text(encode_text(value)) == value


@pytest.mark.parametrize(
    "value",
    [
        "\\n",
        "a,\\n",
        "x\\\"y",
        "\\",
        "C:\\temp,dir",
        "end\\",
        '"',
        '\\\\"',
        "mixed\\r\r\n\\n,",
    ],
)
def test_backslash_sequences_survive_round_trip(value: str) -> None:
    assert decode_text(encode_text(value)) == value


def test_literal_backslash_n_is_not_a_line_break() -> None:
    # quoted context: the escaped backslash must not pair with the following n
    token = encode_text("path,\\new")
    assert token == '"path,\\\\new"'
    assert decode_text(token) == "path,\\new"
    assert "\n" not in decode_text(token)


def test_unquoted_tokens_are_verbatim() -> None:
    assert decode_text("C:\\temp") == "C:\\temp"


@pytest.mark.parametrize(
    "token",
    [
        '"unknown \\q escape"',
        '"dangling\\"',
        '"no closing quote',
        '"',
    ],
)
def test_bad_quoted_tokens_raise(token: str) -> None:
    with pytest.raises(UnescapeError):
        decode_text(token)


def test_unescape_single_pass() -> None:
    assert unescape_text("\\\\n") == "\\n"
    assert unescape_text('\\"\\\\') == '"\\'
