"""
Quoted-field dialect for character values.

A character value is wrapped in double quotes when it contains a comma, a double quote,
a line feed or carriage return, or is empty. Inside quotes the escapes are applied in
this order: backslash, double quote, line feed, carriage return. The backslash pass runs
first so the backslashes introduced by later passes are never doubled. Values that need no
quoting are written unquoted with trailing whitespace removed.

Decoding strips one layer of outer quotes and resolves escape tokens in a single
left-to-right pass. Each backslash consumes exactly the next character, so the text
`\\n` (an escaped backslash followed by `n`) becomes backslash + `n`, never a line feed.
Unquoted tokens were never escaped and are returned as-is.

Examples:
    >>> from tabtoon.core.escape import encode_text, decode_text
    >>> encode_text('Text with "quotes"')
    '"Text with \\\\"quotes\\\\""'
    >>> decode_text(encode_text('Text with "quotes"'))
    'Text with "quotes"'
    >>> encode_text("")
    '""'
    >>> decode_text(encode_text("line1\\nline2")) == "line1\\nline2"
    True
"""

from __future__ import annotations

from typing import Final

from .errors import UnescapeError

__all__ = [
    "QUOTE",
    "needs_quoting",
    "escape_text",
    "unescape_text",
    "encode_text",
    "decode_text",
    "is_quoted",
]

QUOTE: Final[str] = '"'
_BACKSLASH: Final[str] = "\\"

# Applied in order on encode.
_ESCAPES: Final[tuple[tuple[str, str], ...]] = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
)

# Escape token (character after the backslash) -> decoded character.
_UNESCAPES: Final[dict[str, str]] = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "r": "\r",
}


def needs_quoting(value: str) -> bool:
    """True when `value` must be written as a quoted field."""
    return value == "" or any(ch in value for ch in (",", QUOTE, "\n", "\r"))


def escape_text(value: str) -> str:
    """Apply the escape passes (without adding quotes)."""
    out = value
    for raw, escaped in _ESCAPES:
        out = out.replace(raw, escaped)
    return out


def unescape_text(body: str) -> str:
    """
    Resolve escape tokens in the body of a quoted field.

    Args:
        body (str): Field contents between the outer quotes.

    Returns:
        str: Decoded text.

    Raises:
        UnescapeError: On a dangling backslash or an unknown escape token.
    """
    if _BACKSLASH not in body:
        return body
    out: list[str] = []
    i = 0
    n = len(body)
    while i < n:
        ch = body[i]
        if ch != _BACKSLASH:
            out.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            raise UnescapeError("dangling backslash at end of quoted field")
        token = body[i + 1]
        try:
            out.append(_UNESCAPES[token])
        except KeyError:
            raise UnescapeError(f"unknown escape token '\\{token}'") from None
        i += 2
    return "".join(out)


def is_quoted(token: str) -> bool:
    return len(token) >= 2 and token[0] == QUOTE and token[-1] == QUOTE


def encode_text(value: str) -> str:
    """Encode one character value as a field token."""
    if needs_quoting(value):
        return f"{QUOTE}{escape_text(value)}{QUOTE}"
    return value.rstrip()


def decode_text(token: str) -> str:
    """
    Decode one field token back into a character value.

    Raises:
        UnescapeError: If the token opens a quote it never closes, or has a bad escape.
    """
    if is_quoted(token):
        return unescape_text(token[1:-1])
    if token.startswith(QUOTE):
        raise UnescapeError("quoted field is missing its closing quote")
    return token
