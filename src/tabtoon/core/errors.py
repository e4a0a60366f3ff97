"""
Core exception types raised by the type model and the text codecs.

Provides typed exceptions for core-domain failures:
- GrammarError for wire-vocabulary violations (unknown column kind, bad names).
- SchemaError for construction-time invariants on descriptors and schemas.
- SchemaMismatch when counts or cell variants disagree with a schema.
- MalformedMetadata when the metadata block does not follow the indentation grammar.
- RowError (UnescapeError, UnparsableValue) for failures inside one data row.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Validators in tabtoon.core.types raise GrammarError/SchemaError; pydantic surfaces
      them wrapped in ValidationError.
    - Structural errors (MalformedMetadata, SchemaMismatch) always abort a decode. RowError
      subclasses may be collected instead, depending on the decode policy.

Examples:
    Row errors carry their physical line number.

    >>> from tabtoon.core.errors import UnparsableValue
    >>> err = UnparsableValue("not a number: 'abc'", line_number=12, column="weight")
    >>> str(err)
    "line 12, column 'weight': not a number: 'abc'"
"""

from __future__ import annotations

__all__ = [
    "ToonError",
    "GrammarError",
    "SchemaError",
    "SchemaMismatch",
    "MalformedMetadata",
    "RowError",
    "UnescapeError",
    "UnparsableValue",
]


class ToonError(Exception):
    """Base class for all tabtoon core errors."""


class GrammarError(ToonError, ValueError):
    """Wire-vocabulary failure (e.g., unknown column kind or an illegal column name)."""


class SchemaError(ToonError, ValueError):
    """Descriptor/schema invariant failure detected at construction."""


class SchemaMismatch(ToonError, ValueError):
    """Declared counts, header fields, or cell variants disagree with the schema."""


class MalformedMetadata(ToonError, ValueError):
    """Metadata block or table header line does not follow the expected structure."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class RowError(ToonError, ValueError):
    """
    Failure while decoding a single data row.

    Attributes:
        reason (str): Message without location prefix.
        line_number (int | None): 1-based physical line of the offending row.
        column (str | None): Column name, when the failure is tied to one field.
    """

    def __init__(
        self,
        reason: str,
        *,
        line_number: int | None = None,
        column: str | None = None,
    ) -> None:
        self.reason = reason
        self.line_number = line_number
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        where: list[str] = []
        if self.line_number is not None:
            where.append(f"line {self.line_number}")
        if self.column is not None:
            where.append(f"column {self.column!r}")
        if not where:
            return self.reason
        return f"{', '.join(where)}: {self.reason}"

    def at(self, *, line_number: int | None = None, column: str | None = None) -> RowError:
        """Return a copy of this error with location fields filled in where missing."""
        return type(self)(
            self.reason,
            line_number=self.line_number if self.line_number is not None else line_number,
            column=self.column if self.column is not None else column,
        )


class UnescapeError(RowError):
    """A quoted field is unterminated or contains an unknown escape token."""


class UnparsableValue(RowError):
    """A field cannot be parsed under its column's declared kind."""
