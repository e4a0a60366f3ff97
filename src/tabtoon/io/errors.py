"""
Custom exceptions for the tabtoon.io module.

Purpose
- Provide IO-layer error types for file, frame, and Parquet concerns.
- Keep tabtoon.core as the source of truth for grammar/schema/codec errors (see
  tabtoon.core.errors).

Boundaries
- tabtoon.core raises GrammarError, SchemaError, SchemaMismatch, MalformedMetadata and the
  RowError family while encoding/decoding text.
- tabtoon.io raises:
  - MissingRequiredInput: a required argument (path, schema name) is absent or empty.
  - ResourceNotFound: an input file does not exist.
  - IoSchemaError: a polars frame or Parquet file cannot be mapped to the type model.
  - IoWriteError: the atomic write path (tmp write/fsync/rename) failed.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in tabtoon.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from tabtoon.core errors.
    """


class MissingRequiredInput(IoError, ValueError):
    """Raised when a required argument is missing or empty (e.g., an empty path)."""


class ResourceNotFound(IoError, FileNotFoundError):
    """Raised when an input file does not exist."""


class IoSchemaError(IoError):
    """
    Raised when a DataFrame or Parquet schema cannot be mapped to tabtoon column kinds.

    Examples:
        - A list or struct column in a polars frame
        - Parquet field metadata naming an unknown kind
    """


class IoWriteError(IoError):
    """
    Raised when a write fails to complete atomically.

    Notes:
        The write path is tmp file -> fsync -> os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of the tmp file).
    """
