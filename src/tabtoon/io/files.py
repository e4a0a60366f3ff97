"""
.toon file entry points.

- write_toon(): encode a Table and write it atomically.
- read_toon(): stream a file through the table codec under the configured row policy.

Notes
- Files are read with newline="\\n" so only line feeds split lines; the codec guarantees
  every other line break inside a value is escaped.
"""

from __future__ import annotations

import logging
import os

from tabtoon.core.codec import DecodeResult, decode_lines, encode_table
from tabtoon.core.types import Table

from .config import ToonSettings
from .fs import require_file, require_path, write_bytes_atomic

__all__ = ["write_toon", "read_toon"]

log = logging.getLogger(__name__)


def write_toon(
    table: Table,
    path: str | os.PathLike[str],
    settings: ToonSettings | None = None,
) -> str:
    """
    Encode `table` and write it to `path`.

    Returns:
        str: The destination path.

    Raises:
        MissingRequiredInput: If path is empty.
        SchemaMismatch: If a cell does not fit its column (nothing is written).
        IoWriteError: If the atomic write fails.
    """
    settings = settings or ToonSettings()
    dest = require_path(path, what="output path")
    text = encode_table(table, source=settings.default_source)
    write_bytes_atomic(dest, text.encode(settings.encoding))
    log.info("wrote %s (%d rows) to %s", table.schema.schema_name, len(table), dest)
    return dest


def read_toon(
    path: str | os.PathLike[str],
    settings: ToonSettings | None = None,
) -> DecodeResult:
    """
    Decode the .toon file at `path`.

    Returns:
        DecodeResult: Table plus skipped-row errors (only under on_row_error="collect").

    Raises:
        MissingRequiredInput: If path is empty.
        ResourceNotFound: If the file does not exist.
        MalformedMetadata | SchemaMismatch: Structural failures.
        UnescapeError | UnparsableValue: Row failures under on_row_error="raise".
    """
    settings = settings or ToonSettings()
    src = require_file(path)
    with open(src, encoding=settings.encoding, newline="\n") as fh:
        result = decode_lines(
            fh,
            on_row_error=settings.on_row_error,
            strict_row_count=settings.strict_row_count,
        )
    if result.errors:
        log.warning("%s: skipped %d bad rows", src, len(result.errors))
    log.info("read %s (%d rows) from %s", result.table.schema.schema_name, len(result.table), src)
    return result
