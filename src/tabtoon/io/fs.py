"""
Filesystem helpers for tabtoon.io (local files only).

Responsibilities
- Path argument checks (MissingRequiredInput) and existence checks (ResourceNotFound).
- The atomic write path: tmp write -> fsync -> os.replace(tmp, final).

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same
  filesystem; tmp files are created next to their destination for that reason.
- All helpers are synchronous and stdlib-only.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import BinaryIO

from .errors import IoWriteError, MissingRequiredInput, ResourceNotFound


def require_path(path: str | os.PathLike[str] | None, *, what: str = "path") -> str:
    """
    Return `path` as a string, rejecting None and empty values.

    Raises:
        MissingRequiredInput: If the path is None or blank.
    """
    if path is None or not str(path).strip():
        raise MissingRequiredInput(f"{what} is required")
    return os.fspath(path)


def require_file(path: str | os.PathLike[str] | None, *, what: str = "input file") -> str:
    """
    Return `path` if it names an existing regular file.

    Raises:
        MissingRequiredInput: If the path is None or blank.
        ResourceNotFound: If nothing exists at the path or it is not a file.
    """
    p = require_path(path, what=what)
    if not os.path.isfile(p):
        raise ResourceNotFound(f"{what} not found: {p}")
    return p


def makedirs(path: str, exist_ok: bool = True) -> None:
    """Create directories recursively (no-op for the empty string)."""
    if path:
        os.makedirs(path, exist_ok=exist_ok)


def tmp_path_for(path: str) -> str:
    """Sibling temporary path used before the atomic rename."""
    directory, name = os.path.split(path)
    return os.path.join(directory, f".{name}.{uuid.uuid4().hex}.tmp")


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Notes:
        Useful when a library wrote to a path directly (e.g., pyarrow.parquet.write_table),
        and you want to ensure data hits the disk before an atomic rename operation.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """Atomically rename src -> dst on the same filesystem (os.replace)."""
    os.replace(src, dst)


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """Open a file for binary write as a context manager."""
    fh = open(path, "wb")
    try:
        yield fh
    finally:
        fh.close()


def write_atomic(path: str, writer: Callable[[str], None]) -> None:
    """
    Run `writer(tmp_path)` and atomically move the result to `path`.

    Args:
        path (str): Final destination.
        writer (Callable[[str], None]): Writes the complete file at the given tmp path.

    Raises:
        IoWriteError: If writing, fsync, or rename fails; the tmp file is removed.
    """
    makedirs(os.path.dirname(path))
    tmp = tmp_path_for(path)
    try:
        writer(tmp)
        fsync_path(tmp)
        rename_atomic(tmp, path)
    except Exception as exc:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass
        raise IoWriteError(f"failed to write {path}: {exc}") from exc


def write_bytes_atomic(path: str, data: bytes) -> None:
    """Write `data` to `path` via tmp -> fsync -> rename."""

    def _write(tmp: str) -> None:
        with open_write(tmp) as fh:
            fh.write(data)

    write_atomic(path, _write)
