"""
tabtoon core defaults consumed by the IO layer.

Defines text-encoding, row-error policy, and Parquet compression defaults. This module is
zero-IO and uses only the Python standard library.

Notes:
    - tabtoon.io.config.ToonSettings sources its defaults from here.
    - The native epoch is the dataset-catalog convention for numeric date values:
      days (Date) or seconds (DateTime) counted from 1960-01-01.
"""

from __future__ import annotations

from datetime import date, datetime

__all__ = [
    "ENCODING",
    "ON_ROW_ERROR",
    "STRICT_ROW_COUNT",
    "COMPRESSION",
    "NATIVE_EPOCH_DATE",
    "NATIVE_EPOCH_DATETIME",
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_DATETIME_FORMAT",
]

# Text encoding for .toon files.
ENCODING: str = "utf-8"

# Row-error policy for decode: "raise" aborts on the first bad row, "collect" skips and reports.
ON_ROW_ERROR: str = "raise"

# When True, a declared `rows:` count that disagrees with the row lines is a SchemaMismatch.
STRICT_ROW_COUNT: bool = False

# Default compression codec for Parquet files written by tabtoon.io.parquet.
COMPRESSION: str = "zstd"

NATIVE_EPOCH_DATE: date = date(1960, 1, 1)
NATIVE_EPOCH_DATETIME: datetime = datetime(1960, 1, 1)

# Display formats stamped on columns whose frame dtype is already a calendar type.
DEFAULT_DATE_FORMAT: str = "DATE9."
DEFAULT_DATETIME_FORMAT: str = "DATETIME20."
