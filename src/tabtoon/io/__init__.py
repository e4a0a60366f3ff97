"""
tabtoon.io — settings and file/frame adapters around the tabtoon codecs.

## Responsibilities
- Read and write .toon files (atomic tmp -> fsync -> rename writes).
- Map polars DataFrames to and from Table (the dataset source/sink).
- Persist tables as Parquet with the column catalog in Arrow field metadata.
- Resolve runtime settings (env > TOML > defaults).

## Public API
- ToonSettings — configuration (defaults sourced from tabtoon.core.constants).
- read_toon / write_toon — .toon files.
- table_from_frame / frame_from_table / ColumnHint — polars adapters.
- read_parquet / write_parquet — Parquet catalog files.

## Import DAG discipline
- Depends on stdlib, polars/pyarrow/pydantic, and tabtoon.core.*.
- MUST NOT import tabtoon.cli.

## Examples
```python
import polars as pl
from tabtoon.io import ToonSettings, table_from_frame, write_toon, read_toon

df = pl.DataFrame({"id": ["00123", "00456"], "score": [1.5, None]})
table = table_from_frame(df, "scores", hints={"score": {"label": "Final score"}})
write_toon(table, "out/scores.toon")
read_toon("out/scores.toon", ToonSettings(on_row_error="collect")).table
```
"""

from __future__ import annotations

from .config import ToonSettings
from .files import read_toon, write_toon
from .frames import ColumnHint, frame_from_table, hints_from_schema, table_from_frame
from .parquet import read_parquet, write_parquet

__all__ = [
    "ToonSettings",
    "read_toon",
    "write_toon",
    "ColumnHint",
    "table_from_frame",
    "frame_from_table",
    "hints_from_schema",
    "read_parquet",
    "write_parquet",
]
