"""
Core package aggregator for tabtoon contracts (grammar, type model, codecs).

## Contracts (single source of truth)
- Grammar — ColumnKind enum, metadata vocabulary, indentation levels, reclassification.
- Types — ColumnDescriptor/TableSchema models with validators; Table container.
- Escape — quoted-field dialect for character values.
- Metadata — schema block encoder and the explicit line-state parser.
- Rows — row encoder/decoder with the quote-aware splitter.
- Codec — whole-file encode/decode and the row-error policy.
- Errors/Constants — typed exceptions and IO-facing defaults.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Wire values (`type:` attribute, metadata keys) are lower_snake.
- One flat table per file; every row occupies exactly one physical line.

## Downstream usage
- tabtoon.io — reads/writes .toon files and maps polars frames and Parquet files to Table.
- tabtoon.cli — command line wrapper over tabtoon.io.

## Examples
```python
from tabtoon.core.types import ColumnDescriptor, TableSchema, Table
from tabtoon.core.codec import encode_table, decode_table

schema = TableSchema(
    schema_name="visits",
    columns=[
        ColumnDescriptor(name="id", kind="character", character_length=5),
        ColumnDescriptor(name="seen", kind="numeric", display_format="DATETIME20."),
    ],
)
text = encode_table(Table(schema, [("00123", 2_078_836_245.0)]))
decode_table(text).rows  # (('00123', datetime(2025, 11, 15, 14, 30, 45)),)
```
"""
