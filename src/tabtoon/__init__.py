"""
tabtoon — typed tables <-> a line-oriented, human-readable text format.

Layers
- tabtoon.core — zero-IO type model and codecs.
- tabtoon.io — settings, .toon files, polars frames, Parquet catalog files.
- tabtoon.cli — `tabtoon encode|decode|inspect`.
"""

__version__ = "0.1.0"
