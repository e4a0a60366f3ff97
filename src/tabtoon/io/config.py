"""
Configuration for the tabtoon.io module.

Defines ToonSettings, a frozen dataclass carrying runtime configuration for file encoding,
the decode row-error policy, row-count strictness, and Parquet compression. Defaults are
sourced from tabtoon.core.constants (the single source of truth).

Source of truth
- tabtoon.core.constants.ENCODING, ON_ROW_ERROR, STRICT_ROW_COUNT, COMPRESSION

Import DAG discipline
- Depends only on stdlib and tabtoon.core.constants.
- Does not import tabtoon.cli.

Notes
- Precedence: environment (TABTOON_*) > TOML (tabtoon.toml or [tool.tabtoon] in
  pyproject.toml) > defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

try:  # Python 3.11+ stdlib TOML parser
    import tomllib  # type: ignore
except Exception:  # pragma: no cover - environments without tomllib
    tomllib = None  # type: ignore[assignment]

from tabtoon.core.constants import COMPRESSION as CORE_COMPRESSION
from tabtoon.core.constants import ENCODING as CORE_ENCODING
from tabtoon.core.constants import ON_ROW_ERROR as CORE_ON_ROW_ERROR
from tabtoon.core.constants import STRICT_ROW_COUNT as CORE_STRICT_ROW_COUNT

OnRowError = Literal["raise", "collect"]
Compression = Literal["zstd", "lz4", "snappy"]

_ROW_ERROR_CHOICES = {"raise", "collect"}
_COMPRESSION_CHOICES = {"zstd", "lz4", "snappy"}


@dataclass(frozen=True)
class ToonSettings:
    """
    Runtime settings for the tabtoon.io layer.

    Attributes:
        encoding (str): Text encoding for .toon files.
        on_row_error (Literal["raise","collect"]): Decode policy for bad rows.
        strict_row_count (bool): Treat a `rows:` disagreement as SchemaMismatch.
        compression (Literal["zstd","lz4","snappy"]): Parquet compression codec.
        default_source (str | None): `source:` value stamped when the schema has none.

    Examples:
        >>> from tabtoon.io import ToonSettings
        >>> ToonSettings(on_row_error="collect")  # doctest: +ELLIPSIS
        ToonSettings(...)
    """

    encoding: str = CORE_ENCODING
    on_row_error: OnRowError = CORE_ON_ROW_ERROR  # type: ignore[assignment]
    strict_row_count: bool = CORE_STRICT_ROW_COUNT
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    default_source: str | None = None

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: ToonSettings, cfg: dict[str, Any] | None) -> ToonSettings:
        """Apply a loose config mapping onto ToonSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _bool(v: Any) -> bool:
            if isinstance(v, bool):
                return v
            if isinstance(v, (int, float)):
                return bool(v)
            if isinstance(v, str):
                return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
            return False

        if "encoding" in cfg and isinstance(cfg["encoding"], str) and cfg["encoding"].strip():
            s = replace(s, encoding=cfg["encoding"].strip())

        if "on_row_error" in cfg and isinstance(cfg["on_row_error"], str):
            policy = cfg["on_row_error"].strip().lower()
            if policy in _ROW_ERROR_CHOICES:
                s = replace(s, on_row_error=policy)  # type: ignore[arg-type]

        if "strict_row_count" in cfg:
            s = replace(s, strict_row_count=_bool(cfg["strict_row_count"]))

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSION_CHOICES:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        if "default_source" in cfg and isinstance(cfg["default_source"], str):
            s = replace(s, default_source=cfg["default_source"].strip() or None)

        return s

    @classmethod
    def from_env(
        cls, base: ToonSettings | None = None, prefix: str = "TABTOON_"
    ) -> ToonSettings:
        """
        Build ToonSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - TABTOON_ENCODING
            - TABTOON_ON_ROW_ERROR ("raise" | "collect")
            - TABTOON_STRICT_ROW_COUNT (1/0/true/false/yes/no/on/off)
            - TABTOON_COMPRESSION ("zstd" | "lz4" | "snappy")
            - TABTOON_DEFAULT_SOURCE
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("encoding", "on_row_error", "strict_row_count", "compression", "default_source"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> ToonSettings:
        """
        Build ToonSettings from a TOML file.

        Search order when `path` is None:
            1) ./tabtoon.toml (with either a top-level [toon] table or direct keys)
            2) ./pyproject.toml under [tool.tabtoon]

        Returns defaults if no file present or tomllib is unavailable.
        """
        s = cls()
        if tomllib is None:
            return s

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)  # type: ignore[arg-type]
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "tabtoon.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("tabtoon") if isinstance(tool, dict) else None
            elif "toon" in data and isinstance(data["toon"], dict):
                cfg = data["toon"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> ToonSettings:
        """
        Load ToonSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (tabtoon.toml, pyproject.toml).

        Returns:
            ToonSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
