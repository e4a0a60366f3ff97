from __future__ import annotations

from pathlib import Path

from tabtoon.io.config import ToonSettings

_ENV_KEYS = [
    "TABTOON_ENCODING",
    "TABTOON_ON_ROW_ERROR",
    "TABTOON_STRICT_ROW_COUNT",
    "TABTOON_COMPRESSION",
    "TABTOON_DEFAULT_SOURCE",
]


def _write_tabtoon_toml(tmp: Path, content: str) -> Path:
    p = tmp / "tabtoon.toml"
    p.write_text(content)
    return p


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    # Arrange TOML
    _write_tabtoon_toml(
        tmp_path,
        """
        [toon]
        on_row_error = "collect"
        compression = "lz4"
        default_source = "from-toml"
        """.strip(),
    )
    # Ensure cwd for ToonSettings.from_toml() search
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    # Arrange ENV that should override TOML
    monkeypatch.setenv("TABTOON_ON_ROW_ERROR", "raise")
    monkeypatch.setenv("TABTOON_COMPRESSION", "zstd")

    # Act
    s = ToonSettings.load()

    # Assert precedence: env > TOML
    assert s.on_row_error == "raise"  # env override
    assert s.compression == "zstd"  # env override
    assert s.default_source == "from-toml"  # TOML only


def test_settings_from_toml_when_no_env(tmp_path: Path, monkeypatch) -> None:
    _write_tabtoon_toml(
        tmp_path,
        """
        [toon]
        encoding = "latin-1"
        on_row_error = "collect"
        strict_row_count = true
        compression = "snappy"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = ToonSettings.load()

    assert s.encoding == "latin-1"
    assert s.on_row_error == "collect"
    assert s.strict_row_count is True
    assert s.compression == "snappy"


def test_settings_from_top_level_keys(tmp_path: Path, monkeypatch) -> None:
    _write_tabtoon_toml(tmp_path, 'strict_row_count = true\ndefault_source = "flat"\n')
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = ToonSettings.load()

    assert s.strict_row_count is True
    assert s.default_source == "flat"


def test_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
        [project]
        name = "downstream"

        [tool.tabtoon]
        on_row_error = "collect"
        """.strip()
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert ToonSettings.load().on_row_error == "collect"


def test_settings_explicit_path(tmp_path: Path, monkeypatch) -> None:
    cfg = tmp_path / "conf" / "custom.toml"
    cfg.parent.mkdir()
    cfg.write_text('[toon]\ncompression = "lz4"\n')
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert ToonSettings.load(cfg).compression == "lz4"


def test_settings_defaults_and_invalid_values_ignored(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("TABTOON_ON_ROW_ERROR", "ignore")
    monkeypatch.setenv("TABTOON_COMPRESSION", "brotli")
    monkeypatch.setenv("TABTOON_STRICT_ROW_COUNT", "yes")

    s = ToonSettings.load()

    assert s.encoding == "utf-8"
    assert s.on_row_error == "raise"
    assert s.compression == "zstd"
    assert s.strict_row_count is True
    assert s.default_source is None
