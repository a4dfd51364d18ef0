from __future__ import annotations

from pathlib import Path

import pytest

from celldump.io.config import DumpSettings
from celldump.io.errors import IoConfigError

_ENV_KEYS = [
    "CELLDUMP_IO_ROOT_DIR",
    "CELLDUMP_IO_COMPRESSION",
    "CELLDUMP_IO_ROW_GROUP_SIZE",
    "CELLDUMP_IO_RECORDS_PER_PART",
    "CELLDUMP_IO_MAX_WORKERS",
    "CELLDUMP_IO_SCANNER_CACHING",
    "CELLDUMP_IO_STRICT_FORMAT",
]


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write_toml(tmp: Path, content: str, name: str = "celldump.toml") -> Path:
    p = tmp / name
    p.write_text(content)
    return p


def test_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    # Arrange
    _clear_env(monkeypatch)
    _write_toml(
        tmp_path,
        """
        [io]
        root_dir = "store_toml"
        records_per_part = 256
        compression = "lz4"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CELLDUMP_IO_ROOT_DIR", "store_env")
    monkeypatch.setenv("CELLDUMP_IO_RECORDS_PER_PART", "512")

    # Act
    s = DumpSettings.load()

    # Assert
    assert s.root_dir == "store_env"
    assert s.records_per_part == 512
    assert s.compression == "lz4"  # TOML value survives where env is silent


def test_settings_from_toml_top_level_keys(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch)
    _write_toml(tmp_path, 'max_workers = 2\nstrict_format = false\ncompression = "snappy"\n')
    monkeypatch.chdir(tmp_path)

    s = DumpSettings.load()

    assert s.max_workers == 2
    assert s.strict_format is False
    assert s.compression == "snappy"


def test_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch)
    _write_toml(
        tmp_path,
        '[tool.celldump.io]\nscanner_caching = 7\nroot_dir = "pp"\n',
        name="pyproject.toml",
    )
    monkeypatch.chdir(tmp_path)

    s = DumpSettings.load()

    assert s.scanner_caching == 7
    assert s.root_dir == "pp"


def test_settings_ignore_invalid_values(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CELLDUMP_IO_MAX_WORKERS", "zero")
    monkeypatch.setenv("CELLDUMP_IO_COMPRESSION", "brotli")
    monkeypatch.setenv("CELLDUMP_IO_ROW_GROUP_SIZE", "0")

    s = DumpSettings.load()

    assert s == DumpSettings()


def test_settings_defaults_when_no_files(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    assert DumpSettings.load() == DumpSettings()


@pytest.mark.parametrize(
    "kwargs",
    [{"compression": "gzip"}, {"max_workers": 0}, {"records_per_part": 0}],
)
def test_settings_constructor_validation(kwargs: dict) -> None:
    with pytest.raises(IoConfigError):
        DumpSettings(**kwargs)
