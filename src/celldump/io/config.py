"""
Configuration for the celldump.io module.

Defines DumpSettings, a frozen dataclass carrying runtime configuration for dump
files, the local store root, and the local task pool. Defaults are sourced from
celldump.core.constants (the single source of truth).

Source of truth
- celldump.core.constants.ROW_GROUP_SIZE, RECORDS_PER_PART, COMPRESSION, MAX_WORKERS,
  DEFAULT_SCANNER_CACHING

Import DAG discipline
- Depends only on stdlib and celldump.core.constants.
- Does not import higher layers (engine, jobs, cli).

Notes
- Precedence is env > TOML > defaults (see DumpSettings.load).
- Compression applies to dump parts and store files written via pyarrow.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal

from celldump.core.constants import COMPRESSION as CORE_COMPRESSION
from celldump.core.constants import DEFAULT_SCANNER_CACHING
from celldump.core.constants import MAX_WORKERS as CORE_MAX_WORKERS
from celldump.core.constants import RECORDS_PER_PART as CORE_RECORDS_PER_PART
from celldump.core.constants import ROW_GROUP_SIZE as CORE_ROW_GROUP_SIZE

from .errors import IoConfigError

Compression = Literal["zstd", "lz4", "snappy"]
_COMPRESSIONS = ("zstd", "lz4", "snappy")
ENV_PREFIX = "CELLDUMP_IO_"
_POSITIVE_INTS = ("row_group_size", "records_per_part", "max_workers", "scanner_caching")
_TRUE = frozenset({"1", "true", "t", "yes", "y", "on"})


@dataclass(frozen=True)
class DumpSettings:
    """
    Runtime settings for dump IO and local execution.

    Attributes:
        root_dir (str): Root of the local table store (tables live under <root>/tables).
        compression (Literal["zstd","lz4","snappy"]): Parquet codec for parts and store files.
        row_group_size (int): Parquet row group size used for writes.
        records_per_part (int): Records buffered before a part flushes a row group (>= 1).
        max_workers (int): Size of the local task pool (>= 1).
        scanner_caching (int): Default rows per scanner fetch when the scan does not set one.
        strict_format (bool): Verify part checksums and column types when reading dumps.

    Examples:
        >>> from celldump.io import DumpSettings
        >>> DumpSettings(root_dir="store", max_workers=2)  # doctest: +ELLIPSIS
        DumpSettings(...)
    """

    root_dir: str = "store"
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    row_group_size: int = CORE_ROW_GROUP_SIZE
    records_per_part: int = CORE_RECORDS_PER_PART
    max_workers: int = CORE_MAX_WORKERS
    scanner_caching: int = DEFAULT_SCANNER_CACHING
    strict_format: bool = True

    def __post_init__(self) -> None:
        if self.compression not in _COMPRESSIONS:
            raise IoConfigError(f"unsupported compression {self.compression!r}")
        for name in _POSITIVE_INTS:
            if int(getattr(self, name)) < 1:
                raise IoConfigError(f"{name} must be >= 1")

    # Loaders. Precedence: environment > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: DumpSettings, cfg: Mapping[str, Any] | None) -> DumpSettings:
        """
        Overlay a loosely typed mapping on base.

        Unknown keys, values that do not parse, and out-of-range numbers are
        ignored so a stray setting never prevents a job from starting.
        """
        if not isinstance(cfg, Mapping):
            return base
        updates: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in cfg:
                continue
            value = _coerce_setting(f.name, cfg[f.name])
            if value is not None:
                updates[f.name] = value
        return replace(base, **updates) if updates else base

    @classmethod
    def from_env(
        cls, base: DumpSettings | None = None, prefix: str = ENV_PREFIX
    ) -> DumpSettings:
        """
        Overlay CELLDUMP_IO_<FIELD> environment variables on base (or defaults).

        Recognized variables: CELLDUMP_IO_ROOT_DIR, CELLDUMP_IO_COMPRESSION,
        CELLDUMP_IO_ROW_GROUP_SIZE, CELLDUMP_IO_RECORDS_PER_PART,
        CELLDUMP_IO_MAX_WORKERS, CELLDUMP_IO_SCANNER_CACHING and
        CELLDUMP_IO_STRICT_FORMAT. Empty variables are treated as unset.
        """
        env = {f.name: os.environ.get(prefix + f.name.upper(), "") for f in fields(cls)}
        return cls._apply_mapping(base or cls(), {k: v for k, v in env.items() if v})

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> DumpSettings:
        """
        Build DumpSettings from TOML.

        With no path, ./celldump.toml ([io] table or top-level keys) is tried
        first, then [tool.celldump.io] in ./pyproject.toml. Missing or
        unparsable files yield defaults.
        """
        candidates = [Path(path)] if path is not None else _default_toml_paths()
        for candidate in candidates:
            section = _toml_section(candidate)
            if section:
                return cls._apply_mapping(cls(), section)
        return cls()

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> DumpSettings:
        """Load settings with precedence environment > TOML > defaults."""
        return cls.from_env(base=cls.from_toml(path))


def _coerce_setting(name: str, raw: Any) -> Any:
    """Parse one raw setting; None means "ignore"."""
    if name == "root_dir":
        return raw if isinstance(raw, str) and raw else None
    if name == "compression":
        comp = str(raw).strip().lower()
        return comp if comp in _COMPRESSIONS else None
    if name in _POSITIVE_INTS:
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return None
        return value if value >= 1 else None
    if name == "strict_format":
        if isinstance(raw, (bool, int, float)):
            return bool(raw)
        return str(raw).strip().lower() in _TRUE
    return None


def _default_toml_paths() -> list[Path]:
    return [Path.cwd() / "celldump.toml", Path.cwd() / "pyproject.toml"]


def _toml_section(p: Path) -> dict[str, Any] | None:
    """Return the celldump io table of a TOML file, or None."""
    if not p.is_file():
        return None
    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return None
    if p.name == "pyproject.toml":
        section = data.get("tool", {}).get("celldump", {}).get("io")
    else:
        section = data.get("io", data)
    return section if isinstance(section, dict) else None
