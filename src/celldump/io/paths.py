"""
Path and layout helpers for celldump.io.

Layouts (file protocol baseline)
- Dump:        <dump_dir>/part-<shard:05d>-<UUID>.parquet
               <dump_dir>/manifest.json
               <dump_dir>/job.report.json
- Local store: <root>/tables/<table>/schema.json
               <root>/tables/<table>/cells.parquet
- Bulk output: <bulk_dir>/<family>/storefile-<UUID>.parquet

Notes
- This module only builds paths; it performs no IO.
- Family directory names use the family text when it is filesystem-safe and
  "hex-<hex>" otherwise, so arbitrary family bytes round-trip.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Final

from .config import DumpSettings

_MANIFEST_NAME: Final[str] = "manifest.json"
_REPORT_NAME: Final[str] = "job.report.json"
_SCHEMA_NAME: Final[str] = "schema.json"
_SNAPSHOT_NAME: Final[str] = "cells.parquet"
_HEX_PREFIX: Final[str] = "hex-"

_SAFE_NAME_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9._:-]+$")


@dataclass(slots=True, frozen=True)
class PartPaths:
    """
    Container for a file's temporary and final paths.

    Attributes:
        tmp_path (str): Temporary path used for the initial write ("*.parquet.tmp").
        final_path (str): Final path after atomic rename ("*.parquet").
    """

    tmp_path: str
    final_path: str


def _paths(directory: str, base_name: str) -> PartPaths:
    final_path = os.path.join(directory, base_name)
    return PartPaths(tmp_path=final_path + ".tmp", final_path=final_path)


# -----------------------------------------------------------------------------
# Dump layout
# -----------------------------------------------------------------------------


def format_part_name(shard_id: int, uuid_str: str) -> str:
    """
    Format a dump part file name as 'part-00003-<uuid>.parquet'.

    Raises:
        ValueError: If shard_id < 0.
    """
    if shard_id < 0:
        raise ValueError("shard_id must be >= 0")
    return f"part-{shard_id:05d}-{uuid_str}.parquet"


def part_paths(dump_dir: str, shard_id: int, uuid_str: str) -> PartPaths:
    """Temporary and final paths for one dump part."""
    return _paths(dump_dir, format_part_name(shard_id, uuid_str))


def manifest_path(dump_dir: str) -> str:
    """Path "<dump_dir>/manifest.json"."""
    return os.path.join(dump_dir, _MANIFEST_NAME)


def report_path(dump_dir: str) -> str:
    """Path "<dump_dir>/job.report.json"."""
    return os.path.join(dump_dir, _REPORT_NAME)


# -----------------------------------------------------------------------------
# Local store layout
# -----------------------------------------------------------------------------


def validate_table_name(name: str) -> str:
    """
    Validate that a table name is safe for filesystem paths.

    Raises:
        ValueError: If name is empty or contains characters outside [A-Za-z0-9._:-].
    """
    s = name or ""
    if not s or not _SAFE_NAME_RE.match(s) or s in (".", ".."):
        raise ValueError(
            f"table name {name!r} contains illegal characters; allowed pattern is [A-Za-z0-9._:-]+"
        )
    return s


def tables_root(settings: DumpSettings) -> str:
    """Path "<root>/tables"."""
    return os.path.join(settings.root_dir, "tables")


def table_dir(settings: DumpSettings, table: str) -> str:
    """Path "<root>/tables/<table>"."""
    return os.path.join(tables_root(settings), validate_table_name(table))


def table_schema_path(settings: DumpSettings, table: str) -> str:
    return os.path.join(table_dir(settings, table), _SCHEMA_NAME)


def table_snapshot_paths(settings: DumpSettings, table: str) -> PartPaths:
    return _paths(table_dir(settings, table), _SNAPSHOT_NAME)


# -----------------------------------------------------------------------------
# Bulk output layout
# -----------------------------------------------------------------------------


def family_dirname(family: bytes) -> str:
    """
    Directory name for a family.

    Examples:
        >>> family_dirname(b"cf1")
        'cf1'
        >>> family_dirname(b"a/b")
        'hex-612f62'
    """
    try:
        text = family.decode("ascii")
    except UnicodeDecodeError:
        text = ""
    if (
        text
        and _SAFE_NAME_RE.match(text)
        and text not in (".", "..")
        and not text.startswith(_HEX_PREFIX)
    ):
        return text
    return _HEX_PREFIX + family.hex()


def family_from_dirname(name: str) -> bytes:
    """Inverse of family_dirname."""
    if name.startswith(_HEX_PREFIX):
        return bytes.fromhex(name[len(_HEX_PREFIX) :])
    return name.encode("ascii")


def storefile_paths(bulk_dir: str, family: bytes, uuid_str: str) -> PartPaths:
    """Temporary and final paths for one bulk-output store file."""
    return _paths(os.path.join(bulk_dir, family_dirname(family)), f"storefile-{uuid_str}.parquet")
