"""
Dump manifest data structures and helpers.

Manifest layout (JSON at <dump_dir>/manifest.json):
{
  "format_version": "1.0@2026-10-01",
  "source_table": "<table>",
  "layout": "current",
  "created_at": "ISO-8601",
  "updated_at": "ISO-8601",
  "scan": {"raw": true, "max_versions": 1000, ...},
  "parts": {
    "00003": {
      "shard_id": 3,
      "path": "part-00003-<UUID>.parquet",
      "rows": 12,
      "cells": 345,
      "bytes": 6789,
      "first_row": "726f7731",
      "last_row": "726f7739",
      "checksum": "<sha256 over records>",
      "created_at": "ISO-8601"
    }
  }
}

Notes:
- Part paths are relative to the dump directory so a dump can be moved as a whole.
- Row bounds are hex-encoded because row keys are arbitrary bytes.
- The export job is the single writer of the manifest; tasks only return PartMeta.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

import polars as pl
import pyarrow.parquet as pq

from celldump.core.codec import decode
from celldump.core.hashing import RecordDigest
from celldump.core.versioning import FORMAT_V

from .errors import IoManifestError
from .fs import list_parquet, write_bytes_atomic
from .paths import manifest_path

SHARD_METADATA_KEY = b"celldump_shard"
TABLE_METADATA_KEY = b"celldump_source_table"
VERSION_METADATA_KEY = b"celldump_format_version"


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class PartMeta:
    """
    Per-part metadata recorded in the dump manifest.

    Attributes:
        shard_id (int): Source partition that produced this part.
        path (str): File name relative to the dump directory.
        rows (int): Records (logical rows) in the part.
        cells (int): Cells across all records.
        bytes (int): File size in bytes.
        first_row (str): Hex of the first row key ("" when empty).
        last_row (str): Hex of the last row key ("" when empty).
        checksum (str): RecordDigest over (row_key, encoded_row) in file order.
        created_at (str): ISO-8601 timestamp.
    """

    shard_id: int
    path: str
    rows: int
    cells: int
    bytes: int
    first_row: str
    last_row: str
    checksum: str
    created_at: str


@dataclass(slots=True)
class DumpManifest:
    """
    Manifest model persisted at <dump_dir>/manifest.json.

    Attributes:
        format_version (str): FORMAT_V tag of the writer.
        source_table (str): Table the dump was exported from.
        layout (str): "current" for encoded-row dumps.
        created_at (str): ISO-8601 creation timestamp.
        updated_at (str): ISO-8601 timestamp of the last update.
        scan (dict[str, Any]): Summary of the scan descriptor used for export.
        parts (dict[str, PartMeta]): Zero-padded shard key -> part metadata.
    """

    format_version: str
    source_table: str
    layout: str
    created_at: str
    updated_at: str
    scan: dict[str, Any] = field(default_factory=dict)
    parts: dict[str, PartMeta] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(p.rows for p in self.parts.values())

    @property
    def total_cells(self) -> int:
        return sum(p.cells for p in self.parts.values())

    def ordered_parts(self) -> list[PartMeta]:
        return [self.parts[k] for k in sorted(self.parts)]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "format_version": self.format_version,
            "source_table": self.source_table,
            "layout": self.layout,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "scan": dict(self.scan),
            "parts": {k: asdict(v) for k, v in self.parts.items()},
        }

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> DumpManifest:
        parts = {key: PartMeta(**p) for key, p in (obj.get("parts") or {}).items()}
        return cls(
            format_version=obj["format_version"],
            source_table=obj.get("source_table", ""),
            layout=obj.get("layout", "current"),
            created_at=obj.get("created_at") or _utc_now_iso(),
            updated_at=obj.get("updated_at") or _utc_now_iso(),
            scan=dict(obj.get("scan") or {}),
            parts=parts,
        )


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------


def load_manifest(dump_dir: str) -> DumpManifest | None:
    """
    Load a dump's manifest.json if present.

    Raises:
        IoManifestError: If the file exists but is not a valid manifest.
    """
    mpath = manifest_path(dump_dir)
    if not os.path.exists(mpath):
        return None
    try:
        with open(mpath, encoding="utf-8") as fh:
            data = json.load(fh)
        return DumpManifest.from_json_obj(data)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise IoManifestError(f"corrupt manifest at {mpath}: {exc}") from exc


def write_manifest(dump_dir: str, manifest: DumpManifest) -> None:
    """
    Persist manifest.json atomically (tmp write -> fsync -> os.replace).

    Raises:
        IoManifestError: If the write or rename fails.
    """
    final_path = manifest_path(dump_dir)
    payload = json.dumps(manifest.to_json_obj(), indent=2, sort_keys=False).encode("utf-8")
    try:
        write_bytes_atomic(final_path, payload)
    except OSError as exc:
        raise IoManifestError(f"failed to write manifest {final_path}: {exc}") from exc


# -----------------------------------------------------------------------------
# Update helpers
# -----------------------------------------------------------------------------


def shard_key(shard_id: int) -> str:
    return f"{shard_id:05d}"


def new_manifest(source_table: str, scan: dict[str, Any] | None = None) -> DumpManifest:
    """Create a fresh DumpManifest with no parts."""
    now = _utc_now_iso()
    return DumpManifest(
        format_version=FORMAT_V.tag(),
        source_table=source_table,
        layout="current",
        created_at=now,
        updated_at=now,
        scan=dict(scan or {}),
        parts={},
    )


def update_with_new_part(manifest: DumpManifest, part: PartMeta) -> None:
    """
    Record a part, replacing any earlier part for the same shard.

    Notes:
        Replacement keeps a re-exported shard from being listed twice; the
        superseded file is left on disk and ignored by manifest-driven reads.
    """
    manifest.parts[shard_key(part.shard_id)] = part
    manifest.updated_at = _utc_now_iso()


# -----------------------------------------------------------------------------
# Rebuild (FS walk + recomputed statistics)
# -----------------------------------------------------------------------------


def rebuild_manifest_from_fs(dump_dir: str) -> DumpManifest:
    """
    Rebuild a manifest by reading every part under dump_dir.

    Shard ids and the source table come from each part's Parquet key-value
    metadata; rows, cells, bounds and checksum are recomputed from the records.
    When two files claim the same shard, the later file name wins.

    Raises:
        IoManifestError: If no parts are found or a part lacks celldump metadata.
    """
    paths = list_parquet(dump_dir)
    if not paths:
        raise IoManifestError(f"no dump parts found under {dump_dir}")
    first = pq.read_schema(paths[0]).metadata or {}
    m = new_manifest(first.get(TABLE_METADATA_KEY, b"").decode("utf-8"))
    version = first.get(VERSION_METADATA_KEY)
    if version:
        m.format_version = version.decode("utf-8")
    for fpath in paths:
        meta = pq.read_schema(fpath).metadata or {}
        if SHARD_METADATA_KEY not in meta:
            raise IoManifestError(f"{fpath} has no celldump shard metadata")
        df = pl.read_parquet(fpath, columns=["row_key", "encoded_row"])
        digest = RecordDigest()
        cells = 0
        for key, payload in df.iter_rows():
            digest.update(key, payload)
            cells += len(decode(payload))
        keys = df.get_column("row_key")
        update_with_new_part(
            m,
            PartMeta(
                shard_id=int(meta[SHARD_METADATA_KEY]),
                path=os.path.basename(fpath),
                rows=df.height,
                cells=cells,
                bytes=int(os.path.getsize(fpath)),
                first_row=keys[0].hex() if df.height else "",
                last_row=keys[-1].hex() if df.height else "",
                checksum=digest.hexdigest(),
                created_at=_utc_now_iso(),
            ),
        )
    return m
