"""
Read utilities for dumps and cell files.

Overview
- list_dump_parts(): Parts of a dump in shard order, from the manifest when present.
- iter_dump_records(): (row_key, encoded_row) records of one part, checksum-verified.
- iter_legacy_rows(): Rows of a legacy one-record-per-cell part, grouped with Polars.
- read_cell_file(): Cells of a store file or store snapshot.

Discovery semantics
- If <dump_dir>/manifest.json exists, its parts (and checksums) are authoritative;
  superseded or stray files in the directory are ignored.
- Otherwise the directory is walked for *.parquet and each part's shard id is taken
  from its Parquet key-value metadata (temporary "*.parquet.tmp" files never match).

Import DAG discipline
- Depends on stdlib, polars/pyarrow, celldump.core and celldump.io helpers only.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass

import polars as pl
import pyarrow.parquet as pq

from celldump.core.cells import Cell, CellType
from celldump.core.errors import VersionMismatch
from celldump.core.hashing import RecordDigest
from celldump.core.ordering import sort_cells
from celldump.core.versioning import require_compatible

from .errors import IoFormatError
from .fs import list_parquet
from .manifest import SHARD_METADATA_KEY, VERSION_METADATA_KEY, load_manifest
from .validate import validate_cell_frame, validate_dump_frame


@dataclass(frozen=True, slots=True)
class DumpPart:
    """
    One part of a dump as seen by a reader.

    Attributes:
        shard_id (int): Partition that produced the part.
        path (str): Absolute or dump-relative-resolved file path.
        checksum (str | None): Expected RecordDigest; None when discovered by FS walk.
    """

    shard_id: int
    path: str
    checksum: str | None = None


def read_part_metadata(path: str) -> dict[str, str]:
    """Return a part's Parquet key-value metadata decoded as text."""
    meta = pq.read_schema(path).metadata or {}
    return {k.decode("utf-8"): v.decode("utf-8", errors="replace") for k, v in meta.items()}


def _check_version(path: str, meta: dict[bytes, bytes]) -> None:
    tag = meta.get(VERSION_METADATA_KEY)
    if tag is None:
        return
    try:
        require_compatible(tag.decode("utf-8"))
    except VersionMismatch as exc:
        raise IoFormatError(f"{path}: {exc}") from exc


def list_dump_parts(dump_dir: str) -> list[DumpPart]:
    """
    List the parts of a dump in shard order.

    Raises:
        IoFormatError: If dump_dir does not exist, or a walked part lacks a shard id.
        IoManifestError: If a manifest exists but is corrupt.
    """
    if not os.path.isdir(dump_dir):
        raise IoFormatError(f"dump directory {dump_dir} does not exist")
    manifest = load_manifest(dump_dir)
    if manifest is not None:
        return [
            DumpPart(p.shard_id, os.path.join(dump_dir, p.path), p.checksum)
            for p in manifest.ordered_parts()
        ]
    parts: list[DumpPart] = []
    for path in list_parquet(dump_dir):
        meta = pq.read_schema(path).metadata or {}
        raw = meta.get(SHARD_METADATA_KEY)
        if raw is None:
            raise IoFormatError(f"{path} has no celldump shard metadata")
        parts.append(DumpPart(int(raw), path))
    return sorted(parts, key=lambda p: (p.shard_id, p.path))


def iter_dump_records(
    part: DumpPart | str,
    *,
    strict: bool = True,
) -> Iterator[tuple[bytes, bytes]]:
    """
    Yield (row_key, encoded_row) records of one part in file order.

    When the part carries an expected checksum and strict is set, the digest is
    verified before the first record is yielded, so a damaged part yields nothing.

    Raises:
        IoFormatError: Wrong columns, incompatible format version, or checksum mismatch.
    """
    if isinstance(part, str):
        part = DumpPart(-1, part)
    _check_version(part.path, pq.read_schema(part.path).metadata or {})
    df = validate_dump_frame(pl.read_parquet(part.path), strict=strict)
    if strict and part.checksum is not None:
        digest = RecordDigest()
        for key, payload in df.iter_rows():
            digest.update(key, payload)
        if digest.hexdigest() != part.checksum:
            raise IoFormatError(f"checksum mismatch for {part.path}")
    yield from df.iter_rows()


def frame_to_cells(df: pl.DataFrame) -> list[Cell]:
    """Convert a validated cell frame into Cell objects (frame order preserved)."""
    return [
        Cell(row, family, qualifier, int(ts), CellType(kind), value)
        for row, family, qualifier, ts, kind, value in df.iter_rows()
    ]


def read_cell_file(path: str, *, strict: bool = True) -> list[Cell]:
    """
    Read a store file or store snapshot.

    Raises:
        IoFormatError: If the file is not a valid cell frame.
    """
    _check_version(path, pq.read_schema(path).metadata or {})
    return frame_to_cells(validate_cell_frame(pl.read_parquet(path), strict=strict))


def iter_legacy_rows(
    part: DumpPart | str,
    *,
    strict: bool = True,
) -> Iterator[tuple[bytes, tuple[Cell, ...]]]:
    """
    Yield (row_key, cells) from a legacy one-record-per-cell part.

    Records are grouped by row in ascending row order; each row's cells are
    returned in storage order regardless of their order in the file.
    """
    path = part.path if isinstance(part, DumpPart) else part
    df = validate_cell_frame(pl.read_parquet(path), strict=strict)
    if df.is_empty():
        return
    df = df.sort("row", maintain_order=True)
    for group in df.partition_by("row", maintain_order=True):
        cells = sort_cells(frame_to_cells(group))
        yield cells[0].row, tuple(cells)

