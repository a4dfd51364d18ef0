"""
Dataset facade for celldump.io.

Provides an object bound to one dump directory with parts/records/rows/manifest
helpers. Record payloads are decoded through celldump.core.codec, which stays the
single source of truth for the encoded-row layout.

Import DAG discipline:
- Depends only on stdlib, polars, and celldump.core.* (via read/manifest/report modules).
- Must not import celldump.engine, celldump.jobs or celldump.cli.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import polars as pl

from celldump.core.cells import Cell
from celldump.core.codec import decode

from .config import DumpSettings
from .manifest import DumpManifest, load_manifest, rebuild_manifest_from_fs, write_manifest
from .read import DumpPart, iter_dump_records, list_dump_parts
from .report import load_job_report
from .write import cells_to_frame


class DumpDataset:
    """
    Facade bound to DumpSettings and one dump directory.

    Notes:
        - Construction performs no IO.
        - Reads follow the manifest when present and fall back to an FS walk.
    """

    def __init__(self, settings: DumpSettings, dump_dir: str) -> None:
        self.settings = settings
        self.dump_dir = dump_dir

    def parts(self) -> list[DumpPart]:
        return list_dump_parts(self.dump_dir)

    def records(self) -> Iterator[tuple[bytes, bytes]]:
        """Yield raw (row_key, encoded_row) records across all parts in shard order."""
        for part in self.parts():
            yield from iter_dump_records(part, strict=self.settings.strict_format)

    def rows(self) -> Iterator[tuple[bytes, tuple[Cell, ...]]]:
        """
        Yield decoded rows across all parts.

        Raises:
            CodecError: If a record does not decode.
        """
        for key, payload in self.records():
            yield key, decode(payload)

    def to_frame(self) -> pl.DataFrame:
        """Materialize every cell of the dump as a one-record-per-cell frame."""
        return cells_to_frame(c for _key, cells in self.rows() for c in cells)

    # ---------------------------------------------------------------------
    # Manifest / report
    # ---------------------------------------------------------------------
    def manifest(self) -> DumpManifest | None:
        return load_manifest(self.dump_dir)

    def rebuild_manifest(self) -> DumpManifest:
        """
        Rebuild the manifest from the parts on disk and write it atomically.

        Notes:
            Recovery path for dumps whose manifest was lost; every part is read
            and decoded, so it is slower than manifest-driven reads.
        """
        m = rebuild_manifest_from_fs(self.dump_dir)
        write_manifest(self.dump_dir, m)
        return m

    def report(self) -> dict[str, Any] | None:
        return load_job_report(self.dump_dir)
