"""
celldump.io: dump files on disk.

## Responsibilities
- Write dump parts (one per source partition) with atomic tmp→fsync→rename
  semantics and Parquet key-value metadata (format version, source table, shard).
- Track parts in a per-dump manifest.json with row bounds and record checksums,
  and rebuild it from the filesystem when it is lost.
- Read dumps back (current and legacy layouts), store files and store snapshots.
- Resolve IO settings with env > TOML > defaults precedence.

## Public API
- DumpSettings: IO configuration (defaults sourced from celldump.core.constants).
- DumpDataset: Facade bound to one dump directory.

## Import DAG discipline
- Depends only on stdlib, polars/pyarrow, and celldump.core.*.
- MUST NOT import celldump.engine, celldump.jobs or celldump.cli.

## Notes
- Dump layout: <dump_dir>/part-<shard:05d>-<uuid>.parquet + manifest.json + job.report.json.
- Parts hold (row_key: binary, encoded_row: binary); payloads are celldump.core.codec records.
"""

from __future__ import annotations

from .config import DumpSettings
from .dataset import DumpDataset

__all__ = [
    "DumpSettings",
    "DumpDataset",
]
