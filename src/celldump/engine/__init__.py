"""
celldump.engine: storage-engine contracts and a reference engine.

## Responsibilities
- Define the protocols jobs consume: RowScanner, MutationSink, WALObserver.
- Model row mutations (SetCell, DeleteColumn, DeleteFamily, DeleteFamilyVersion)
  and the write-ahead log's observable behaviour per durability.
- Provide MemTable (multiversion, tombstone-aware, in memory) and LocalStore
  (MemTables persisted as Parquet snapshots, bulk-loadable from store files).

## Import DAG discipline
- Depends on celldump.core and celldump.io; MUST NOT import celldump.jobs or celldump.cli.
"""

from __future__ import annotations

from .errors import EngineError, NoSuchFamilyError, NoSuchTableError, TableExistsError
from .interfaces import MutationSink, Partition, RowScanner, WALObserver
from .local import LocalStore
from .memory import MemTable
from .mutations import (
    DeleteColumn,
    DeleteFamily,
    DeleteFamilyVersion,
    RowMutations,
    SetCell,
    mutation_for_cell,
)
from .schema import FamilySpec, TableDescriptor
from .wal import WALEntry, WriteAheadLog

__all__ = [
    "EngineError",
    "NoSuchFamilyError",
    "NoSuchTableError",
    "TableExistsError",
    "MutationSink",
    "Partition",
    "RowScanner",
    "WALObserver",
    "LocalStore",
    "MemTable",
    "DeleteColumn",
    "DeleteFamily",
    "DeleteFamilyVersion",
    "RowMutations",
    "SetCell",
    "mutation_for_cell",
    "FamilySpec",
    "TableDescriptor",
    "WALEntry",
    "WriteAheadLog",
]
