"""
Storage-engine contracts consumed by export and import jobs.

Responsibilities
- RowScanner: list partitions and scan rows of one partition under a ScanSpec.
- MutationSink: apply one RowMutations atomically.
- WALObserver: see each write-ahead log entry before the write is acknowledged.

Notes
- Jobs depend on these protocols only; celldump.engine.memory and
  celldump.engine.local are reference implementations.
- A scan yields Row results. With ScanSpec.batch_size set, one logical row may
  arrive as several consecutive results sharing the same key.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from celldump.core.cells import Row
from celldump.core.scan_spec import ScanSpec

if TYPE_CHECKING:
    from .mutations import RowMutations
    from .wal import WALEntry


@dataclass(frozen=True, slots=True)
class Partition:
    """
    A contiguous row range of a table (a region).

    Attributes:
        index (int): Position among the table's partitions; used as the shard id.
        start_row (bytes | None): Inclusive lower bound; None is unbounded.
        stop_row (bytes | None): Exclusive upper bound; None is unbounded.
    """

    index: int
    start_row: bytes | None = None
    stop_row: bytes | None = None

    def contains(self, row: bytes) -> bool:
        if self.start_row is not None and row < self.start_row:
            return False
        if self.stop_row is not None and row >= self.stop_row:
            return False
        return True


@runtime_checkable
class RowScanner(Protocol):
    def partitions(self) -> list[Partition]: ...

    def scan(self, spec: ScanSpec, partition: Partition | None = None) -> Iterator[Row]: ...


@runtime_checkable
class MutationSink(Protocol):
    def apply(self, mutations: RowMutations) -> None: ...


@runtime_checkable
class WALObserver(Protocol):
    def visit_log_entry_before_write(self, table: str, entry: WALEntry) -> None: ...
