"""
Write-ahead log model with pre-write observers.

Only the observable contract is modelled: which row mutations produce a log
entry, whether the entry is marked synced, and that registered observers see
each entry before the write is acknowledged. Entries are kept in memory.

Durability -> entry
- SKIP_WAL              no entry
- ASYNC_WAL             entry, synced=False
- SYNC_WAL, FSYNC_WAL   entry, synced=True
- DEFAULT               resolved by the table before reaching the log
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from celldump.core.cells import Cell
from celldump.core.import_spec import Durability

from .interfaces import WALObserver

logger = logging.getLogger(__name__)

_SYNCED = frozenset({Durability.SYNC_WAL, Durability.FSYNC_WAL})


@dataclass(frozen=True, slots=True)
class WALEntry:
    sequence: int
    table: str
    row: bytes
    cells: tuple[Cell, ...]
    durability: Durability
    synced: bool


class WriteAheadLog:
    """
    Append-only in-memory log shared by the tables of one store.

    Examples:
        >>> wal = WriteAheadLog()
        >>> wal.append("t", b"r", (), Durability.SKIP_WAL) is None
        True
        >>> wal.append("t", b"r", (), Durability.ASYNC_WAL).synced
        False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[WALEntry] = []
        self._listeners: list[WALObserver] = []
        self._seq = 0

    def register_listener(self, listener: WALObserver) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unregister_listener(self, listener: WALObserver) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def append(
        self,
        table: str,
        row: bytes,
        cells: tuple[Cell, ...],
        durability: Durability,
    ) -> WALEntry | None:
        """
        Log one row mutation.

        Returns:
            WALEntry | None: The entry, or None when durability is SKIP_WAL.

        Raises:
            ValueError: If durability is DEFAULT (must be resolved by the caller).
        """
        if durability is Durability.DEFAULT:
            raise ValueError("DEFAULT durability must be resolved before logging")
        if durability is Durability.SKIP_WAL:
            return None
        with self._lock:
            self._seq += 1
            entry = WALEntry(
                sequence=self._seq,
                table=table,
                row=row,
                cells=cells,
                durability=durability,
                synced=durability in _SYNCED,
            )
            listeners = list(self._listeners)
            for listener in listeners:
                listener.visit_log_entry_before_write(table, entry)
            self._entries.append(entry)
        return entry

    def entries(self, table: str | None = None) -> list[WALEntry]:
        with self._lock:
            if table is None:
                return list(self._entries)
            return [e for e in self._entries if e.table == table]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CountingObserver:
    """WALObserver that counts the entries it sees per table."""

    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def visit_log_entry_before_write(self, table: str, entry: WALEntry) -> None:
        self.counts[table] = self.counts.get(table, 0) + 1
        logger.debug("wal entry %d for %s row=%r", entry.sequence, table, entry.row)
