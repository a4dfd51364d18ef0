"""
In-memory multiversion table (reference RowScanner and MutationSink).

Responsibilities
- Hold every stored cell of a table keyed by (row, family, qualifier, timestamp, type);
  writing the same coordinates twice replaces the value, so replays are idempotent.
- Serve raw scans (tombstones and stored versions) and resolved scans (tombstones
  applied, newest visible versions only) under a ScanSpec.
- Apply RowMutations atomically per row, logging to the WriteAheadLog first.

Read semantics
- Family allow-list and visibility labels are applied first, then the time range.
- Version cap per column is min(ScanSpec.max_versions, family max_versions) and counts
  value cells only; a raw scan returns every tombstone in range.
- Resolved reads apply every stored tombstone of the row, including tombstones
  whose timestamp lies outside the scan's time range.
- Rows with nothing to return are omitted. The row filter sees each row's complete
  cell list before batching; STOP ends the scan.

Visibility expressions
- "a|b&c" is a disjunction of conjunctions: visible when any "&"-group is fully
  contained in the scan's visibility labels. Unlabelled cells are always visible.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator

from celldump.core.cells import Cell, CellType, Row
from celldump.core.constants import LATEST_TIMESTAMP
from celldump.core.filters import FilterDecision
from celldump.core.import_spec import Durability
from celldump.core.ordering import sort_cells
from celldump.core.scan_spec import ScanSpec

from .errors import NoSuchFamilyError
from .interfaces import Partition
from .mutations import RowMutations
from .schema import TableDescriptor
from .wal import WALEntry, WriteAheadLog

logger = logging.getLogger(__name__)

_CellKey = tuple[bytes, bytes, int, CellType]


def _key(cell: Cell) -> _CellKey:
    return (cell.family, cell.qualifier, cell.timestamp, cell.type)


def label_expression_allows(expression: str | None, labels: tuple[str, ...]) -> bool:
    """
    Evaluate a visibility expression against authorized labels.

    Examples:
        >>> label_expression_allows("secret|public", ("public",))
        True
        >>> label_expression_allows("a&b", ("a",))
        False
        >>> label_expression_allows(None, ())
        True
    """
    if not expression:
        return True
    granted = set(labels)
    for group in expression.split("|"):
        needed = {t.strip() for t in group.split("&") if t.strip()}
        if needed and needed <= granted:
            return True
    return False


def _now_ms() -> int:
    return int(time.time() * 1000)


class MemTable:
    """
    Reference table implementing RowScanner and MutationSink.

    Examples:
        >>> from celldump.core.cells import put
        >>> t = MemTable(TableDescriptor.of("t", {b"cf": 3}))
        >>> _ = t.apply(RowMutations.from_cells(b"r1", [put(b"r1", b"cf", b"q", 5, b"v")]))
        >>> [r.key for r in t.scan(ScanSpec())]
        [b'r1']
    """

    def __init__(self, descriptor: TableDescriptor, wal: WriteAheadLog | None = None) -> None:
        self.descriptor = descriptor
        self.wal = wal if wal is not None else WriteAheadLog()
        self._lock = threading.RLock()
        self._rows: dict[bytes, dict[_CellKey, Cell]] = {}
        self._labels: dict[tuple[bytes, _CellKey], str] = {}

    @property
    def name(self) -> str:
        return self.descriptor.name

    def partitions(self) -> list[Partition]:
        return self.descriptor.partitions()

    def resolve_durability(self, durability: Durability) -> Durability:
        return self.descriptor.durability if durability is Durability.DEFAULT else durability

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _check_families(self, families: set[bytes]) -> None:
        unknown = families - self.descriptor.family_names()
        if unknown:
            raise NoSuchFamilyError(
                f"table {self.name!r} has no column families {sorted(unknown)!r}"
            )

    def apply(self, mutations: RowMutations) -> WALEntry | None:
        """
        Apply one row's mutations atomically.

        The WAL entry (if the durability asks for one) is appended and shown to
        observers before any cell becomes readable.

        Returns:
            WALEntry | None: The log entry, or None under SKIP_WAL.

        Raises:
            NoSuchFamilyError: If any mutation names an undeclared family.
        """
        self._check_families(mutations.families())
        now = _now_ms()
        cells = tuple(
            Cell(c.row, c.family, c.qualifier, now, c.type, c.value)
            if c.timestamp == LATEST_TIMESTAMP
            else c
            for c in mutations.cells()
        )
        durability = self.resolve_durability(mutations.durability)
        with self._lock:
            entry = self.wal.append(self.name, mutations.row, cells, durability)
            self._store(mutations.row, cells, mutations.visibility)
        return entry

    def put_cells(self, cells: list[Cell] | tuple[Cell, ...], visibility: str | None = None) -> int:
        """
        Store cells directly, bypassing the WAL (bulk load and snapshot restore).

        Returns:
            int: Number of cells stored.

        Raises:
            NoSuchFamilyError: If any cell names an undeclared family.
        """
        self._check_families({c.family for c in cells})
        with self._lock:
            for c in cells:
                self._store(c.row, (c,), visibility)
        return len(cells)

    def _store(self, row: bytes, cells: tuple[Cell, ...], visibility: str | None) -> None:
        slot = self._rows.setdefault(row, {})
        for c in cells:
            k = _key(c)
            slot[k] = c
            if visibility:
                self._labels[(row, k)] = visibility
            else:
                self._labels.pop((row, k), None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def all_cells(self) -> list[Cell]:
        """Every stored cell in storage order, ignoring version caps."""
        with self._lock:
            cells = [c for slot in self._rows.values() for c in slot.values()]
        return sort_cells(cells)

    def row_count(self) -> int:
        with self._lock:
            return len(self._rows)

    def scan(self, spec: ScanSpec, partition: Partition | None = None) -> Iterator[Row]:
        """
        Scan rows in key order.

        Rows are fetched in chunks of spec.caching_size under the table lock, so
        writes may interleave between chunks but never within a row.

        Raises:
            NoSuchFamilyError: If the family allow-list names an undeclared family.
        """
        self._check_families(set(spec.families))
        with self._lock:
            keys = sorted(
                k
                for k in self._rows
                if spec.row_in_range(k) and (partition is None or partition.contains(k))
            )
        for start in range(0, len(keys), spec.caching_size):
            with self._lock:
                batch = keys[start : start + spec.caching_size]
                chunk = [(k, self._visible_cells(k, spec)) for k in batch]
            for key, cells in chunk:
                out = self._raw(cells, spec) if spec.raw else self._resolved(cells, spec)
                if not out:
                    continue
                if spec.row_filter is not None:
                    decision = spec.row_filter.filter_row(key, out)
                    if decision is FilterDecision.SKIP:
                        continue
                    if decision is FilterDecision.STOP:
                        return
                if spec.batch_size is None:
                    yield Row(key, tuple(out))
                else:
                    for i in range(0, len(out), spec.batch_size):
                        yield Row(key, tuple(out[i : i + spec.batch_size]))

    def get(self, row: bytes, spec: ScanSpec | None = None) -> Row | None:
        """Read a single row; spec bounds are replaced by the row itself."""
        base = spec or ScanSpec()
        single = base.model_copy(
            update={"start_row": row, "stop_row": row + b"\x00", "batch_size": None}
        )
        for result in self.scan(single):
            return result
        return None

    def _visible_cells(self, row: bytes, spec: ScanSpec) -> list[Cell]:
        slot = self._rows.get(row, {})
        out = [
            c
            for k, c in slot.items()
            if (not spec.families or c.family in spec.families)
            and label_expression_allows(self._labels.get((row, k)), spec.visibility_labels)
        ]
        return sort_cells(out)

    def _cap(self, cell: Cell, spec: ScanSpec) -> int:
        fam = self.descriptor.family(cell.family)
        family_cap = fam.max_versions if fam is not None else spec.max_versions
        return min(spec.max_versions, family_cap)

    def _raw(self, cells: list[Cell], spec: ScanSpec) -> list[Cell]:
        out: list[Cell] = []
        seen: dict[tuple[bytes, bytes], int] = {}
        for c in cells:
            if not spec.timestamp_in_range(c.timestamp):
                continue
            if c.is_delete:
                out.append(c)
                continue
            n = seen.get(c.column, 0)
            if n < self._cap(c, spec):
                out.append(c)
                seen[c.column] = n + 1
        return out

    def _resolved(self, cells: list[Cell], spec: ScanSpec) -> list[Cell]:
        family_ts: dict[bytes, int] = {}
        family_versions: dict[bytes, set[int]] = {}
        column_ts: dict[tuple[bytes, bytes], int] = {}
        for c in cells:
            if c.type is CellType.DELETE_FAMILY:
                family_ts[c.family] = max(family_ts.get(c.family, -1), c.timestamp)
            elif c.type is CellType.DELETE_FAMILY_VERSION:
                family_versions.setdefault(c.family, set()).add(c.timestamp)
            elif c.type is CellType.DELETE_COLUMN:
                column_ts[c.column] = max(column_ts.get(c.column, -1), c.timestamp)

        out: list[Cell] = []
        seen: dict[tuple[bytes, bytes], int] = {}
        for c in cells:
            if c.is_delete:
                continue
            if c.timestamp <= family_ts.get(c.family, -1):
                continue
            if c.timestamp in family_versions.get(c.family, ()):
                continue
            if c.timestamp <= column_ts.get(c.column, -1):
                continue
            if not spec.timestamp_in_range(c.timestamp):
                continue
            n = seen.get(c.column, 0)
            if n < self._cap(c, spec):
                out.append(c)
                seen[c.column] = n + 1
        return out
