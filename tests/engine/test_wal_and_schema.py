from __future__ import annotations

import pytest

from celldump.core.cells import delete_family, put
from celldump.core.constants import LATEST_TIMESTAMP
from celldump.core.import_spec import Durability
from celldump.engine.interfaces import MutationSink, Partition, RowScanner, WALObserver
from celldump.engine.memory import MemTable
from celldump.engine.mutations import (
    DeleteFamily,
    RowMutations,
    SetCell,
    mutation_for_cell,
)
from celldump.engine.schema import TableDescriptor
from celldump.engine.wal import CountingObserver, WriteAheadLog


def _rm(row: bytes, durability: Durability = Durability.DEFAULT) -> RowMutations:
    return RowMutations.from_cells(row, [put(row, b"cf", b"q", 1, b"v")]).with_durability(
        durability
    )


@pytest.mark.parametrize(
    ("durability", "entries", "synced"),
    [
        (Durability.SKIP_WAL, 0, None),
        (Durability.ASYNC_WAL, 1, False),
        (Durability.SYNC_WAL, 1, True),
        (Durability.FSYNC_WAL, 1, True),
    ],
)
def test_durability_controls_wal_entries(durability, entries, synced) -> None:
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}))
    entry = t.apply(_rm(b"r", durability))
    assert len(t.wal) == entries
    assert (entry.synced if entry else None) is synced
    assert t.row_count() == 1


def test_default_durability_resolves_to_table_setting() -> None:
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}, durability=Durability.ASYNC_WAL))
    entry = t.apply(_rm(b"r"))
    assert entry is not None
    assert entry.durability is Durability.ASYNC_WAL
    with pytest.raises(ValueError):
        WriteAheadLog().append("t", b"r", (), Durability.DEFAULT)


def test_observer_sees_entries_before_write() -> None:
    wal = WriteAheadLog()
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}), wal)
    seen_rows: list[int] = []

    class Recorder:
        def visit_log_entry_before_write(self, table, entry) -> None:
            seen_rows.append(t.row_count())

    counter = CountingObserver()
    recorder = Recorder()
    wal.register_listener(counter)
    wal.register_listener(recorder)
    assert isinstance(recorder, WALObserver)

    t.apply(_rm(b"r1"))
    t.apply(_rm(b"r2"))
    t.apply(_rm(b"r3", Durability.SKIP_WAL))

    assert counter.counts == {"t": 2}
    assert seen_rows == [0, 1]
    assert [e.sequence for e in wal.entries("t")] == [1, 2]
    wal.unregister_listener(recorder)
    t.apply(_rm(b"r4"))
    assert seen_rows == [0, 1]


def test_latest_timestamp_is_stamped_on_apply() -> None:
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}))
    t.apply(RowMutations(b"r", (SetCell(b"cf", b"q", LATEST_TIMESTAMP, b"v"),)))
    (cell,) = t.all_cells()
    assert 0 < cell.timestamp < LATEST_TIMESTAMP


def test_mutation_mapping_preserves_cells() -> None:
    cells = (put(b"r", b"cf", b"q", 3, b"v"), delete_family(b"r", b"cf", 2))
    rm = RowMutations.from_cells(b"r", cells)
    assert isinstance(rm.mutations[1], DeleteFamily)
    assert rm.cells() == cells
    assert rm.families() == {b"cf"}
    assert mutation_for_cell(cells[0]).to_cell(b"r") == cells[0]


def test_memtable_satisfies_protocols() -> None:
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}))
    assert isinstance(t, RowScanner)
    assert isinstance(t, MutationSink)


def test_descriptor_partitions_and_json() -> None:
    d = TableDescriptor.of(
        "t1", {b"a": 3, b"\x00b": 1}, durability=Durability.FSYNC_WAL, split_points=(b"g", b"p")
    )
    parts = d.partitions()
    assert [(p.start_row, p.stop_row) for p in parts] == [(None, b"g"), (b"g", b"p"), (b"p", None)]
    assert parts[1].contains(b"g") and not parts[1].contains(b"p")
    assert TableDescriptor.from_json_obj(d.to_json_obj()) == d


@pytest.mark.parametrize(
    "kwargs",
    [
        {"split_points": (b"b", b"a")},
        {"split_points": (b"a", b"a")},
        {"durability": Durability.DEFAULT},
    ],
)
def test_descriptor_validation(kwargs) -> None:
    with pytest.raises(ValueError):
        TableDescriptor.of("t", {b"a": 1}, **kwargs)


def test_partition_unbounded() -> None:
    assert Partition(0).contains(b"")
