from __future__ import annotations

import os
from pathlib import Path

from celldump.core.cells import CellType, delete_column, delete_family, delete_family_version, put
from celldump.core.scan_spec import RAW_SCAN_KEY, SCANNER_BATCH_KEY, ScanSpec
from celldump.engine.memory import MemTable
from celldump.engine.mutations import RowMutations
from celldump.engine.schema import TableDescriptor
from celldump.io import DumpDataset, DumpSettings
from celldump.io.manifest import load_manifest
from celldump.jobs.export import ExportJob
from celldump.jobs.importer import ImportJob
from celldump.jobs.state import JobState

FAMILIES = {b"a": 10, b"b": 10}


def _settings(tmp_path: Path) -> DumpSettings:
    return DumpSettings(root_dir=str(tmp_path / "store"), max_workers=2, records_per_part=2)


def _source() -> MemTable:
    t = MemTable(TableDescriptor.of("t1", FAMILIES, split_points=(b"row5",)))
    for i in range(8):
        key = f"row{i}".encode()
        cells = [put(key, b"a", b"q", ts, f"v{ts}".encode()) for ts in range(1, 6)]
        cells.append(put(key, b"b", b"\x00bin", 7, b"\xff" * i))
        if i % 2:
            cells.append(delete_column(key, b"a", b"q", 2))
        if i % 3 == 0:
            cells.append(delete_family(key, b"b", 3))
            cells.append(delete_family_version(key, b"a", 4))
        t.apply(RowMutations.from_cells(key, cells))
    return t


def _raw_view(t: MemTable) -> list:
    return [(r.key, r.cells) for r in t.scan(ScanSpec(raw=True, max_versions=1000))]


def test_raw_export_then_import_reproduces_table(tmp_path: Path) -> None:
    # Arrange
    settings = _settings(tmp_path)
    src = _source()
    dump = str(tmp_path / "dump")

    # Act
    exported = ExportJob(src, ["t1", dump, "1000"], {RAW_SCAN_KEY: "true"}, settings).run()
    dst = MemTable(TableDescriptor.of("t2", FAMILIES))
    imported = ImportJob(dst, ["t2", dump], settings=settings).run()

    # Assert
    assert exported.ok and imported.ok
    assert exported.counters["rows"] == 8
    assert imported.counters["rows"] == 8
    assert imported.counters["cells"] == exported.counters["cells"]
    assert _raw_view(dst) == _raw_view(src)
    manifest = load_manifest(dump)
    assert manifest is not None
    assert sorted(p.shard_id for p in manifest.ordered_parts()) == [0, 1]
    assert manifest.scan["raw"] is True
    assert os.path.exists(os.path.join(dump, "job.report.json"))


def test_multiple_delete_family_markers_survive_round_trip(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    src = MemTable(TableDescriptor.of("t1", {b"a": 5}))
    key = b"row1"
    for cell in (
        put(key, b"a", b"q", 100, b"v1"),
        delete_family(key, b"a", 103),
        put(key, b"a", b"q", 105, b"v2"),
        delete_family(key, b"a", 107),
    ):
        src.apply(RowMutations.from_cells(key, [cell]))
    dump = str(tmp_path / "dump")

    exported = ExportJob(src, ["t1", dump, "1000"], {RAW_SCAN_KEY: "true"}, settings).run()
    dst = MemTable(TableDescriptor.of("t2", {b"a": 5}))
    imported = ImportJob(dst, ["t2", dump], settings=settings).run()

    assert exported.ok and imported.ok
    assert _raw_view(dst) == _raw_view(src)
    assert [c.type for _k, cells in _raw_view(dst) for c in cells].count(
        CellType.DELETE_FAMILY
    ) == 2
    assert list(dst.scan(ScanSpec(max_versions=1000))) == []


def test_resolved_export_keeps_newest_versions(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    dump = str(tmp_path / "dump")

    result = ExportJob(_source(), ["t1", dump, "3"], {}, settings).run()

    assert result.state is JobState.COMPLETE
    rows = dict(DumpDataset(settings, dump).rows())
    row1 = rows[b"row1"]
    assert all(c.type is CellType.PUT for c in row1)
    assert [c.timestamp for c in row1 if c.family == b"a"] == [5, 4, 3]
    # DeleteFamilyVersion@4 hides a:q@4 in row0.
    assert [c.timestamp for c in rows[b"row0"] if c.family == b"a"] == [5, 3, 2]


def test_raw_export_with_cap_keeps_every_tombstone(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    dump = str(tmp_path / "dump")

    ExportJob(_source(), ["t1", dump, "1"], {RAW_SCAN_KEY: "true"}, settings).run()

    row3 = dict(DumpDataset(settings, dump).rows())[b"row3"]
    assert [c.timestamp for c in row3 if c.type is CellType.PUT and c.family == b"a"] == [5]
    assert {c.type for c in row3 if c.is_delete} == {
        CellType.DELETE_COLUMN,
        CellType.DELETE_FAMILY,
        CellType.DELETE_FAMILY_VERSION,
    }


def test_batched_scan_is_reassembled_into_whole_rows(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    dump = str(tmp_path / "dump")
    conf = {RAW_SCAN_KEY: "true", SCANNER_BATCH_KEY: "2"}

    result = ExportJob(_source(), ["t1", dump, "1000"], conf, settings).run()

    assert result.ok
    assert result.counters["rows"] == 8
    assert result.counters["results"] > 8
    keys = [k for k, _ in DumpDataset(settings, dump).rows()]
    assert len(keys) == len(set(keys)) == 8


def test_export_does_not_modify_source(tmp_path: Path) -> None:
    src = _source()
    before = src.all_cells()
    wal_before = len(src.wal)
    ExportJob(src, ["t1", str(tmp_path / "d")], {}, _settings(tmp_path)).run()
    assert src.all_cells() == before
    assert len(src.wal) == wal_before


def test_reimport_is_idempotent(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    dump = str(tmp_path / "dump")
    ExportJob(_source(), ["t1", dump, "1000"], {RAW_SCAN_KEY: "true"}, settings).run()
    dst = MemTable(TableDescriptor.of("t2", FAMILIES))

    ImportJob(dst, ["t2", dump], settings=settings).run()
    first = dst.all_cells()
    ImportJob(dst, ["t2", dump], settings=settings).run()

    assert dst.all_cells() == first


def test_export_with_time_range_and_filter(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    dump = str(tmp_path / "dump")

    ExportJob(_source(), ["t1", dump, "10", "2", "5", "row1"], {}, settings).run()

    rows = dict(DumpDataset(settings, dump).rows())
    assert list(rows) == [b"row1"]
    # row1 has DeleteColumn@2, so a:q@2 is hidden; b@7 is outside [2, 5).
    assert [c.timestamp for c in rows[b"row1"]] == [4, 3]
