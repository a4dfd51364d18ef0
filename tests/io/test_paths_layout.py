from __future__ import annotations

import os

import pytest

from celldump.io.config import DumpSettings
from celldump.io.paths import (
    family_dirname,
    family_from_dirname,
    format_part_name,
    manifest_path,
    part_paths,
    report_path,
    storefile_paths,
    table_dir,
    table_snapshot_paths,
    validate_table_name,
)


def test_part_names_and_paths() -> None:
    assert format_part_name(3, "abc") == "part-00003-abc.parquet"
    p = part_paths("/d", 12, "u")
    assert p.final_path == os.path.join("/d", "part-00012-u.parquet")
    assert p.tmp_path == p.final_path + ".tmp"
    with pytest.raises(ValueError):
        format_part_name(-1, "u")
    assert manifest_path("/d").endswith("manifest.json")
    assert report_path("/d").endswith("job.report.json")


@pytest.mark.parametrize("family", [b"cf1", b"a/b", b"\x00\xff", b"hex-00", b".."])
def test_family_dirname_round_trip(family: bytes) -> None:
    name = family_dirname(family)
    assert "/" not in name
    assert family_from_dirname(name) == family


def test_storefile_paths_live_under_family_dir() -> None:
    p = storefile_paths("/bulk", b"a/b", "u")
    assert os.path.dirname(p.final_path) == os.path.join("/bulk", "hex-612f62")


def test_table_layout() -> None:
    s = DumpSettings(root_dir="/root_store")
    assert table_dir(s, "t1") == os.path.join("/root_store", "tables", "t1")
    assert table_snapshot_paths(s, "t1").final_path.endswith("cells.parquet")


@pytest.mark.parametrize("name", ["", "..", "a/b", "white space"])
def test_validate_table_name_rejects_unsafe(name: str) -> None:
    with pytest.raises(ValueError):
        validate_table_name(name)
