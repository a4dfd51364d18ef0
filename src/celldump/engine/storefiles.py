"""
Store-file descriptors and load ordering.

Bulk output writes one store file per (task, family). Loading applies files in a
deterministic order so that, when two files hold a cell at the same coordinates,
the later file's value wins. Two orders are provided, both built with
celldump.core.ordering.compound:

- SEQ_ID: sequence id asc, file size desc, bulk-load time asc (missing last), path asc.
- SEQ_ID_MAX_TIMESTAMP: sequence id asc, max timestamp asc (missing last), then as SEQ_ID.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from celldump.core.ordering import Criterion, sorted_by
from celldump.io.fs import list_parquet
from celldump.io.paths import family_from_dirname
from celldump.io.read import read_part_metadata
from celldump.io.write import MAX_TS_METADATA_KEY, SEQ_ID_METADATA_KEY


@dataclass(frozen=True, slots=True)
class StoreFileInfo:
    path: str
    family: bytes
    seq_id: int
    size: int
    bulk_load_time: int | None = None
    max_timestamp: int | None = None

    @classmethod
    def from_path(cls, path: str, bulk_load_time: int | None = None) -> StoreFileInfo:
        """Describe a store file from its Parquet metadata and directory name."""
        meta = read_part_metadata(path)
        max_ts = meta.get(MAX_TS_METADATA_KEY.decode())
        return cls(
            path=path,
            family=family_from_dirname(os.path.basename(os.path.dirname(path))),
            seq_id=int(meta.get(SEQ_ID_METADATA_KEY.decode(), "0")),
            size=int(os.path.getsize(path)),
            bulk_load_time=bulk_load_time,
            max_timestamp=int(max_ts) if max_ts is not None else None,
        )


def _missing_last(attr: str) -> Criterion:
    def extract(info: StoreFileInfo) -> tuple[bool, Any]:
        v = getattr(info, attr)
        return (v is None, v if v is not None else 0)

    return Criterion(extract)


SEQ_ID: tuple[Criterion, ...] = (
    Criterion(lambda f: f.seq_id),
    Criterion(lambda f: f.size, descending=True),
    _missing_last("bulk_load_time"),
    Criterion(lambda f: f.path),
)

SEQ_ID_MAX_TIMESTAMP: tuple[Criterion, ...] = (
    SEQ_ID[0],
    _missing_last("max_timestamp"),
    *SEQ_ID[1:],
)


def sort_storefiles(
    files: list[StoreFileInfo],
    order: tuple[Criterion, ...] = SEQ_ID,
) -> list[StoreFileInfo]:
    return sorted_by(files, *order)


def discover_storefiles(bulk_dir: str, bulk_load_time: int | None = None) -> list[StoreFileInfo]:
    """Describe every store file under a bulk output directory (unsorted)."""
    paths = list_parquet(bulk_dir, recursive=True)
    return [StoreFileInfo.from_path(p, bulk_load_time) for p in paths]
