"""
Atomic Parquet writers for dump parts and cell files.

Overview
- DumpPartWriter streams (row_key, encoded_row) records for one shard into a
  Parquet part, flushing a row group every DumpSettings.records_per_part
  records, and returns the PartMeta the export job records in the manifest.
- write_cell_file writes one-record-per-cell frames (store files, store
  snapshots, legacy dumps) in a single shot.
- Every file goes through the same protocol: write "<final>.tmp" -> fsync ->
  os.replace(tmp, final). A reader never sees a partially written file.

Source of truth
- Record encoding: celldump.core.codec (encoded_row payloads are opaque here).
- Format tag: celldump.core.versioning.FORMAT_V (embedded as Parquet key-value metadata).
- IO-layer errors: celldump.io.errors.IoWriteError.

Notes
- Single writer per path; concurrent tasks always write distinct shards.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from types import TracebackType

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from celldump.core.cells import Cell
from celldump.core.hashing import RecordDigest
from celldump.core.ordering import sort_cells
from celldump.core.versioning import FORMAT_V

from .config import DumpSettings
from .errors import IoWriteError
from .fs import fsync_path, makedirs, remove_quietly, rename_atomic
from .manifest import SHARD_METADATA_KEY, TABLE_METADATA_KEY, VERSION_METADATA_KEY, PartMeta
from .paths import PartPaths, part_paths, storefile_paths
from .validate import CELL_COLUMNS

DUMP_SCHEMA = pa.schema([("row_key", pa.binary()), ("encoded_row", pa.binary())])

SEQ_ID_METADATA_KEY = b"celldump_seq_id"
MAX_TS_METADATA_KEY = b"celldump_max_timestamp"
FAMILY_METADATA_KEY = b"celldump_family"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _base_metadata(source_table: str) -> dict[bytes, bytes]:
    return {
        VERSION_METADATA_KEY: FORMAT_V.tag().encode(),
        TABLE_METADATA_KEY: source_table.encode("utf-8"),
    }


class DumpPartWriter:
    """
    Streaming writer for one dump part.

    Records are appended in the order the exporter produces them (row order
    within one partition). The part becomes visible under its final name only
    when close() succeeds.

    Examples:
        >>> with DumpPartWriter(settings, "/tmp/dump", 0, "t1") as w:  # doctest: +SKIP
        ...     w.write(b"r1", encode(cells), len(cells))
        >>> w.meta.rows  # doctest: +SKIP
        1
    """

    def __init__(
        self,
        settings: DumpSettings,
        dump_dir: str,
        shard_id: int,
        source_table: str,
    ) -> None:
        self._settings = settings
        self._shard_id = shard_id
        self._paths: PartPaths = part_paths(dump_dir, shard_id, uuid.uuid4().hex)
        makedirs(dump_dir, exist_ok=True)
        meta = _base_metadata(source_table)
        meta[SHARD_METADATA_KEY] = str(shard_id).encode()
        self._schema = DUMP_SCHEMA.with_metadata(meta)
        self._writer: pq.ParquetWriter | None = None
        self._keys: list[bytes] = []
        self._payloads: list[bytes] = []
        self._digest = RecordDigest()
        self._rows = 0
        self._cells = 0
        self._first: bytes | None = None
        self._last: bytes | None = None
        self.meta: PartMeta | None = None

    @property
    def final_path(self) -> str:
        return self._paths.final_path

    def __enter__(self) -> DumpPartWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def write(self, row_key: bytes, encoded_row: bytes, cell_count: int) -> None:
        """Append one record; flushes a row group once records_per_part are buffered."""
        self._keys.append(row_key)
        self._payloads.append(encoded_row)
        self._digest.update(row_key, encoded_row)
        if self._first is None:
            self._first = row_key
        self._last = row_key
        self._rows += 1
        self._cells += cell_count
        if len(self._keys) >= self._settings.records_per_part:
            self._flush()

    def _flush(self) -> pq.ParquetWriter:
        try:
            writer = self._writer
            if writer is None:
                writer = self._writer = pq.ParquetWriter(
                    self._paths.tmp_path,
                    self._schema,
                    compression=self._settings.compression,
                )
            if self._keys:
                batch = pa.Table.from_arrays(
                    [pa.array(self._keys, pa.binary()), pa.array(self._payloads, pa.binary())],
                    schema=self._schema,
                )
                writer.write_table(batch, row_group_size=self._settings.row_group_size)
        except (OSError, pa.ArrowException) as exc:
            self.abort()
            raise IoWriteError(f"failed to write dump part {self._paths.tmp_path}: {exc}") from exc
        self._keys.clear()
        self._payloads.clear()
        return writer

    def close(self) -> PartMeta:
        """
        Flush, fsync and atomically publish the part.

        Returns:
            PartMeta: Manifest entry for the published part.

        Raises:
            IoWriteError: If any step of the write protocol fails.
        """
        if self.meta is not None:
            return self.meta
        writer = self._flush()
        try:
            writer.close()
            self._writer = None
            fsync_path(self._paths.tmp_path)
            rename_atomic(self._paths.tmp_path, self._paths.final_path)
        except (OSError, pa.ArrowException) as exc:
            self.abort()
            raise IoWriteError(
                f"failed to publish dump part {self._paths.final_path}: {exc}"
            ) from exc
        self.meta = PartMeta(
            shard_id=self._shard_id,
            path=os.path.basename(self._paths.final_path),
            rows=self._rows,
            cells=self._cells,
            bytes=int(os.path.getsize(self._paths.final_path)),
            first_row=self._first.hex() if self._first is not None else "",
            last_row=self._last.hex() if self._last is not None else "",
            checksum=self._digest.hexdigest(),
            created_at=_now_iso(),
        )
        return self.meta

    def abort(self) -> None:
        """Drop buffered records and remove the temporary file."""
        self._keys.clear()
        self._payloads.clear()
        if self._writer is not None:
            try:
                self._writer.close()
            finally:
                self._writer = None
        remove_quietly(self._paths.tmp_path)


# -----------------------------------------------------------------------------
# Cell files
# -----------------------------------------------------------------------------


def cells_to_frame(cells: Iterable[Cell]) -> pl.DataFrame:
    """Build a one-record-per-cell frame with the CELL_COLUMNS schema."""
    rows, fams, quals, tss, types, values = [], [], [], [], [], []
    for c in cells:
        rows.append(c.row)
        fams.append(c.family)
        quals.append(c.qualifier)
        tss.append(c.timestamp)
        types.append(c.type.value)
        values.append(c.value)
    return pl.DataFrame(
        {
            "row": rows,
            "family": fams,
            "qualifier": quals,
            "timestamp": tss,
            "type": types,
            "value": values,
        },
        schema=CELL_COLUMNS,
    )


def write_cell_file(
    settings: DumpSettings,
    paths: PartPaths,
    cells: Iterable[Cell],
    metadata: dict[bytes, bytes] | None = None,
) -> int:
    """
    Write cells to paths.final_path atomically.

    Returns:
        int: Bytes written.

    Raises:
        IoWriteError: If the write, fsync or rename fails.
    """
    makedirs(os.path.dirname(paths.final_path), exist_ok=True)
    table = cells_to_frame(cells).to_arrow()
    meta = dict(table.schema.metadata or {})
    meta.update(metadata or {})
    table = table.replace_schema_metadata(meta)
    try:
        pq.write_table(
            table,
            paths.tmp_path,
            compression=settings.compression,
            row_group_size=settings.row_group_size,
        )
        fsync_path(paths.tmp_path)
        rename_atomic(paths.tmp_path, paths.final_path)
    except (OSError, pa.ArrowException) as exc:
        remove_quietly(paths.tmp_path)
        raise IoWriteError(f"failed to write cell file {paths.final_path}: {exc}") from exc
    return int(os.path.getsize(paths.final_path))


def write_storefile(
    settings: DumpSettings,
    bulk_dir: str,
    family: bytes,
    cells: Iterable[Cell],
    *,
    seq_id: int,
    source_table: str = "",
) -> str:
    """
    Write one bulk-output store file for a single family in storage order.

    Metadata carries the sequence id, the family and the max cell timestamp so
    a loader can order files without reading their data.

    Returns:
        str: Final path of the store file.
    """
    ordered = sort_cells(cells)
    stray = {c.family for c in ordered} - {family}
    if stray:
        raise IoWriteError(f"store file for family {family!r} received cells of {sorted(stray)!r}")
    meta = _base_metadata(source_table)
    meta[SEQ_ID_METADATA_KEY] = str(seq_id).encode()
    meta[FAMILY_METADATA_KEY] = family.hex().encode()
    meta[MAX_TS_METADATA_KEY] = str(max((c.timestamp for c in ordered), default=0)).encode()
    paths = storefile_paths(bulk_dir, family, uuid.uuid4().hex)
    write_cell_file(settings, paths, ordered, meta)
    return paths.final_path


def write_legacy_part(
    settings: DumpSettings,
    dump_dir: str,
    shard_id: int,
    cells: Iterable[Cell],
    source_table: str = "",
) -> str:
    """
    Write a legacy-format dump part (one Parquet record per cell).

    Returns:
        str: Final path of the part.
    """
    meta = _base_metadata(source_table)
    meta[SHARD_METADATA_KEY] = str(shard_id).encode()
    paths = part_paths(dump_dir, shard_id, uuid.uuid4().hex)
    write_cell_file(settings, paths, sort_cells(cells), meta)
    return paths.final_path
