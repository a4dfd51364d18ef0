"""
Parquet-persisted local store of MemTables.

Layout (see celldump.io.paths)
- <root>/tables/<table>/schema.json    TableDescriptor JSON
- <root>/tables/<table>/cells.parquet  every stored cell, storage order

Responsibilities
- create/open/save/drop tables and list them.
- Share one WriteAheadLog across the store's tables.
- Bulk-load store files written by an import in bulk output mode, in store-file order.

Notes
- Tables are held in memory once opened; save() writes a full snapshot atomically.
- Visibility labels are not persisted; a reopened table's cells are unlabelled.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import time

from celldump.core.ordering import Criterion
from celldump.io.config import DumpSettings
from celldump.io.errors import IoWriteError
from celldump.io.fs import write_bytes_atomic
from celldump.io.paths import table_dir, table_schema_path, table_snapshot_paths, tables_root
from celldump.io.read import read_cell_file
from celldump.io.write import write_cell_file

from .errors import NoSuchTableError, TableExistsError
from .memory import MemTable
from .schema import TableDescriptor
from .storefiles import SEQ_ID, discover_storefiles, sort_storefiles
from .wal import WriteAheadLog

logger = logging.getLogger(__name__)


class LocalStore:
    """
    Store rooted at DumpSettings.root_dir.

    Examples:
        >>> store = LocalStore(DumpSettings(root_dir="/tmp/store"))  # doctest: +SKIP
        >>> t = store.create_table(TableDescriptor.of("t1", {b"cf": 3}))  # doctest: +SKIP
        >>> store.save(t)  # doctest: +SKIP
    """

    def __init__(self, settings: DumpSettings, wal: WriteAheadLog | None = None) -> None:
        self.settings = settings
        self.wal = wal if wal is not None else WriteAheadLog()
        self._lock = threading.Lock()
        self._open: dict[str, MemTable] = {}

    def exists(self, name: str) -> bool:
        return name in self._open or os.path.exists(table_schema_path(self.settings, name))

    def list_tables(self) -> list[str]:
        root = tables_root(self.settings)
        on_disk = set(os.listdir(root)) if os.path.isdir(root) else set()
        return sorted(on_disk | set(self._open))

    def create_table(self, descriptor: TableDescriptor) -> MemTable:
        """
        Create and persist an empty table.

        Raises:
            TableExistsError: If the name is already in use.
        """
        with self._lock:
            if self.exists(descriptor.name):
                raise TableExistsError(f"table {descriptor.name!r} already exists")
            table = MemTable(descriptor, self.wal)
            self._open[descriptor.name] = table
        self.save(table)
        logger.info("created table %s", descriptor.name)
        return table

    def open_table(self, name: str) -> MemTable:
        """
        Return an open table, loading it from disk on first use.

        Raises:
            NoSuchTableError: If the table has never been created.
        """
        with self._lock:
            if name in self._open:
                return self._open[name]
            schema_path = table_schema_path(self.settings, name)
            if not os.path.exists(schema_path):
                raise NoSuchTableError(f"table {name!r} does not exist")
            with open(schema_path, encoding="utf-8") as fh:
                descriptor = TableDescriptor.from_json_obj(json.load(fh))
            table = MemTable(descriptor, self.wal)
            snapshot = table_snapshot_paths(self.settings, name).final_path
            if os.path.exists(snapshot):
                table.put_cells(read_cell_file(snapshot, strict=self.settings.strict_format))
            self._open[name] = table
        logger.debug("opened table %s (%d rows)", name, table.row_count())
        return table

    def save(self, table: MemTable) -> None:
        """
        Persist the table's schema and a full cell snapshot atomically.

        Raises:
            IoWriteError: If either file fails to write.
        """
        schema_path = table_schema_path(self.settings, table.name)
        payload = json.dumps(table.descriptor.to_json_obj(), indent=2).encode("utf-8")
        try:
            write_bytes_atomic(schema_path, payload)
        except OSError as exc:
            raise IoWriteError(f"failed to write schema for {table.name!r}: {exc}") from exc
        write_cell_file(
            self.settings,
            table_snapshot_paths(self.settings, table.name),
            table.all_cells(),
        )

    def drop_table(self, name: str) -> None:
        """
        Remove a table from memory and disk.

        Raises:
            NoSuchTableError: If the table does not exist.
        """
        with self._lock:
            if not self.exists(name):
                raise NoSuchTableError(f"table {name!r} does not exist")
            self._open.pop(name, None)
            path = table_dir(self.settings, name)
            if os.path.isdir(path):
                shutil.rmtree(path)
        logger.info("dropped table %s", name)

    def bulk_load(
        self,
        name: str,
        bulk_dir: str,
        order: tuple[Criterion, ...] = SEQ_ID,
    ) -> int:
        """
        Load every store file under bulk_dir into a table, in store-file order.

        Returns:
            int: Cells loaded.

        Raises:
            NoSuchTableError: If the table does not exist.
            NoSuchFamilyError: If a store file belongs to an undeclared family.
        """
        table = self.open_table(name)
        loaded_at = int(time.time() * 1000)
        files = sort_storefiles(discover_storefiles(bulk_dir, loaded_at), order)
        total = 0
        for info in files:
            total += table.put_cells(read_cell_file(info.path, strict=self.settings.strict_format))
        logger.info("bulk loaded %d cells from %d store files into %s", total, len(files), name)
        return total
