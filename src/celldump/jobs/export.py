"""
Export job: scan every partition of a table into a dump.

Responsibilities
- Build the ScanSpec from export positionals and -D options (VALIDATE_ARGS).
- Run one task per source partition: scan, re-assemble batched results into whole
  rows, encode each row and stream (row_key, encoded_row) into one dump part.
- After all tasks finish, record the successful parts in manifest.json and write
  job.report.json. The source table is only read.

Notes
- A failed partition leaves no part behind (the writer removes its temporary file)
  and marks the job FAILED; the other partitions' parts are still recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from celldump.core.cells import Cell, Row
from celldump.core.codec import encode
from celldump.core.scan_spec import SCANNER_CACHING_KEY, ScanSpec, build_scan_spec
from celldump.core.serde import to_string_binary
from celldump.engine.interfaces import Partition, RowScanner
from celldump.io.config import DumpSettings
from celldump.io.errors import IoError
from celldump.io.manifest import PartMeta, new_manifest, update_with_new_part, write_manifest
from celldump.io.report import build_report, write_job_report
from celldump.io.write import DumpPartWriter

from . import counters as names
from .counters import Counters, merge
from .executor import LocalTaskRunner
from .state import JobResult, JobState, StateTracker

logger = logging.getLogger(__name__)


def reassemble(results: Iterable[Row], counters: Counters | None = None) -> Iterator[Row]:
    """
    Merge consecutive results that share a row key into one Row.

    Examples:
        >>> from celldump.core.cells import put
        >>> a = Row(b"r", (put(b"r", b"f", b"q1", 1, b"x"),))
        >>> b = Row(b"r", (put(b"r", b"f", b"q2", 1, b"y"),))
        >>> [len(r) for r in reassemble([a, b])]
        [2]
    """
    key: bytes | None = None
    pending: list[Cell] = []
    for result in results:
        if counters is not None:
            counters.incr(names.RESULTS)
        if key is not None and result.key != key:
            yield Row(key, tuple(pending))
            pending = []
        key = result.key
        pending.extend(result.cells)
    if key is not None:
        yield Row(key, tuple(pending))


def describe_scan(spec: ScanSpec) -> dict[str, Any]:
    """JSON-friendly summary of a ScanSpec for the manifest and report."""
    return {
        "start_row": to_string_binary(spec.start_row) if spec.start_row else None,
        "stop_row": to_string_binary(spec.stop_row) if spec.stop_row else None,
        "max_versions": spec.max_versions,
        "time_range_min": spec.time_range_min,
        "time_range_max": spec.time_range_max,
        "raw": spec.raw,
        "batch_size": spec.batch_size,
        "caching_size": spec.caching_size,
        "families": [to_string_binary(f) for f in spec.families],
        "visibility_labels": list(spec.visibility_labels),
        "row_filter": repr(spec.row_filter) if spec.row_filter is not None else None,
    }


class Exporter:
    """Per-partition export task body."""

    def __init__(
        self,
        scanner: RowScanner,
        spec: ScanSpec,
        settings: DumpSettings,
        dump_dir: str,
        source_table: str,
    ) -> None:
        self.scanner = scanner
        self.spec = spec
        self.settings = settings
        self.dump_dir = dump_dir
        self.source_table = source_table

    def export_partition(self, partition: Partition, counters: Counters) -> PartMeta:
        with DumpPartWriter(self.settings, self.dump_dir, partition.index, self.source_table) as w:
            for row in reassemble(self.scanner.scan(self.spec, partition), counters):
                payload = encode(row.cells)
                w.write(row.key, payload, len(row.cells))
                counters.incr(names.ROWS)
                counters.incr(names.CELLS, len(row.cells))
            meta = w.close()
        counters.incr(names.BYTES, meta.bytes)
        return meta


class ExportJob:
    """
    Export `<table> <outputDir> [<versions> [<startTime> [<endTime>]]] [filterSpec]`.

    Configuration errors (ArgumentError, ScanConfigurationError) are raised from
    run() before any task starts; the job is then FAILED.
    """

    def __init__(
        self,
        scanner: RowScanner,
        args: Sequence[str],
        conf: Mapping[str, str] | None = None,
        settings: DumpSettings | None = None,
        runner: LocalTaskRunner | None = None,
    ) -> None:
        self.scanner = scanner
        self.args = list(args)
        self.conf = dict(conf or {})
        self.settings = settings or DumpSettings.load()
        self.runner = runner or LocalTaskRunner(self.settings.max_workers)
        self.tracker = StateTracker()
        self.spec: ScanSpec | None = None

    @property
    def state(self) -> JobState:
        return self.tracker.state

    def run(self) -> JobResult:
        self.tracker.enter(JobState.VALIDATE_ARGS)
        try:
            spec = build_scan_spec(self.args, self.conf)
        except Exception:
            self.tracker.enter(JobState.FAILED)
            raise
        if SCANNER_CACHING_KEY not in self.conf:
            spec = spec.model_copy(update={"caching_size": self.settings.scanner_caching})
        self.spec = spec
        table, dump_dir = self.args[0], self.args[1]

        self.tracker.enter(JobState.RUN)
        exporter = Exporter(self.scanner, spec, self.settings, dump_dir, table)
        partitions = self.scanner.partitions()
        logger.info("exporting %s to %s over %d partitions", table, dump_dir, len(partitions))
        tasks = self.runner.map_partitions(
            exporter.export_partition, partitions, ids=[p.index for p in partitions]
        )

        manifest = new_manifest(table, describe_scan(spec))
        for t in tasks:
            if t.ok:
                update_with_new_part(manifest, t.value)
        totals = merge(t.counters for t in tasks)
        failed = [t for t in tasks if not t.ok]
        error = f"{len(failed)} of {len(tasks)} export tasks failed" if failed else None
        try:
            write_manifest(dump_dir, manifest)
        except IoError as exc:
            error = str(exc)
        final = JobState.FAILED if error else JobState.COMPLETE
        payload = build_report(
            self.settings,
            kind="export",
            table=table,
            state=final.value,
            counters=totals,
            tasks=[t.to_json_obj() for t in tasks],
            meta={"scan": describe_scan(spec)},
        )
        try:
            write_job_report(dump_dir, payload)
        except IoError as exc:
            error = error or str(exc)
            final = JobState.FAILED
        self.tracker.enter(final)
        if error:
            logger.error("export of %s failed: %s", table, error)
        else:
            logger.info("export of %s complete: %s", table, totals)
        return JobResult(final, totals, tasks, error, dump_dir)
