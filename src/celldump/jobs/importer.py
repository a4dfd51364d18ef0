"""
Import job: replay a dump into a table (or into bulk-output store files).

Per record
1. Decode the encoded row (legacy parts are grouped from per-cell records instead).
2. Rows with zero cells count under rows_empty and are skipped.
3. Families are renamed through the CfRenameMap; unmapped families pass through.
4. The row filter, if any, decides once per row on the renamed cells:
   SKIP counts under rows_filtered, STOP ends this task's part.
5. Every cell becomes one mutation at its exact timestamp and type; the row's
   mutations are submitted as one RowMutations through the DurabilityController.

Bulk output mode replaces step 5: cells are collected per family and written as
one sorted store file per family per task under the bulk output directory.

Failure model
- Configuration errors (ArgumentError, FilterConfigurationError) are raised from
  run() before any task is scheduled.
- Decode or apply errors fail only the owning task; there is no rollback.
- Replaying the same dump yields the same versioned state (timestamp-addressed writes).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence

from celldump.core.cells import Cell
from celldump.core.codec import decode
from celldump.core.filters import FilterDecision
from celldump.core.import_spec import ImportSpec, build_import_spec
from celldump.engine.interfaces import MutationSink
from celldump.engine.mutations import RowMutations
from celldump.io.config import DumpSettings
from celldump.io.errors import IoError
from celldump.io.read import DumpPart, iter_dump_records, iter_legacy_rows, list_dump_parts
from celldump.io.report import build_report, write_job_report
from celldump.io.write import write_storefile

from . import counters as names
from .counters import Counters, merge
from .durability import DurabilityController
from .executor import LocalTaskRunner
from .filter_validator import FilterFactory, validate_filter
from .state import JobResult, JobState, StateTracker

logger = logging.getLogger(__name__)


class Importer:
    """Per-part import task body."""

    def __init__(
        self,
        spec: ImportSpec,
        settings: DumpSettings,
        controller: DurabilityController | None = None,
        filter_factory: FilterFactory | None = None,
    ) -> None:
        if controller is None and spec.bulk_output is None:
            raise ValueError("an Importer needs a DurabilityController unless bulk output is set")
        self.spec = spec
        self.settings = settings
        self.controller = controller
        self.filter_factory = filter_factory

    def _source_rows(self, part: DumpPart) -> Iterator[tuple[bytes, tuple[Cell, ...]]]:
        strict = self.settings.strict_format
        if self.spec.source_format == "legacy":
            yield from iter_legacy_rows(part, strict=strict)
            return
        for key, payload in iter_dump_records(part, strict=strict):
            yield key, decode(payload)

    def rows(self, part: DumpPart, counters: Counters) -> Iterator[tuple[bytes, tuple[Cell, ...]]]:
        """Yield retained rows of a part with families already renamed."""
        row_filter = self.filter_factory() if self.filter_factory is not None else None
        rename = self.spec.cf_rename
        for key, cells in self._source_rows(part):
            counters.incr(names.ROWS)
            if not cells:
                counters.incr(names.ROWS_EMPTY)
                continue
            if rename:
                cells = tuple(c.with_family(rename.rename(c.family)) for c in cells)
            if row_filter is not None:
                decision = row_filter.filter_row(key, cells)
                if decision is FilterDecision.SKIP:
                    counters.incr(names.ROWS_FILTERED)
                    continue
                if decision is FilterDecision.STOP:
                    counters.incr(names.ROWS_FILTERED)
                    logger.debug("filter stopped part %d at row %r", part.shard_id, key)
                    return
            counters.incr(names.CELLS, len(cells))
            yield key, cells

    def import_part(self, part: DumpPart, counters: Counters) -> list[str]:
        """
        Import one part.

        Returns:
            list[str]: Store files written (bulk output mode), else [].
        """
        if self.spec.bulk_output is not None:
            return self._bulk_part(part, self.spec.bulk_output, counters)
        if self.controller is None:
            raise RuntimeError("import into a table needs a DurabilityController")
        for key, cells in self.rows(part, counters):
            mutations = RowMutations.from_cells(key, cells)
            self.controller.submit(mutations)
            counters.incr(names.MUTATIONS, len(mutations))
        return []

    def _bulk_part(self, part: DumpPart, bulk_dir: str, counters: Counters) -> list[str]:
        by_family: dict[bytes, list[Cell]] = {}
        for _key, cells in self.rows(part, counters):
            for c in cells:
                by_family.setdefault(c.family, []).append(c)
        written: list[str] = []
        for family in sorted(by_family):
            written.append(
                write_storefile(
                    self.settings,
                    bulk_dir,
                    family,
                    by_family[family],
                    seq_id=max(part.shard_id, 0),
                    source_table=self.spec.table,
                )
            )
            counters.incr(names.STOREFILES)
        return written


class ImportJob:
    """
    Import `<table> <inputDir>` with -D options (see celldump.core.import_spec).

    Args:
        sink: Destination table; may be None only in bulk output mode.
        args: Positional arguments [table, inputDir].
        conf: -D option mapping.
        settings: IO settings (loaded with env > TOML > defaults when omitted).
        runner: Partition executor (one task per dump part).
        report_dir: Where to write job.report.json; defaults to the bulk output
            directory in bulk mode and to no report otherwise.
    """

    def __init__(
        self,
        sink: MutationSink | None,
        args: Sequence[str],
        conf: Mapping[str, str] | None = None,
        settings: DumpSettings | None = None,
        runner: LocalTaskRunner | None = None,
        report_dir: str | None = None,
    ) -> None:
        self.sink = sink
        self.args = list(args)
        self.conf = dict(conf or {})
        self.settings = settings or DumpSettings.load()
        self.runner = runner or LocalTaskRunner(self.settings.max_workers)
        self.report_dir = report_dir
        self.tracker = StateTracker()
        self.spec: ImportSpec | None = None

    @property
    def state(self) -> JobState:
        return self.tracker.state

    def _configure(self) -> Importer:
        self.tracker.enter(JobState.VALIDATE_ARGS)
        spec = build_import_spec(self.args, self.conf)
        self.spec = spec
        factory: FilterFactory | None = None
        if spec.filter_class:
            self.tracker.enter(JobState.VALIDATE_FILTER)
            factory = validate_filter(spec.filter_class, spec.filter_args)
        self.tracker.enter(JobState.CONFIGURE_DURABILITY)
        controller: DurabilityController | None = None
        if spec.bulk_output is None:
            if self.sink is None:
                raise ValueError("import without bulk output needs a destination table")
            controller = DurabilityController(self.sink, spec.durability)
        return Importer(spec, self.settings, controller, factory)

    def run(self) -> JobResult:
        try:
            importer = self._configure()
        except Exception:
            self.tracker.enter(JobState.FAILED)
            raise
        spec = importer.spec

        self.tracker.enter(JobState.RUN)
        try:
            parts = list_dump_parts(spec.source_location)
        except IoError as exc:
            self.tracker.enter(JobState.FAILED)
            logger.error("cannot read dump %s: %s", spec.source_location, exc)
            return JobResult(JobState.FAILED, error=str(exc), output=spec.bulk_output)
        logger.info(
            "importing %d parts from %s into %s", len(parts), spec.source_location, spec.table
        )
        tasks = self.runner.map_partitions(
            importer.import_part, parts, ids=[p.shard_id for p in parts]
        )
        totals = merge(t.counters for t in tasks)
        failed = [t for t in tasks if not t.ok]
        error = f"{len(failed)} of {len(tasks)} import tasks failed" if failed else None
        final = JobState.FAILED if error else JobState.COMPLETE

        report_dir = self.report_dir or spec.bulk_output
        if report_dir is not None:
            payload = build_report(
                self.settings,
                kind="import",
                table=spec.table,
                state=final.value,
                counters=totals,
                tasks=[t.to_json_obj() for t in tasks],
                meta={
                    "source": spec.source_location,
                    "cf_rename": spec.cf_rename.to_text(),
                    "durability": spec.durability.value,
                    "source_format": spec.source_format,
                },
            )
            try:
                write_job_report(report_dir, payload)
            except IoError as exc:
                error = error or str(exc)
                final = JobState.FAILED
        self.tracker.enter(final)
        if error:
            logger.error("import into %s failed: %s", spec.table, error)
        else:
            logger.info("import into %s complete: %s", spec.table, totals)
        return JobResult(final, totals, tasks, error, spec.bulk_output)
