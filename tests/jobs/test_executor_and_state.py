from __future__ import annotations

import threading

import pytest

from celldump.core.cells import Row, put
from celldump.core.import_spec import Durability
from celldump.engine.memory import MemTable
from celldump.engine.mutations import RowMutations
from celldump.engine.schema import TableDescriptor
from celldump.jobs.counters import Counters, merge
from celldump.jobs.durability import DurabilityController
from celldump.jobs.executor import ABORTED, LocalTaskRunner
from celldump.jobs.export import reassemble
from celldump.jobs.filter_validator import validate_filter
from celldump.jobs.state import JobResult, JobState, StateTracker


def test_runner_keeps_input_order_and_isolates_failures() -> None:
    def task(p: int, counters: Counters) -> int:
        counters.incr("rows", p)
        if p == 2:
            raise ValueError("bad partition")
        return p * 10

    results = LocalTaskRunner(max_workers=3).map_partitions(task, [1, 2, 3], ids=[7, 8, 9])

    assert [r.partition for r in results] == [7, 8, 9]
    assert [r.ok for r in results] == [True, False, True]
    assert results[1].error == "ValueError: bad partition"
    assert results[1].counters == {"rows": 2}
    assert [r.value for r in results] == [10, None, 30]


def test_runner_abort_skips_tasks_not_yet_started() -> None:
    runner = LocalTaskRunner(max_workers=1)
    release = threading.Event()

    def task(p: int, counters: Counters) -> int:
        if p == 0:
            runner.abort()
            release.set()
        return p

    results = runner.map_partitions(task, [0, 1, 2])

    assert release.is_set()
    assert results[0].ok
    assert [r.error for r in results[1:]] == [ABORTED, ABORTED]
    assert runner.aborted


def test_runner_validation() -> None:
    with pytest.raises(ValueError):
        LocalTaskRunner(max_workers=0)
    with pytest.raises(ValueError):
        LocalTaskRunner().map_partitions(lambda p, c: p, [1, 2], ids=[1])
    assert LocalTaskRunner().map_partitions(lambda p, c: p, []) == []


def test_counters_merge() -> None:
    a, b = Counters(), Counters({"cells": 2})
    a.incr("rows")
    b.incr("rows", 4)
    assert merge([a.as_dict(), b.as_dict()]) == {"cells": 2, "rows": 5}
    assert a["missing"] == 0


def test_state_tracker_refuses_transitions_after_terminal() -> None:
    tracker = StateTracker()
    tracker.enter(JobState.VALIDATE_ARGS)
    tracker.enter(JobState.COMPLETE)
    with pytest.raises(RuntimeError):
        tracker.enter(JobState.RUN)
    assert JobResult(JobState.COMPLETE).ok
    assert JobResult(JobState.FAILED, error="x").to_json_obj()["state"] == "FAILED"


def test_reassemble_merges_consecutive_results() -> None:
    parts = [
        Row(b"a", (put(b"a", b"f", b"1", 1, b""),)),
        Row(b"a", (put(b"a", b"f", b"2", 1, b""),)),
        Row(b"b", (put(b"b", b"f", b"1", 1, b""),)),
    ]
    counters = Counters()
    merged = list(reassemble(parts, counters))
    assert [(r.key, len(r)) for r in merged] == [(b"a", 2), (b"b", 1)]
    assert counters["results"] == 3
    assert list(reassemble([])) == []


def test_validate_filter_returns_fresh_instances() -> None:
    make = validate_filter("filter_list", ["must_pass_one", "prefix:a", "regex:z$"])
    assert make() is not make()
    assert make() == make()


def test_durability_controller_stamps_job_durability(caplog) -> None:
    t = MemTable(TableDescriptor.of("t", {b"cf": 1}))
    with caplog.at_level("WARNING"):
        controller = DurabilityController(t, Durability.SKIP_WAL)
    assert "WAL are disabled" in caplog.text
    controller.submit(RowMutations.from_cells(b"r", [put(b"r", b"cf", b"q", 1, b"v")]))
    assert t.row_count() == 1
    assert len(t.wal) == 0
