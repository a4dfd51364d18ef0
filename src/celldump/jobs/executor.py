"""
Local partition executor.

LocalTaskRunner maps one task function over a list of partitions on a thread
pool. Tasks share nothing but the destination engine; each gets its own Counters.
A task that raises is recorded as failed and does not affect its siblings.
Abort stops new tasks from starting; tasks already running finish normally.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from celldump.core.constants import MAX_WORKERS

from .counters import Counters

logger = logging.getLogger(__name__)

P = TypeVar("P")

ABORTED = "aborted before start"


@dataclass(slots=True)
class TaskResult:
    """
    Outcome of one partition task.

    Attributes:
        partition (int): Partition id.
        ok (bool): True if the task returned normally.
        counters (dict[str, int]): The task's counters, including partial work on failure.
        error (str | None): "<ExceptionType>: message" on failure.
        value (Any): Task return value (None on failure).
    """

    partition: int
    ok: bool
    counters: dict[str, int] = field(default_factory=dict)
    error: str | None = None
    value: Any = None

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "partition": self.partition,
            "ok": self.ok,
            "counters": dict(self.counters),
            "error": self.error,
        }


class LocalTaskRunner(Generic[P]):
    """
    Thread-pool runner for partition tasks.

    Examples:
        >>> runner = LocalTaskRunner(max_workers=2)
        >>> res = runner.map_partitions(lambda p, c: p * 2, [1, 2])
        >>> [r.value for r in res]
        [2, 4]
    """

    def __init__(self, max_workers: int = MAX_WORKERS) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self._aborted = threading.Event()

    def abort(self) -> None:
        self._aborted.set()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def _run_one(self, fn: Callable[[P, Counters], Any], partition: P, pid: int) -> TaskResult:
        if self._aborted.is_set():
            return TaskResult(pid, False, {}, ABORTED)
        counters = Counters()
        logger.info("task %d started", pid)
        try:
            value = fn(partition, counters)
        except Exception as exc:
            logger.error("task %d failed: %s: %s", pid, type(exc).__name__, exc)
            return TaskResult(pid, False, counters.as_dict(), f"{type(exc).__name__}: {exc}")
        logger.info("task %d finished %s", pid, counters.as_dict())
        return TaskResult(pid, True, counters.as_dict(), None, value)

    def map_partitions(
        self,
        fn: Callable[[P, Counters], Any],
        partitions: Sequence[P],
        ids: Sequence[int] | None = None,
    ) -> list[TaskResult]:
        """
        Run fn(partition, counters) for every partition.

        Args:
            fn: Task function; its return value lands in TaskResult.value.
            partitions: Work items, one task each.
            ids: Partition ids (defaults to positions).

        Returns:
            list[TaskResult]: One result per partition, in input order.
        """
        pids = list(ids) if ids is not None else list(range(len(partitions)))
        if len(pids) != len(partitions):
            raise ValueError("ids and partitions differ in length")
        if not partitions:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(partitions))) as pool:
            futures = [pool.submit(self._run_one, fn, p, pid) for p, pid in zip(partitions, pids)]
            return [f.result() for f in futures]
