"""
Job states and results shared by export and import jobs.

Import transitions:
    VALIDATE_ARGS -> VALIDATE_FILTER (only when a filter is configured)
                  -> CONFIGURE_DURABILITY -> RUN -> COMPLETE | FAILED
Export transitions:
    VALIDATE_ARGS -> RUN -> COMPLETE | FAILED

A configuration failure moves the job straight to FAILED before RUN, so no task
is ever scheduled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .executor import TaskResult


class JobState(Enum):
    CREATED = "CREATED"
    VALIDATE_ARGS = "VALIDATE_ARGS"
    VALIDATE_FILTER = "VALIDATE_FILTER"
    CONFIGURE_DURABILITY = "CONFIGURE_DURABILITY"
    RUN = "RUN"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (JobState.COMPLETE, JobState.FAILED)


@dataclass(slots=True)
class JobResult:
    """
    Outcome of a job run.

    Attributes:
        state (JobState): COMPLETE or FAILED.
        counters (dict[str, int]): Counters summed over every task.
        tasks (list[TaskResult]): Per-partition outcomes.
        error (str | None): Job-level error (configuration or IO), if any.
        output (str | None): Dump or bulk output directory written by the job.
    """

    state: JobState
    counters: dict[str, int] = field(default_factory=dict)
    tasks: list[TaskResult] = field(default_factory=list)
    error: str | None = None
    output: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is JobState.COMPLETE

    @property
    def failed_tasks(self) -> list[TaskResult]:
        return [t for t in self.tasks if not t.ok]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "counters": dict(self.counters),
            "tasks": [t.to_json_obj() for t in self.tasks],
            "error": self.error,
            "output": self.output,
        }


class StateTracker:
    """Records each state a job passes through."""

    def __init__(self) -> None:
        self.history: list[JobState] = [JobState.CREATED]

    @property
    def state(self) -> JobState:
        return self.history[-1]

    def enter(self, state: JobState) -> None:
        if self.state.terminal:
            raise RuntimeError(f"job already finished in state {self.state.value}")
        self.history.append(state)
