"""
Per-task counters merged into a job total.

Counter names
- Export: rows, cells, results (scanner results before re-assembly), bytes.
- Import: rows, cells, mutations, rows_filtered (filter said SKIP),
  rows_empty (record decoded to zero cells), storefiles.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

ROWS = "rows"
CELLS = "cells"
RESULTS = "results"
BYTES = "bytes"
MUTATIONS = "mutations"
ROWS_FILTERED = "rows_filtered"
ROWS_EMPTY = "rows_empty"
STOREFILES = "storefiles"


class Counters:
    """
    Named integer counters owned by one task.

    Examples:
        >>> c = Counters(); c.incr("rows"); c.incr("cells", 3)
        >>> c["rows"], c["missing"]
        (1, 0)
    """

    def __init__(self, initial: Mapping[str, int] | None = None) -> None:
        self._values: dict[str, int] = dict(initial or {})

    def incr(self, name: str, amount: int = 1) -> None:
        self._values[name] = self._values.get(name, 0) + amount

    def __getitem__(self, name: str) -> int:
        return self._values.get(name, 0)

    def as_dict(self) -> dict[str, int]:
        return dict(sorted(self._values.items()))

    def __repr__(self) -> str:
        return f"Counters({self.as_dict()!r})"


def merge(counters: Iterable[Mapping[str, int]]) -> dict[str, int]:
    """Sum counter mappings name by name."""
    total: dict[str, int] = {}
    for c in counters:
        for name, value in c.items():
            total[name] = total.get(name, 0) + value
    return dict(sorted(total.items()))
