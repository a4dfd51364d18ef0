"""
Compound comparators built from (extractor, direction) criteria.

`compound(*criteria)` evaluates extractors left to right and stops at the first
criterion that does not tie. The same combinator orders cells into storage order
here and orders store files for bulk loading in celldump.engine.storefiles.

Examples:
    >>> from celldump.core.ordering import Criterion, sorted_by
    >>> items = [("b", 1), ("a", 1), ("a", 2)]
    >>> sorted_by(items, Criterion(lambda t: t[0]), Criterion(lambda t: t[1], descending=True))
    [('a', 2), ('a', 1), ('b', 1)]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, TypeVar

from .cells import Cell

__all__ = [
    "Criterion",
    "compound",
    "sorted_by",
    "CELL_ORDER",
    "sort_cells",
]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Criterion:
    """One tie-break step: compare extractor(item), ascending unless descending."""

    extractor: Callable[[Any], Any]
    descending: bool = False


def compound(*criteria: Criterion) -> Callable[[Any, Any], int]:
    """Build a cmp-style function from criteria, stopping at the first non-tie."""
    if not criteria:
        raise ValueError("compound() needs at least one criterion")

    def compare(a: Any, b: Any) -> int:
        for c in criteria:
            ka = c.extractor(a)
            kb = c.extractor(b)
            if ka == kb:
                continue
            result = -1 if ka < kb else 1
            return -result if c.descending else result
        return 0

    return compare


def sorted_by(items: Iterable[T], *criteria: Criterion) -> list[T]:
    """Return items sorted by the compound of criteria (stable)."""
    return sorted(items, key=cmp_to_key(compound(*criteria)))


# Storage order: row, family, qualifier ascending; newest first; tombstones before
# values at equal coordinates.
CELL_ORDER: tuple[Criterion, ...] = (
    Criterion(lambda c: c.row),
    Criterion(lambda c: c.family),
    Criterion(lambda c: c.qualifier),
    Criterion(lambda c: c.timestamp, descending=True),
    Criterion(lambda c: c.type.code, descending=True),
)


def sort_cells(cells: Iterable[Cell]) -> list[Cell]:
    """Sort cells into storage order."""
    return sorted_by(cells, *CELL_ORDER)
