"""
Row filters with a three-way decision and a static name registry.

A RowFilter looks at one row (key plus decoded cells) and returns a
FilterDecision:
- INCLUDE: keep the row.
- SKIP: drop this row, keep going.
- STOP: drop this row and every later row of the same (sorted) partition.

Filters are selected by registered name rather than by class path, so the set of
constructible filters is known up front. Each registered class builds itself from
ordered string arguments through `from_args`, which is the only construction path
the import job uses.

Registered variants
- "prefix"      PrefixFilter(prefix)            one argument, "\\xNN" escapes honoured
- "regex"       RegexRowFilter(pattern)         one argument, searched in the row key
- "family"      FamilyFilter(families)          one or more family names
- "filter_list" FilterList(mode, filters)       optional "must_pass_all" | "must_pass_one"
                                                followed by "<name>:<arg>" entries

Examples:
    >>> from celldump.core.filters import FilterDecision, get_filter_class
    >>> f = get_filter_class("prefix").from_args(["row1"])
    >>> f.filter_row(b"row1-a", ()) is FilterDecision.INCLUDE
    True
    >>> f.filter_row(b"row2", ()) is FilterDecision.STOP
    True
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from .cells import Cell
from .serde import to_bytes_binary

__all__ = [
    "FilterDecision",
    "RowFilter",
    "PrefixFilter",
    "RegexRowFilter",
    "FamilyFilter",
    "FilterList",
    "register_filter",
    "get_filter_class",
    "registered_filters",
]


class FilterDecision(Enum):
    INCLUDE = "include"
    SKIP = "skip"
    STOP = "stop"


class RowFilter(ABC):
    """Per-row decision capability shared by export scans and import re-entry."""

    @classmethod
    @abstractmethod
    def from_args(cls, args: Sequence[str]) -> RowFilter:
        """Build an instance from ordered string arguments; raise ValueError if unusable."""

    @abstractmethod
    def filter_row(self, row: bytes, cells: Sequence[Cell]) -> FilterDecision:
        """Decide whether the row is kept, skipped, or ends the partition."""


_REGISTRY: dict[str, type] = {}

F = TypeVar("F", bound=type)


def register_filter(name: str) -> Callable[[F], F]:
    """
    Class decorator adding a filter class to the registry under name.

    Raises:
        ValueError: If name is already registered to a different class.
    """

    def deco(cls: F) -> F:
        existing = _REGISTRY.get(name)
        if existing is not None and existing is not cls:
            raise ValueError(f"filter name {name!r} already registered to {existing.__name__}")
        _REGISTRY[name] = cls
        return cls

    return deco


def get_filter_class(name: str) -> type | None:
    """Return the class registered under name, or None."""
    return _REGISTRY.get(name)


def registered_filters() -> list[str]:
    return sorted(_REGISTRY)


def _single_arg(cls: type, args: Sequence[str]) -> str:
    if len(args) != 1:
        raise ValueError(f"{cls.__name__} expects exactly one argument, got {len(args)}")
    return args[0]


@register_filter("prefix")
@dataclass(frozen=True)
class PrefixFilter(RowFilter):
    """Keep rows whose key starts with prefix; stop once keys sort past it."""

    prefix: bytes

    @classmethod
    def from_args(cls, args: Sequence[str]) -> PrefixFilter:
        return cls(to_bytes_binary(_single_arg(cls, args)))

    def filter_row(self, row: bytes, cells: Sequence[Cell]) -> FilterDecision:
        if row.startswith(self.prefix):
            return FilterDecision.INCLUDE
        if row > self.prefix:
            return FilterDecision.STOP
        return FilterDecision.SKIP


@register_filter("regex")
@dataclass(frozen=True)
class RegexRowFilter(RowFilter):
    """Keep rows whose key contains a match for pattern."""

    pattern: str

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern.encode("utf-8"))
        except re.error as exc:
            raise ValueError(f"invalid row regex {self.pattern!r}: {exc}") from exc
        object.__setattr__(self, "_compiled", compiled)

    @classmethod
    def from_args(cls, args: Sequence[str]) -> RegexRowFilter:
        return cls(_single_arg(cls, args))

    def filter_row(self, row: bytes, cells: Sequence[Cell]) -> FilterDecision:
        if self._compiled.search(row):  # type: ignore[attr-defined]
            return FilterDecision.INCLUDE
        return FilterDecision.SKIP


@register_filter("family")
@dataclass(frozen=True)
class FamilyFilter(RowFilter):
    """Keep rows holding at least one cell in any of the listed families."""

    families: frozenset[bytes]

    @classmethod
    def from_args(cls, args: Sequence[str]) -> FamilyFilter:
        if not args:
            raise ValueError("FamilyFilter expects at least one family")
        return cls(frozenset(a.encode("utf-8") for a in args))

    def filter_row(self, row: bytes, cells: Sequence[Cell]) -> FilterDecision:
        if any(c.family in self.families for c in cells):
            return FilterDecision.INCLUDE
        return FilterDecision.SKIP


MUST_PASS_ALL = "must_pass_all"
MUST_PASS_ONE = "must_pass_one"


@register_filter("filter_list")
@dataclass(frozen=True)
class FilterList(RowFilter):
    """Combine filters: all must include (must_pass_all) or any may (must_pass_one)."""

    filters: tuple[RowFilter, ...]
    mode: str = MUST_PASS_ALL

    def __post_init__(self) -> None:
        if self.mode not in (MUST_PASS_ALL, MUST_PASS_ONE):
            raise ValueError(f"unknown filter list mode {self.mode!r}")

    @classmethod
    def from_args(cls, args: Sequence[str]) -> FilterList:
        rest = list(args)
        mode = MUST_PASS_ALL
        if rest and rest[0] in (MUST_PASS_ALL, MUST_PASS_ONE):
            mode = rest.pop(0)
        if not rest:
            raise ValueError("FilterList expects at least one '<name>:<arg>' entry")
        members: list[RowFilter] = []
        for entry in rest:
            name, sep, arg = entry.partition(":")
            sub = get_filter_class(name)
            if not sep or sub is None or sub is FilterList:
                raise ValueError(f"bad filter list entry {entry!r}")
            members.append(sub.from_args([arg]))
        return cls(tuple(members), mode)

    def filter_row(self, row: bytes, cells: Sequence[Cell]) -> FilterDecision:
        decisions = [f.filter_row(row, cells) for f in self.filters]
        if self.mode == MUST_PASS_ALL:
            if FilterDecision.STOP in decisions:
                return FilterDecision.STOP
            if FilterDecision.SKIP in decisions:
                return FilterDecision.SKIP
            return FilterDecision.INCLUDE
        if FilterDecision.INCLUDE in decisions:
            return FilterDecision.INCLUDE
        if all(d is FilterDecision.STOP for d in decisions):
            return FilterDecision.STOP
        return FilterDecision.SKIP
