"""
Cell and Row value types for the multiversion key-value model.

A Cell is one versioned coordinate (row, family, qualifier, timestamp) together
with its type (a value or one of three tombstone scopes) and value bytes. A Row
is a row key with an ordered cell sequence. Both are immutable. This module is
zero-IO.

Tombstone scopes (resolved reads)
- DELETE_FAMILY@T hides every same-family cell with timestamp <= T.
- DELETE_COLUMN@T hides every same-column cell with timestamp <= T.
- DELETE_FAMILY_VERSION@T hides every same-family cell with timestamp == T.

Markers apply by their own timestamp and type, never by their position in a
sequence; several family markers on one (row, family) are independent.

Wire codes
- Each CellType carries a stable one-byte code used by the codec and by the
  storage order (higher codes sort first at equal coordinates, so a tombstone
  precedes a value written at the same timestamp).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .constants import LATEST_TIMESTAMP

__all__ = [
    "CellType",
    "Cell",
    "Row",
    "put",
    "delete_column",
    "delete_family",
    "delete_family_version",
]


class CellType(Enum):
    """Cell kinds; `.value` is the lower_snake wire name, `.code` the wire byte."""

    PUT = "put"
    DELETE_FAMILY_VERSION = "delete_family_version"
    DELETE_COLUMN = "delete_column"
    DELETE_FAMILY = "delete_family"

    @property
    def code(self) -> int:
        return _CODES[self]

    @property
    def is_delete(self) -> bool:
        return self is not CellType.PUT

    @property
    def is_family_scope(self) -> bool:
        return self in (CellType.DELETE_FAMILY, CellType.DELETE_FAMILY_VERSION)

    @classmethod
    def from_code(cls, code: int) -> CellType:
        try:
            return _BY_CODE[code]
        except KeyError:
            raise ValueError(f"unknown cell type code {code}") from None


_CODES: dict[CellType, int] = {
    CellType.PUT: 4,
    CellType.DELETE_FAMILY_VERSION: 10,
    CellType.DELETE_COLUMN: 12,
    CellType.DELETE_FAMILY: 14,
}
_BY_CODE: dict[int, CellType] = {v: k for k, v in _CODES.items()}


@dataclass(frozen=True, slots=True)
class Cell:
    """
    One versioned cell.

    Attributes:
        row (bytes): Row key.
        family (bytes): Column family name.
        qualifier (bytes): Column qualifier (empty for family-scope markers).
        timestamp (int): Version timestamp, 0 <= timestamp <= LATEST_TIMESTAMP.
        type (CellType): Value or tombstone scope.
        value (bytes): Cell value; empty for tombstones.

    Notes:
        Identity is the full tuple, so two cells at the same coordinates with
        different types are distinct and both survive a round trip.
    """

    row: bytes
    family: bytes
    qualifier: bytes
    timestamp: int
    type: CellType = CellType.PUT
    value: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= self.timestamp <= LATEST_TIMESTAMP:
            raise ValueError(f"cell timestamp out of range: {self.timestamp}")

    @property
    def column(self) -> tuple[bytes, bytes]:
        return (self.family, self.qualifier)

    @property
    def is_delete(self) -> bool:
        return self.type.is_delete

    def with_family(self, family: bytes) -> Cell:
        """Return a copy moved to another family; everything else is preserved."""
        return Cell(self.row, family, self.qualifier, self.timestamp, self.type, self.value)


@dataclass(frozen=True, slots=True)
class Row:
    """A row key and its ordered cells."""

    key: bytes
    cells: tuple[Cell, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.cells)

    def families(self) -> set[bytes]:
        return {c.family for c in self.cells}


def put(row: bytes, family: bytes, qualifier: bytes, ts: int, value: bytes) -> Cell:
    return Cell(row, family, qualifier, ts, CellType.PUT, value)


def delete_column(row: bytes, family: bytes, qualifier: bytes, ts: int) -> Cell:
    return Cell(row, family, qualifier, ts, CellType.DELETE_COLUMN)


def delete_family(row: bytes, family: bytes, ts: int) -> Cell:
    return Cell(row, family, b"", ts, CellType.DELETE_FAMILY)


def delete_family_version(row: bytes, family: bytes, ts: int) -> Cell:
    return Cell(row, family, b"", ts, CellType.DELETE_FAMILY_VERSION)
