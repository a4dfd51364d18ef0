"""
Row mutations submitted to a MutationSink.

Each cell type maps to exactly one mutation kind, addressed by its exact timestamp:

    PUT                   -> SetCell
    DELETE_COLUMN         -> DeleteColumn
    DELETE_FAMILY         -> DeleteFamily
    DELETE_FAMILY_VERSION -> DeleteFamilyVersion

RowMutations groups the mutations of one row with the durability they are written
under. Because every mutation carries its own timestamp, applying the same
RowMutations twice leaves the versioned state unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union

from celldump.core.cells import Cell, CellType
from celldump.core.import_spec import Durability

__all__ = [
    "SetCell",
    "DeleteColumn",
    "DeleteFamily",
    "DeleteFamilyVersion",
    "Mutation",
    "RowMutations",
    "mutation_for_cell",
]


@dataclass(frozen=True, slots=True)
class SetCell:
    family: bytes
    qualifier: bytes
    timestamp: int
    value: bytes

    def to_cell(self, row: bytes) -> Cell:
        return Cell(row, self.family, self.qualifier, self.timestamp, CellType.PUT, self.value)


@dataclass(frozen=True, slots=True)
class DeleteColumn:
    """Hide every version of one column at or before timestamp."""

    family: bytes
    qualifier: bytes
    timestamp: int

    def to_cell(self, row: bytes) -> Cell:
        return Cell(row, self.family, self.qualifier, self.timestamp, CellType.DELETE_COLUMN)


@dataclass(frozen=True, slots=True)
class DeleteFamily:
    """Hide every cell of one family at or before timestamp."""

    family: bytes
    timestamp: int

    def to_cell(self, row: bytes) -> Cell:
        return Cell(row, self.family, b"", self.timestamp, CellType.DELETE_FAMILY)


@dataclass(frozen=True, slots=True)
class DeleteFamilyVersion:
    """Hide the cells of one family written exactly at timestamp."""

    family: bytes
    timestamp: int

    def to_cell(self, row: bytes) -> Cell:
        return Cell(row, self.family, b"", self.timestamp, CellType.DELETE_FAMILY_VERSION)


Mutation = Union[SetCell, DeleteColumn, DeleteFamily, DeleteFamilyVersion]


def mutation_for_cell(cell: Cell) -> Mutation:
    """Map a decoded cell to the mutation that recreates it at its exact timestamp."""
    if cell.type is CellType.PUT:
        return SetCell(cell.family, cell.qualifier, cell.timestamp, cell.value)
    if cell.type is CellType.DELETE_COLUMN:
        return DeleteColumn(cell.family, cell.qualifier, cell.timestamp)
    if cell.type is CellType.DELETE_FAMILY:
        return DeleteFamily(cell.family, cell.timestamp)
    return DeleteFamilyVersion(cell.family, cell.timestamp)


@dataclass(frozen=True, slots=True)
class RowMutations:
    """
    All mutations for one row, applied atomically.

    Attributes:
        row (bytes): Row key.
        mutations (tuple[Mutation, ...]): Mutations in submission order.
        durability (Durability): Write durability; DEFAULT defers to the table.
        visibility (str | None): Label expression tagging every written cell;
            None leaves the cells visible to all readers.
    """

    row: bytes
    mutations: tuple[Mutation, ...]
    durability: Durability = Durability.DEFAULT
    visibility: str | None = None

    @classmethod
    def from_cells(cls, row: bytes, cells: tuple[Cell, ...] | list[Cell]) -> RowMutations:
        return cls(row, tuple(mutation_for_cell(c) for c in cells))

    def __len__(self) -> int:
        return len(self.mutations)

    def families(self) -> set[bytes]:
        return {m.family for m in self.mutations}

    def cells(self) -> tuple[Cell, ...]:
        return tuple(m.to_cell(self.row) for m in self.mutations)

    def with_durability(self, durability: Durability) -> RowMutations:
        return replace(self, durability=durability)
