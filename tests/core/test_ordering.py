from __future__ import annotations

import pytest

from celldump.core.cells import Cell, CellType, delete_column, delete_family, put
from celldump.core.ordering import CELL_ORDER, Criterion, compound, sort_cells, sorted_by


def test_compound_stops_at_first_non_tie() -> None:
    cmp = compound(Criterion(lambda t: t[0]), Criterion(lambda t: t[1], descending=True))
    assert cmp(("a", 1), ("a", 2)) == 1
    assert cmp(("a", 2), ("b", 0)) == -1
    assert cmp(("a", 2), ("a", 2)) == 0


def test_compound_requires_criteria() -> None:
    with pytest.raises(ValueError):
        compound()


def test_sorted_by_is_stable_on_full_ties() -> None:
    items = [("x", 1, "first"), ("x", 1, "second")]
    assert sorted_by(items, Criterion(lambda t: t[0])) == items


def test_storage_order() -> None:
    cells = [
        put(b"r2", b"a", b"q", 1, b""),
        put(b"r1", b"b", b"q", 5, b""),
        put(b"r1", b"a", b"q", 1, b""),
        put(b"r1", b"a", b"q", 9, b""),
        delete_column(b"r1", b"a", b"q", 9),
        delete_family(b"r1", b"a", 3),
        put(b"r1", b"a", b"p", 2, b""),
    ]
    out = sort_cells(cells)
    assert [(c.row, c.family, c.qualifier, c.timestamp, c.type) for c in out] == [
        (b"r1", b"a", b"", 3, CellType.DELETE_FAMILY),
        (b"r1", b"a", b"p", 2, CellType.PUT),
        (b"r1", b"a", b"q", 9, CellType.DELETE_COLUMN),
        (b"r1", b"a", b"q", 9, CellType.PUT),
        (b"r1", b"a", b"q", 1, CellType.PUT),
        (b"r1", b"b", b"q", 5, CellType.PUT),
        (b"r2", b"a", b"q", 1, CellType.PUT),
    ]


def test_type_code_breaks_ties_descending() -> None:
    same = [
        Cell(b"r", b"f", b"", 4, CellType.DELETE_FAMILY_VERSION),
        Cell(b"r", b"f", b"", 4, CellType.PUT),
        Cell(b"r", b"f", b"", 4, CellType.DELETE_FAMILY),
    ]
    assert [c.type for c in sorted_by(same, *CELL_ORDER)] == [
        CellType.DELETE_FAMILY,
        CellType.DELETE_FAMILY_VERSION,
        CellType.PUT,
    ]
