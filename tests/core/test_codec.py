from __future__ import annotations

import io
import struct

import pytest

from celldump.core.cells import (
    Cell,
    CellType,
    delete_column,
    delete_family,
    delete_family_version,
    put,
)
from celldump.core.codec import MAGIC, decode, decode_from, encode, iter_decode
from celldump.core.constants import LATEST_TIMESTAMP
from celldump.core.errors import CodecError


def _row() -> tuple[Cell, ...]:
    return (
        delete_family(b"r1", b"a", 50),
        delete_family_version(b"r1", b"a", 40),
        put(b"r1", b"a", b"q", 30, b"v30"),
        delete_column(b"r1", b"a", b"q", 20),
        put(b"r1", b"a", b"q", 10, b""),
        put(b"r1", b"b", b"\x00\xff", LATEST_TIMESTAMP, b"\x01" * 1000),
    )


def test_decode_reproduces_cells_in_order() -> None:
    cells = _row()
    assert decode(encode(cells)) == cells


def test_empty_and_tombstone_only_rows() -> None:
    assert decode(encode(())) == ()
    markers = (delete_family(b"r", b"f", 9), delete_family(b"r", b"f", 5))
    assert decode(encode(markers)) == markers


def test_same_coordinates_different_type_are_distinct() -> None:
    a = put(b"r", b"f", b"q", 7, b"")
    b = Cell(b"r", b"f", b"q", 7, CellType.DELETE_COLUMN)
    out = decode(encode((b, a)))
    assert out == (b, a)
    assert len(set(out)) == 2


def test_decode_rejects_trailing_bytes() -> None:
    with pytest.raises(CodecError, match="trailing"):
        decode(encode(_row()) + b"\x00")


def test_decode_rejects_truncation() -> None:
    data = encode(_row())
    with pytest.raises(CodecError, match="truncated"):
        decode(data[:-3])


def test_decode_rejects_bad_magic_and_version() -> None:
    data = encode(_row())
    with pytest.raises(CodecError, match="magic"):
        decode(b"XX" + data[2:])
    with pytest.raises(CodecError, match="version"):
        decode(data[:2] + b"\x09" + data[3:])


def test_decode_rejects_unknown_type_code() -> None:
    data = bytearray(encode((put(b"r", b"f", b"q", 1, b"v"),)))
    # header(7) + row(4+1) + family(2+1) + qualifier(4+1) + timestamp(8) -> type byte
    type_offset = 7 + 5 + 3 + 5 + 8
    data[type_offset] = 99
    with pytest.raises(CodecError, match="unknown cell type"):
        decode(bytes(data))


def test_decode_from_walks_concatenated_records() -> None:
    first = (put(b"r1", b"f", b"q", 1, b"x"),)
    second = (put(b"r2", b"f", b"q", 2, b"y"),)
    buf = encode(first) + encode(second)
    cells, offset = decode_from(buf)
    assert cells == first
    cells2, end = decode_from(buf, offset)
    assert cells2 == second
    assert end == len(buf)


def test_iter_decode_stream() -> None:
    records = [_row(), (), (put(b"z", b"f", b"", 0, b"v"),)]
    stream = io.BytesIO(b"".join(encode(r) for r in records))
    assert list(iter_decode(stream)) == records


def test_iter_decode_rejects_partial_header_and_bad_magic() -> None:
    with pytest.raises(CodecError):
        list(iter_decode(io.BytesIO(MAGIC)))
    bad = struct.pack(">2sBI", b"ZZ", 1, 0)
    with pytest.raises(CodecError, match="magic"):
        list(iter_decode(io.BytesIO(bad)))


def test_encode_rejects_oversized_family() -> None:
    with pytest.raises(CodecError):
        encode((put(b"r", b"f" * 70000, b"q", 1, b"v"),))
