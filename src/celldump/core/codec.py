"""
Self-describing binary codec for one row's ordered cell sequence.

Record layout (big endian)
- header: magic b"CD" | codec version u8 | cell count u32
- per cell: row len u32, row | family len u16, family | qualifier len u32,
  qualifier | timestamp i64 | type code u8 | value len u32, value

Every record carries its own header and counts, so records can be decoded one at
a time from a concatenated stream without any external schema. Cell order,
bytes, timestamps and type codes are preserved exactly:
``decode(encode(cells)) == tuple(cells)``.

Notes:
    - Zero-IO apart from reading from a caller-supplied binary stream in
      `iter_decode`.
    - Any malformed input raises CodecError; callers treat it as a task failure.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Iterator, Sequence
from typing import BinaryIO

from .cells import Cell, CellType
from .errors import CodecError

__all__ = [
    "MAGIC",
    "CODEC_VERSION",
    "encode",
    "decode",
    "decode_from",
    "iter_decode",
]

MAGIC = b"CD"
CODEC_VERSION = 1

_HEADER = struct.Struct(">2sBI")
_U32 = struct.Struct(">I")
_U16 = struct.Struct(">H")
_TS_TYPE = struct.Struct(">qB")


def encode(cells: Sequence[Cell] | Iterable[Cell]) -> bytes:
    """
    Encode an ordered cell sequence into one self-describing record.

    Args:
        cells: Cells in the order they must be reproduced.

    Returns:
        bytes: Encoded record.

    Raises:
        CodecError: If a family is longer than 65535 bytes.
    """
    cells = list(cells)
    out = bytearray(_HEADER.pack(MAGIC, CODEC_VERSION, len(cells)))
    for c in cells:
        if len(c.family) > 0xFFFF:
            raise CodecError(f"family too long to encode ({len(c.family)} bytes)")
        out += _U32.pack(len(c.row))
        out += c.row
        out += _U16.pack(len(c.family))
        out += c.family
        out += _U32.pack(len(c.qualifier))
        out += c.qualifier
        out += _TS_TYPE.pack(c.timestamp, c.type.code)
        out += _U32.pack(len(c.value))
        out += c.value
    return bytes(out)


class _Reader:
    __slots__ = ("buf", "pos")

    def __init__(self, buf: bytes | memoryview, pos: int = 0) -> None:
        self.buf = memoryview(buf)
        self.pos = pos

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.buf):
            raise CodecError(
                f"truncated record: need {n} bytes at offset {self.pos}, "
                f"{len(self.buf) - self.pos} left"
            )
        chunk = self.buf[self.pos : end].tobytes()
        self.pos = end
        return chunk

    def unpack(self, st: struct.Struct) -> tuple:
        return st.unpack(self.take(st.size))


def _read_cells(r: _Reader) -> tuple[Cell, ...]:
    magic, version, count = r.unpack(_HEADER)
    if magic != MAGIC:
        raise CodecError(f"bad record magic {magic!r}")
    if version != CODEC_VERSION:
        raise CodecError(f"unsupported codec version {version}")
    cells: list[Cell] = []
    for _ in range(count):
        (n,) = r.unpack(_U32)
        row = r.take(n)
        (n,) = r.unpack(_U16)
        family = r.take(n)
        (n,) = r.unpack(_U32)
        qualifier = r.take(n)
        ts, code = r.unpack(_TS_TYPE)
        (n,) = r.unpack(_U32)
        value = r.take(n)
        try:
            ctype = CellType.from_code(code)
            cells.append(Cell(row, family, qualifier, ts, ctype, value))
        except ValueError as exc:
            raise CodecError(str(exc)) from exc
    return tuple(cells)


def decode_from(buf: bytes | memoryview, offset: int = 0) -> tuple[tuple[Cell, ...], int]:
    """
    Decode one record starting at offset.

    Returns:
        tuple: (cells, next_offset) so callers can walk concatenated records.
    """
    r = _Reader(buf, offset)
    cells = _read_cells(r)
    return cells, r.pos


def decode(data: bytes) -> tuple[Cell, ...]:
    """
    Decode exactly one record.

    Raises:
        CodecError: On truncation, trailing bytes, bad magic/version or unknown type.
    """
    cells, end = decode_from(data)
    if end != len(data):
        raise CodecError(f"{len(data) - end} trailing bytes after record")
    return cells


def iter_decode(stream: BinaryIO) -> Iterator[tuple[Cell, ...]]:
    """
    Decode concatenated records from a binary stream, one record at a time.

    Raises:
        CodecError: If the stream ends inside a record.
    """
    while True:
        head = stream.read(_HEADER.size)
        if not head:
            return
        if len(head) < _HEADER.size:
            raise CodecError("truncated record header at end of stream")
        magic, _version, count = _HEADER.unpack(head)
        if magic != MAGIC:
            raise CodecError(f"bad record magic {magic!r}")
        body = bytearray(head)
        for _ in range(count):
            body += _read_exact(stream, _U32.size)
            body += _read_exact(stream, _U32.unpack(body[-_U32.size :])[0])
            body += _read_exact(stream, _U16.size)
            body += _read_exact(stream, _U16.unpack(body[-_U16.size :])[0])
            body += _read_exact(stream, _U32.size)
            body += _read_exact(stream, _U32.unpack(body[-_U32.size :])[0])
            body += _read_exact(stream, _TS_TYPE.size)
            body += _read_exact(stream, _U32.size)
            body += _read_exact(stream, _U32.unpack(body[-_U32.size :])[0])
        yield decode(bytes(body))


def _read_exact(stream: BinaryIO, n: int) -> bytes:
    chunk = stream.read(n) if n else b""
    if len(chunk) != n:
        raise CodecError(f"truncated record: wanted {n} bytes, got {len(chunk)}")
    return chunk
