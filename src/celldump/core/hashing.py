"""
Checksum helpers for dump parts.

A streaming SHA-256 digest over dump records lets a reader confirm a part was
not truncated or reordered after it was written. This module is zero-IO.

Notes:
    - Record digests are order-sensitive: each record contributes its row key
      and encoded row, both length-prefixed, in the order written.
"""

from __future__ import annotations

import hashlib
import struct

__all__ = ["RecordDigest"]

_LEN = struct.Struct(">I")


class RecordDigest:
    """
    Incremental SHA-256 over (row_key, encoded_row) records.

    Examples:
        >>> d1 = RecordDigest(); d1.update(b"r1", b"x"); d1.update(b"r2", b"y")
        >>> d2 = RecordDigest(); d2.update(b"r2", b"y"); d2.update(b"r1", b"x")
        >>> d1.hexdigest() != d2.hexdigest()
        True
    """

    def __init__(self) -> None:
        self._h = hashlib.sha256()

    def update(self, row_key: bytes, encoded_row: bytes) -> None:
        self._h.update(_LEN.pack(len(row_key)))
        self._h.update(row_key)
        self._h.update(_LEN.pack(len(encoded_row)))
        self._h.update(encoded_row)

    def hexdigest(self) -> str:
        return self._h.hexdigest()
