"""
Text <-> bytes helpers for row keys.

Row keys and filter prefixes arrive on the command line as text with optional
"\\xNN" escapes (for example "\\x32row1"). `to_bytes_binary` turns such text into
raw bytes and `to_string_binary` renders bytes back into the same printable
form for logs and manifests. This module is zero-IO.

Notes:
    - Printable ASCII other than backslash passes through unchanged; every other
      byte is rendered as "\\xNN" (uppercase hex).
    - A backslash not followed by "xNN" is kept literally.
"""

from __future__ import annotations

__all__ = [
    "to_bytes_binary",
    "to_string_binary",
]

_HEX = "0123456789abcdefABCDEF"


def to_bytes_binary(text: str) -> bytes:
    """
    Convert text with "\\xNN" escapes into raw bytes.

    Examples:
        >>> to_bytes_binary("\\\\x32row1")
        b'2row1'
        >>> to_bytes_binary("plain")
        b'plain'
    """
    out = bytearray()
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if (
            ch == "\\"
            and i + 3 < n
            and text[i + 1] == "x"
            and text[i + 2] in _HEX
            and text[i + 3] in _HEX
        ):
            out.append(int(text[i + 2 : i + 4], 16))
            i += 4
            continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return bytes(out)


def to_string_binary(data: bytes) -> str:
    """
    Render bytes as printable text, escaping non-printable bytes as "\\xNN".

    Examples:
        >>> to_string_binary(b"row\\x00")
        'row\\\\x00'
    """
    parts: list[str] = []
    for b in data:
        if 32 <= b < 127 and b != 0x5C:
            parts.append(chr(b))
        else:
            parts.append(f"\\x{b:02X}")
    return "".join(parts)
