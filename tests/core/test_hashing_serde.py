from celldump.core.hashing import RecordDigest
from celldump.core.serde import to_bytes_binary, to_string_binary


def _digest(records: list[tuple[bytes, bytes]]) -> str:
    d = RecordDigest()
    for key, payload in records:
        d.update(key, payload)
    return d.hexdigest()


def test_record_digest_is_order_sensitive_and_length_prefixed() -> None:
    a = _digest([(b"r1", b"x"), (b"r2", b"y")])
    b = _digest([(b"r2", b"y"), (b"r1", b"x")])
    assert a != b
    # Moving a byte across the key/payload boundary changes the digest.
    assert _digest([(b"ab", b"c")]) != _digest([(b"a", b"bc")])


def test_binary_escapes() -> None:
    assert to_bytes_binary("\\x32row1") == b"2row1"
    assert to_bytes_binary("a\\xzz") == b"a\\xzz"
    assert to_string_binary(b"row\x00\xff\\") == "row\\x00\\xFF\\x5C"
    assert to_bytes_binary(to_string_binary(b"\x00k\\ey\x7f")) == b"\x00k\\ey\x7f"
