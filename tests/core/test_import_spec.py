from __future__ import annotations

import pytest

from celldump.core.errors import ArgumentError
from celldump.core.import_spec import (
    BULK_OUTPUT_KEY,
    CF_RENAME_KEY,
    FILTER_ARGS_KEY,
    FILTER_CLASS_KEY,
    SOURCE_VERSION_KEY,
    WAL_DURABILITY_KEY,
    CfRenameMap,
    Durability,
    add_filter_and_arguments,
    build_import_spec,
)


def test_rename_map_parse_and_passthrough() -> None:
    m = CfRenameMap.parse(" a:b , c:d ,")
    assert m.as_dict() == {b"a": b"b", b"c": b"d"}
    assert m.rename(b"a") == b"b"
    assert m.rename(b"zz") == b"zz"
    assert len(m) == 2
    assert m.to_text() == "a:b,c:d"
    assert not CfRenameMap.parse(None)
    assert not CfRenameMap.parse("  ")


@pytest.mark.parametrize("text", ["a", "a:", ":b", "a:b:c", "a:b,a:c"])
def test_rename_map_rejects_malformed(text: str) -> None:
    with pytest.raises(ArgumentError):
        CfRenameMap.parse(text)


def test_durability_parse() -> None:
    assert Durability.parse(" skip_wal ") is Durability.SKIP_WAL
    with pytest.raises(ArgumentError, match="unknown WAL durability"):
        Durability.parse("SOMETIMES")


def test_build_import_spec_defaults() -> None:
    spec = build_import_spec(["t2", "/dump"])
    assert spec.table == "t2"
    assert spec.source_location == "/dump"
    assert not spec.cf_rename
    assert spec.filter_class is None
    assert spec.durability is Durability.DEFAULT
    assert spec.bulk_output is None
    assert spec.source_format == "current"


def test_build_import_spec_options() -> None:
    conf: dict[str, str] = {
        CF_RENAME_KEY: "a:b",
        WAL_DURABILITY_KEY: "SKIP_WAL",
        BULK_OUTPUT_KEY: "/bulk",
        SOURCE_VERSION_KEY: "0.94",
    }
    add_filter_and_arguments(conf, "prefix", ["row1"])
    spec = build_import_spec(["t2", "/dump"], conf)
    assert spec.cf_rename.rename(b"a") == b"b"
    assert spec.filter_class == "prefix"
    assert spec.filter_args == ("row1",)
    assert spec.durability is Durability.SKIP_WAL
    assert spec.bulk_output == "/bulk"
    assert spec.source_format == "legacy"


@pytest.mark.parametrize(
    ("args", "conf", "match"),
    [
        (["only"], {}, "Wrong number of arguments"),
        (["t", "d", "x"], {}, "Wrong number of arguments"),
        (["t", "d"], {FILTER_ARGS_KEY: "x"}, "without"),
        (["t", "d"], {SOURCE_VERSION_KEY: "2.x"}, "unknown source format"),
    ],
)
def test_build_import_spec_errors(args: list[str], conf: dict[str, str], match: str) -> None:
    with pytest.raises(ArgumentError, match=match):
        build_import_spec(args, conf)


def test_add_filter_and_arguments_keeps_order() -> None:
    conf: dict[str, str] = {}
    add_filter_and_arguments(conf, "filter_list", ["must_pass_one", "prefix:a", "prefix:b"])
    assert conf[FILTER_CLASS_KEY] == "filter_list"
    assert build_import_spec(["t", "d"], conf).filter_args == (
        "must_pass_one",
        "prefix:a",
        "prefix:b",
    )
