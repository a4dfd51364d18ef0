from __future__ import annotations

import pytest
from pydantic import ValidationError

from celldump.core.constants import DEFAULT_SCANNER_CACHING, LATEST_TIMESTAMP
from celldump.core.errors import ArgumentError, ScanConfigurationError
from celldump.core.filters import PrefixFilter, RegexRowFilter
from celldump.core.scan_spec import (
    EXPORT_BATCHING_KEY,
    FAMILIES_KEY,
    RAW_SCAN_KEY,
    ROW_START_KEY,
    ROW_STOP_KEY,
    SCANNER_BATCH_KEY,
    SCANNER_CACHING_KEY,
    VISIBILITY_LABELS_KEY,
    ScanSpec,
    build_scan_spec,
    parse_bool,
)


def test_defaults() -> None:
    spec = build_scan_spec(["t1", "/out"])
    assert spec.max_versions == 1
    assert spec.time_range_min == 0
    assert spec.time_range_max == LATEST_TIMESTAMP
    assert spec.raw is False
    assert spec.row_filter is None
    assert spec.batch_size is None
    assert spec.caching_size == DEFAULT_SCANNER_CACHING
    assert spec.families == ()


@pytest.mark.parametrize("args", [[], ["t1"], ["t", "o", "1", "2", "3", "p", "extra"]])
def test_wrong_number_of_arguments(args: list[str]) -> None:
    with pytest.raises(ArgumentError, match="^Wrong number of arguments"):
        build_scan_spec(args)


@pytest.mark.parametrize(
    "args", [["t", "o", "many"], ["t", "o", "1", "x"], ["t", "o", "1", "0", "y"]]
)
def test_non_numeric_positionals(args: list[str]) -> None:
    with pytest.raises(ArgumentError, match="must be numeric"):
        build_scan_spec(args)


@pytest.mark.parametrize(
    "args",
    [["t", "o", "0"], ["t", "o", "1", "-5"], ["t", "o", "1", "10", "5"]],
)
def test_unsatisfiable_values(args: list[str]) -> None:
    with pytest.raises(ScanConfigurationError):
        build_scan_spec(args)


def test_positionals_and_filter_spec() -> None:
    spec = build_scan_spec(["t", "o", "3", "5", "900", "\\x32row"])
    assert (spec.max_versions, spec.time_range_min, spec.time_range_max) == (3, 5, 900)
    assert spec.row_filter == PrefixFilter(b"2row")

    regex = build_scan_spec(["t", "o", "1", "0", "10", "^r.w"])
    assert isinstance(regex.row_filter, RegexRowFilter)
    assert regex.row_filter.pattern == "r.w"


def test_options() -> None:
    spec = build_scan_spec(
        ["t", "o"],
        {
            ROW_START_KEY: "a",
            ROW_STOP_KEY: "\\xFF",
            FAMILIES_KEY: "cf1, cf2",
            RAW_SCAN_KEY: "true",
            SCANNER_CACHING_KEY: "7",
            VISIBILITY_LABELS_KEY: "secret,public,secret",
        },
    )
    assert spec.start_row == b"a"
    assert spec.stop_row == b"\xff"
    assert spec.families == (b"cf1", b"cf2")
    assert spec.raw is True
    assert spec.caching_size == 7
    assert spec.visibility_labels == ("secret", "public")


def test_batching_alias_and_precedence() -> None:
    assert build_scan_spec(["t", "o"], {EXPORT_BATCHING_KEY: "4"}).batch_size == 4
    both = {SCANNER_BATCH_KEY: "2", EXPORT_BATCHING_KEY: "4"}
    assert build_scan_spec(["t", "o"], both).batch_size == 2
    with pytest.raises(ScanConfigurationError):
        build_scan_spec(["t", "o"], {SCANNER_BATCH_KEY: "0"})


def test_parse_bool() -> None:
    assert parse_bool("k", "Yes") is True
    assert parse_bool("k", "off") is False
    with pytest.raises(ArgumentError, match="expects a boolean"):
        parse_bool("k", "maybe")


def test_ranges() -> None:
    spec = ScanSpec(start_row=b"b", stop_row=b"d", time_range_min=5, time_range_max=10)
    assert [spec.row_in_range(r) for r in (b"a", b"b", b"c", b"d")] == [False, True, True, False]
    assert [spec.timestamp_in_range(t) for t in (4, 5, 9, 10)] == [False, True, True, False]
    assert ScanSpec().timestamp_in_range(LATEST_TIMESTAMP)


def test_spec_is_frozen() -> None:
    spec = ScanSpec()
    with pytest.raises(ValidationError):
        spec.raw = True  # type: ignore[misc]
