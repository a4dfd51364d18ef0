"""
Frame validation for dump parts and cell frames.

Purpose
- Check Polars frames read from disk against the two layouts celldump writes:
  - dump parts: one record per logical row (row_key, encoded_row);
  - cell frames: one record per cell (store files, store snapshots, legacy dumps).
- Apply safe casts where the on-disk type is a compatible variant (e.g. LargeBinary).

Checks performed
- Required columns present (extra columns are ignored unless strict=True).
- Dtype compatibility, casting Utf8 -> Binary for key/value columns written by
  older tools, and any integer width -> Int64 for timestamps.
- Cell type names are known (cell frames only).

Notes
- Raises IoFormatError at the IO boundary; never raises core errors.
"""

from __future__ import annotations

from collections.abc import Iterable

import polars as pl

from celldump.core.cells import CellType

from .errors import IoFormatError

DUMP_COLUMNS: dict[str, object] = {
    "row_key": pl.Binary,
    "encoded_row": pl.Binary,
}

CELL_COLUMNS: dict[str, object] = {
    "row": pl.Binary,
    "family": pl.Binary,
    "qualifier": pl.Binary,
    "timestamp": pl.Int64,
    "type": pl.Utf8,
    "value": pl.Binary,
}

_TYPE_NAMES = {t.value for t in CellType}


def _ensure_columns_present(df: pl.DataFrame, needed: Iterable[str]) -> None:
    missing = [c for c in needed if c not in df.columns]
    if missing:
        raise IoFormatError(f"missing required columns: {missing!r}")


def _coerce(df: pl.DataFrame, col: str, target: object) -> pl.DataFrame:
    actual = df.schema[col]
    if actual == target:
        return df
    if target == pl.Binary and actual == pl.Utf8:
        return df.with_columns(pl.col(col).cast(pl.Binary))
    if target == pl.Int64 and actual.is_integer():
        return df.with_columns(pl.col(col).cast(pl.Int64))
    raise IoFormatError(f"column {col!r} has dtype {actual}, expected {target}")


def _check(df: pl.DataFrame, columns: dict[str, object], strict: bool) -> pl.DataFrame:
    _ensure_columns_present(df, columns)
    if strict:
        extra = [c for c in df.columns if c not in columns]
        if extra:
            raise IoFormatError(f"unexpected columns: {extra!r}")
    for col, target in columns.items():
        df = _coerce(df, col, target)
    return df.select(list(columns))


def validate_dump_frame(df: pl.DataFrame, *, strict: bool = True) -> pl.DataFrame:
    """
    Validate a dump part frame and return it restricted to (row_key, encoded_row).

    Raises:
        IoFormatError: Missing/extra columns or incompatible dtypes.
    """
    return _check(df, DUMP_COLUMNS, strict)


def validate_cell_frame(df: pl.DataFrame, *, strict: bool = True) -> pl.DataFrame:
    """
    Validate a one-record-per-cell frame.

    Raises:
        IoFormatError: Missing/extra columns, incompatible dtypes, unknown cell types,
            or null keys/timestamps.
    """
    df = _check(df, CELL_COLUMNS, strict)
    if df.is_empty():
        return df
    nulls = df.select(
        pl.any_horizontal(
            pl.col("row").is_null(),
            pl.col("family").is_null(),
            pl.col("timestamp").is_null(),
            pl.col("type").is_null(),
        ).any()
    ).item()
    if nulls:
        raise IoFormatError("cell frame has null row/family/timestamp/type values")
    unknown = set(df.get_column("type").unique().to_list()) - _TYPE_NAMES
    if unknown:
        raise IoFormatError(f"unknown cell types: {sorted(unknown)!r}")
    return df.with_columns(
        pl.col("qualifier").fill_null(b""),
        pl.col("value").fill_null(b""),
    )
