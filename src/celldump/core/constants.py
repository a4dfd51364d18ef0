"""
celldump core defaults.

Defines scan, dump and write defaults consumed by the io, engine and jobs
layers. This module is zero-IO and uses only the Python standard library.

Notes:
    - Timestamps are int64 milliseconds; LATEST_TIMESTAMP is the open upper bound
      of a time range (exclusive).
    - Parquet writers size row groups and set compression according to these values.
"""

from __future__ import annotations

__all__ = [
    "LATEST_TIMESTAMP",
    "DEFAULT_MAX_VERSIONS",
    "DEFAULT_SCANNER_CACHING",
    "ROW_GROUP_SIZE",
    "RECORDS_PER_PART",
    "COMPRESSION",
    "MAX_WORKERS",
]

# Largest int64; also the default exclusive upper bound of a scan time range.
LATEST_TIMESTAMP: int = 2**63 - 1

# Export keeps one version per column unless told otherwise.
DEFAULT_MAX_VERSIONS: int = 1

# Rows fetched per scanner round trip.
DEFAULT_SCANNER_CACHING: int = 100

# Target row group size for dump parts.
ROW_GROUP_SIZE: int = 64 * 1024

# Records buffered before a dump part is flushed as a row group.
RECORDS_PER_PART: int = 10_000

# Default compression codec for dump parts and store files.
COMPRESSION: str = "zstd"

# Default size of the local task pool.
MAX_WORKERS: int = 4
