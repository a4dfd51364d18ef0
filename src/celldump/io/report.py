"""
Job report writer.

Layout (file protocol baseline)
- <dump_dir>/job.report.json, written after an export (and, when a report
  directory is given, after an import).

Report schema:
{
  "report_version": 1,
  "job": {"kind": "export", "table": "t1", "state": "COMPLETE", "created_at": "..."},
  "format_version": "1.0@2026-10-01",
  "env": {"python": "...", "polars": "...", "pyarrow": "...", "pydantic": "..."},
  "io": {"compression": "zstd", "row_group_size": 65536, ...},
  "counters": {"rows": 10, "cells": 40, ...},
  "tasks": [{"partition": 0, "ok": true, "counters": {...}, "error": null}, ...],
  "meta": {...}
}

Notes
- Depends only on stdlib, celldump.core (FORMAT_V) and local io helpers.
- The report is informational; readers never need it to import a dump.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from celldump.core.versioning import FORMAT_V

from .config import DumpSettings
from .errors import IoWriteError
from .fs import write_bytes_atomic
from .paths import report_path

REPORT_VERSION = 1


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _safe_pkg_version(mod_name: str) -> str | None:
    try:
        mod = __import__(mod_name)
    except ImportError:
        return None
    return getattr(mod, "__version__", None)


def build_report(
    settings: DumpSettings,
    *,
    kind: str,
    table: str,
    state: str,
    counters: dict[str, int],
    tasks: list[dict[str, Any]],
    meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Compose the report payload without writing it."""
    return {
        "report_version": REPORT_VERSION,
        "job": {
            "kind": kind,
            "table": table,
            "state": state,
            "created_at": _utc_now_iso(),
        },
        "format_version": FORMAT_V.tag(),
        "env": {
            "python": sys.version,
            "polars": _safe_pkg_version("polars"),
            "pyarrow": _safe_pkg_version("pyarrow"),
            "pydantic": _safe_pkg_version("pydantic"),
        },
        "io": asdict(settings),
        "counters": dict(counters),
        "tasks": list(tasks),
        "meta": meta or {},
    }


def write_job_report(directory: str, payload: dict[str, Any]) -> str:
    """
    Persist a report payload atomically to <directory>/job.report.json.

    Returns:
        str: Final report path.

    Raises:
        IoWriteError: If the write or rename fails.
    """
    final_path = report_path(directory)
    data = json.dumps(payload, indent=2, default=str).encode("utf-8")
    try:
        write_bytes_atomic(final_path, data)
    except OSError as exc:
        raise IoWriteError(f"failed to write job report {final_path}: {exc}") from exc
    return final_path


def load_job_report(directory: str) -> dict[str, Any] | None:
    """Read a job report back, or None if the directory has none."""
    path = report_path(directory)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)
