"""
Core exception types raised while configuring and running export/import jobs.

Provides typed exceptions for core-domain failures:
- ArgumentError for missing or malformed command-line values.
- ScanConfigurationError for scan descriptors that cannot be honoured
  (bad version count, inverted or negative time range).
- FilterConfigurationError for a re-entry filter that is unknown, abstract,
  lacks the row-decision capability, or rejects its arguments.
- CodecError for encoded rows that cannot be decoded.
- VersionMismatch for dump format versions this build cannot read.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - ArgumentError, ScanConfigurationError and FilterConfigurationError are
      configuration-time failures: jobs raise them before any task is scheduled.
    - CodecError is a per-record failure: it fails the owning task only.

Examples:
    Catch a configuration failure.

    >>> from celldump.core.errors import ScanConfigurationError
    >>> try:
    ...     raise ScanConfigurationError("max_versions must be >= 1")
    ... except ScanConfigurationError as e:
    ...     msg = str(e)
    >>> "max_versions" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "CelldumpError",
    "ArgumentError",
    "ScanConfigurationError",
    "FilterConfigurationError",
    "CodecError",
    "VersionMismatch",
]


class CelldumpError(Exception):
    """Base class for all celldump core errors."""


class ArgumentError(CelldumpError, ValueError):
    """Missing or malformed command-line value (positional or -D option)."""


class ScanConfigurationError(CelldumpError, ValueError):
    """Scan descriptor is invalid (version count, time range)."""


class FilterConfigurationError(CelldumpError, ValueError):
    """Configured re-entry filter cannot be resolved or constructed."""


class CodecError(CelldumpError, ValueError):
    """Encoded row is truncated, corrupt, or uses an unknown tag."""


class VersionMismatch(CelldumpError, RuntimeError):
    """Incompatible or unexpected dump format version encountered."""
