"""
Custom exceptions for the celldump.io module.

Purpose
- Provide IO-layer error types for dump and store-file handling.
- Keep celldump.core as the source of truth for configuration/codec errors
  (see celldump.core.errors).

Boundaries
- celldump.io raises Io* errors for filesystem/writer/manifest/format concerns:
  - IoConfigError: invalid or unsupported settings.
  - IoFormatError: a dump part does not have the expected columns, metadata, or checksum.
  - IoWriteError: atomic write path failed (tmp write/fsync/rename).
  - IoManifestError: manifest load/write/rebuild errors.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """Base class for IO-related errors in celldump.io."""


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Unsupported compression codec
        - Non-positive worker count
    """


class IoFormatError(IoError):
    """
    Raised when a dump part cannot be read as a dump.

    Notes:
        Covers missing columns, wrong column types, an incompatible format
        version tag, or a checksum that does not match the manifest.
    """


class IoWriteError(IoError):
    """
    Raised when a part or store file fails to write atomically.

    Notes:
        The write path is tmp parquet -> fsync -> os.replace(tmp, final). Failures at
        any step surface as IoWriteError (with best-effort cleanup of tmp files).
    """


class IoManifestError(IoError):
    """Raised when a dump manifest is missing, corrupt, or inconsistent."""
