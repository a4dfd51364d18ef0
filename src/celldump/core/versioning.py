"""
Dump format version metadata and helpers.

Exposes the canonical format version (FORMAT_V) embedded in every dump part and
manifest, plus parsing and compatibility checks. This module is zero-IO.

Notes:
    - Writers embed FORMAT_V as "<major>.<minor>@<date>" in Parquet key-value metadata.
    - Readers accept any dump sharing FORMAT_V.major; minor bumps are additive.
    - Legacy dumps (one record per cell) carry no version tag and are selected
      explicitly at import time rather than detected from metadata.
"""

from dataclasses import dataclass
from datetime import date

from .errors import VersionMismatch

FORMAT_MAJOR_VERSION = 1
FORMAT_MINOR_VERSION = 0


@dataclass(frozen=True)
class FormatVersion:
    """
    Immutable semantic version with ISO release date for dump artifacts.

    Attributes:
        major (int): Non-negative major component signalling breaking layout changes.
        minor (int): Non-negative minor component for additive changes.
        date (str): ISO YYYY-MM-DD release date retained in metadata payloads.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"FormatVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"FormatVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(
                f"FormatVersion date must be ISO YYYY-MM-DD, got {self.date!r}"
            ) from exc

    def tag(self) -> str:
        """Render as the metadata tag "<major>.<minor>@<date>"."""
        return f"{self.major}.{self.minor}@{self.date}"


FORMAT_V = FormatVersion(FORMAT_MAJOR_VERSION, FORMAT_MINOR_VERSION, "2026-10-01")


def parse_version_tag(tag: str) -> FormatVersion:
    """
    Parse a "<major>.<minor>@<date>" tag back into a FormatVersion.

    Raises:
        VersionMismatch: If the tag is malformed.

    Examples:
        >>> from celldump.core.versioning import FORMAT_V, parse_version_tag
        >>> parse_version_tag(FORMAT_V.tag()) == FORMAT_V
        True
    """
    try:
        nums, when = tag.split("@", 1)
        major, minor = nums.split(".", 1)
        return FormatVersion(int(major), int(minor), when)
    except ValueError as exc:
        raise VersionMismatch(f"malformed format version tag {tag!r}") from exc


def is_compatible(ver: FormatVersion) -> bool:
    """True if ver shares the major component with FORMAT_V."""
    return ver.major == FORMAT_V.major


def require_compatible(tag: str) -> FormatVersion:
    """
    Parse tag and ensure this build can read it.

    Raises:
        VersionMismatch: If the tag is malformed or has a different major version.
    """
    ver = parse_version_tag(tag)
    if not is_compatible(ver):
        raise VersionMismatch(
            f"dump format {ver.tag()} is not readable by this build (expects {FORMAT_V.major}.x)"
        )
    return ver
