"""
Filesystem primitives shared by every celldump writer and reader.

Every file celldump publishes goes through the same protocol:

    write "<final>.tmp" -> fsync -> os.replace(tmp, final)

so a reader sees either the previous file or the complete new one. Temporary
files live next to their final path because os.replace is only atomic within
one filesystem. Parquet files are written by pyarrow and then finished with
fsync_path/rename_atomic; small JSON documents use write_bytes_atomic.
"""

from __future__ import annotations

import os


def makedirs(path: str, exist_ok: bool = True) -> None:
    os.makedirs(path, exist_ok=exist_ok)


def fsync_path(path: str) -> None:
    """Flush a file that another library already wrote and closed."""
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    os.replace(src, dst)


def remove_quietly(path: str) -> None:
    """Remove a leftover temporary file; a missing file is not an error."""
    if os.path.lexists(path):
        os.remove(path)


def write_bytes_atomic(final_path: str, data: bytes) -> None:
    """
    Publish data at final_path through a fsynced temporary file.

    Raises:
        OSError: If any step fails; the temporary file is removed first.
    """
    makedirs(os.path.dirname(final_path) or ".", exist_ok=True)
    tmp_path = final_path + ".tmp"
    try:
        with open(tmp_path, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        rename_atomic(tmp_path, final_path)
    except OSError:
        remove_quietly(tmp_path)
        raise


def list_parquet(directory: str, *, recursive: bool = False) -> list[str]:
    """
    Sorted paths of *.parquet files under directory.

    Only the directory itself is searched unless recursive is set. A missing
    directory yields []. "*.parquet.tmp" files never match.
    """
    if not os.path.isdir(directory):
        return []
    if not recursive:
        return [
            os.path.join(directory, n)
            for n in sorted(os.listdir(directory))
            if n.endswith(".parquet")
        ]
    return sorted(
        os.path.join(dirpath, n)
        for dirpath, _dirs, names in os.walk(directory)
        for n in names
        if n.endswith(".parquet")
    )
