"""Filesystem helpers: atomic writes, JSON files, and directory cleanup."""

import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import cast

import orjson


def atomic_write_bytes(path: Path, content: bytes, *, mode: int | None = None) -> None:
    """Write `content` to `path` atomically.

    Writes to a temporary file in the same directory, fsyncs it, then renames
    it into place with ``os.replace``. Readers see either the old file or the
    complete new one.

    Args:
        path: Destination file.
        content: Bytes to write.
        mode: Optional permission bits for the new file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as tmp_handle:
            _ = tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def atomic_copy_file(source: Path, destination: Path) -> None:
    """Copy a file so that `destination` is replaced in a single rename.

    Args:
        source: File to copy.
        destination: File to create or replace.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(destination.parent),
        prefix=f".{destination.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    try:
        _ = shutil.copy2(source, tmp_path)
        os.replace(tmp_path, destination)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def load_json_file(file_path: Path) -> dict[str, object] | None:
    """Load a JSON object from a file.

    Args:
        file_path: Path to the JSON file.

    Returns:
        The parsed object, or None if the file is missing, unreadable, or does
        not hold a JSON object.
    """
    try:
        data = orjson.loads(file_path.read_bytes())
    except (OSError, orjson.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    return cast("dict[str, object]", data)


def write_json_file(file_path: Path, data: object) -> None:
    """Atomically write `data` as indented JSON."""
    atomic_write_bytes(file_path, orjson.dumps(data, option=orjson.OPT_INDENT_2))


def remove_tree(path: Path) -> None:
    """Remove a file or directory tree if it exists."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)
