"""Shared test fixtures for pgembed tests."""

import hashlib
import io
import tarfile
from collections.abc import Mapping
from pathlib import Path

import pytest
from rich.console import Console

from pgembed.settings import Settings

TEST_PLATFORM = "x86_64-unknown-linux-gnu"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory with a fixed password."""
    return Settings(
        version="=16.4.0",
        installation_root=tmp_path / "cache",
        data_dir=tmp_path / "data",
        host="127.0.0.1",
        password="secret",
        startup_timeout=10.0,
        shutdown_timeout=5.0,
        probe_interval=0.05,
        lock_timeout=5.0,
    )


# ---------------------------------------------------------------------------
# Helper functions for creating test artifacts
# ---------------------------------------------------------------------------


def make_tarball(
    files: Mapping[str, bytes | str],
    *,
    root: str | None = "postgresql",
    mode: int = 0o644,
    executables: frozenset[str] = frozenset(),
) -> bytes:
    """Build an in-memory ``.tar.gz`` archive.

    Args:
        files: Archive member paths (relative to `root`) to contents.
        root: Single top-level directory, or None for a flat archive.
        mode: Permission bits of regular members.
        executables: Member paths that get mode 0o755.

    Returns:
        The compressed archive bytes.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in sorted(files.items()):
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(f"{root}/{name}" if root else name)
            info.size = len(data)
            info.mode = 0o755 if name in executables else mode
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def sha256_checksum(data: bytes) -> str:
    """Checksum in the ``sha256:<hex>`` form used by pgembed."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"
