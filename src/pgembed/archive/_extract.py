"""Archive extraction.

Extracts ``.tar.gz``, ``.tgz``, ``.tar.xz``, ``.tar.bz2``, ``.tar`` and
``.zip`` archives into a fresh directory, stripping a single top-level
directory when the archive has one.
"""

import lzma
import os
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path

from pgembed.exceptions import ExtractionError

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".tar")


def _is_zip(archive: Path, name: str) -> bool:
    if name.lower().endswith(".zip"):
        return True
    if name.lower().endswith(_TAR_SUFFIXES):
        return False
    return zipfile.is_zipfile(archive)


def _extract_tar(archive: Path, destination: Path) -> None:
    with tarfile.open(archive, "r:*") as tar:
        tar.extractall(destination, filter="data")


def _extract_zip(archive: Path, destination: Path) -> None:
    root = destination.resolve()
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            target = (root / info.filename).resolve()
            if target != root and root not in target.parents:
                msg = f"Archive member escapes destination: {info.filename}"
                raise ExtractionError(msg, archive=archive)
            extracted = Path(zf.extract(info, root))
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                extracted.chmod(mode)


def _strip_single_root(staging: Path, destination: Path) -> None:
    entries = list(staging.iterdir())
    if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
        os.replace(entries[0], destination)
        staging.rmdir()
    else:
        os.replace(staging, destination)


def extract_archive(archive: Path, destination: Path, *, name: str = "") -> None:
    """Extract an archive into a new directory.

    The archive is unpacked into a staging directory next to `destination`,
    which is then renamed into place. `destination` never holds a partial
    extraction.

    Args:
        archive: Path to the archive file.
        destination: Directory to create. Must not exist.
        name: Original artifact name used to pick the format. Defaults to the
            archive file name.

    Raises:
        ExtractionError: If the archive is corrupt, uses an unknown format, or
            contains members that would land outside `destination`.
    """
    staging = destination.with_name(f"{destination.name}.unpack")
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)

    try:
        if _is_zip(archive, name or archive.name):
            _extract_zip(archive, staging)
        else:
            _extract_tar(archive, staging)
        _strip_single_root(staging, destination)
    except ExtractionError:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    except (
        tarfile.TarError,
        zipfile.BadZipFile,
        lzma.LZMAError,
        zlib.error,
        EOFError,
        OSError,
    ) as e:
        shutil.rmtree(staging, ignore_errors=True)
        msg = f"Failed to extract {archive}: {e}"
        raise ExtractionError(msg, archive=archive, cause=e) from e
