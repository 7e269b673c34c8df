"""Archive installer.

Downloads a release artifact, verifies it, extracts it into a temporary
sibling of the target directory and renames it into place. A record file is
written last, so a directory without one never counts as installed.
"""

import contextlib
import os
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio
import anyio.to_thread
import httpx
import pendulum
from pydantic import ValidationError

from pgembed.exceptions import InstallationIOError
from pgembed.utils import load_json_file, remove_tree, write_json_file

from ._download import (
    DEFAULT_ALGORITHM,
    download_artifact,
    normalize_checksum,
    parse_checksum,
    verify_checksum,
)
from ._extract import extract_archive
from ._lock import DirectoryLock
from ._models import InstallationRecord, ReleaseDescriptor
from ._platform import detect_platform
from ._resolver import select_version

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from pgembed.settings import Settings

RECORD_FILE_NAME = ".pgembed-installation.json"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=300.0)


def installation_dir(settings: "Settings", descriptor: ReleaseDescriptor) -> Path:
    """Get the content-addressed directory for an artifact.

    Returns:
        ``<installation_root>/<version>/<platform>``.
    """
    return settings.installation_root / descriptor.version / descriptor.platform


def read_installation_record(target_dir: Path) -> InstallationRecord | None:
    """Read the installation record of a directory.

    Returns:
        The record, or None if it is missing or unreadable.
    """
    data = load_json_file(target_dir / RECORD_FILE_NAME)
    if data is None:
        return None
    try:
        return InstallationRecord.model_validate(data)
    except ValidationError:
        return None


def find_installation(
    settings: "Settings", platform: str | None = None
) -> InstallationRecord | None:
    """Find the greatest completed installation that satisfies the settings.

    Only the local cache is consulted; nothing is downloaded.

    Args:
        settings: Settings whose version constraint and installation root
            are used.
        platform: Target triple. Detected from the host when None.

    Returns:
        The record of the selected installation, or None.
    """
    root = settings.installation_root
    if not root.is_dir():
        return None
    platform = platform or detect_platform()
    versions = [
        entry.name
        for entry in root.iterdir()
        if (entry / platform / RECORD_FILE_NAME).is_file()
    ]
    selected = select_version(versions, settings.version)
    if selected is None:
        return None
    return read_installation_record(root / selected / platform)


def write_installation_record(record: InstallationRecord) -> None:
    """Atomically write an installation record into its directory."""
    write_json_file(record.path / RECORD_FILE_NAME, record.model_dump(mode="json"))


def _swap_into_place(staging: Path, target_dir: Path) -> None:
    aside: Path | None = None
    if target_dir.exists() or target_dir.is_symlink():
        aside = target_dir.with_name(f".{target_dir.name}.{uuid.uuid4().hex[:8]}.old")
        os.replace(target_dir, aside)
    os.replace(staging, target_dir)
    if aside is not None:
        remove_tree(aside)


@final
class ArchiveInstaller:
    """Installs release artifacts into content-addressed directories.

    Installation is idempotent: a directory whose record matches the
    descriptor is returned without touching the network. Concurrent installs
    into the same directory, from any process, are serialized by a
    DirectoryLock; later callers observe the first caller's result.
    """

    __slots__: tuple[str, ...] = (
        "_client",
        "_lock_timeout",
        "_logger",
        "_poll_interval",
    )

    _client: httpx.AsyncClient | None
    _lock_timeout: float
    _logger: "FilteringBoundLogger | None"
    _poll_interval: float

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        lock_timeout: float = 300.0,
        poll_interval: float = 0.1,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the installer.

        Args:
            client: HTTP client for downloads. A client is created per install
                when None.
            lock_timeout: Seconds to wait for another process's install.
            poll_interval: Seconds between lock attempts.
            logger: Optional logger.
        """
        self._client = client
        self._lock_timeout = lock_timeout
        self._poll_interval = poll_interval
        self._logger = logger

    @contextlib.asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=DEFAULT_TIMEOUT
        ) as client:
            yield client

    def cached(
        self, descriptor: ReleaseDescriptor, target_dir: Path
    ) -> InstallationRecord | None:
        """Get the record of a matching completed installation, if any."""
        record = read_installation_record(target_dir)
        if record is None:
            return None
        if not record.matches(descriptor, normalize_checksum(descriptor.checksum)):
            return None
        return record

    async def install(
        self, descriptor: ReleaseDescriptor, target_dir: Path
    ) -> InstallationRecord:
        """Install an artifact into a directory.

        Args:
            descriptor: The artifact to install.
            target_dir: Installation directory.

        Returns:
            The record of the (possibly pre-existing) installation.

        Raises:
            LockTimeoutError: If another process holds the lock too long.
            DownloadError: If the artifact cannot be downloaded.
            ChecksumMismatchError: If the artifact fails verification.
            ExtractionError: If the artifact cannot be extracted.
            InstallationIOError: If the directory cannot be written.
        """
        record = self.cached(descriptor, target_dir)
        if record is not None:
            if self._logger:
                self._logger.debug("installation_cached", path=str(target_dir))
            return record

        lock = DirectoryLock(
            target_dir,
            timeout=self._lock_timeout,
            poll_interval=self._poll_interval,
            logger=self._logger,
        )
        async with lock:
            record = self.cached(descriptor, target_dir)
            if record is not None:
                if self._logger:
                    self._logger.info("installation_completed_elsewhere", path=str(target_dir))
                return record
            return await self._install_locked(descriptor, target_dir)

    async def _install_locked(
        self, descriptor: ReleaseDescriptor, target_dir: Path
    ) -> InstallationRecord:
        token = uuid.uuid4().hex[:8]
        archive_path = target_dir.with_name(f".{target_dir.name}.{token}.download")
        staging = target_dir.with_name(f".{target_dir.name}.{token}.tmp")
        algorithm = (
            parse_checksum(descriptor.checksum)[0]
            if descriptor.checksum
            else DEFAULT_ALGORITHM
        )

        if self._logger:
            self._logger.info(
                "installation_started",
                version=descriptor.version,
                platform=descriptor.platform,
                path=str(target_dir),
            )

        try:
            target_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create installation root {target_dir.parent}: {e}"
            raise InstallationIOError(msg, path=target_dir.parent, cause=e) from e

        try:
            async with self._http_client() as client:
                actual = await download_artifact(
                    client,
                    descriptor.url,
                    archive_path,
                    algorithm=algorithm,
                    logger=self._logger,
                )
            verify_checksum(descriptor.checksum, actual)
            await anyio.to_thread.run_sync(
                lambda: extract_archive(
                    archive_path, staging, name=descriptor.asset_name
                )
            )
            try:
                await anyio.to_thread.run_sync(_swap_into_place, staging, target_dir)
                record = InstallationRecord(
                    path=target_dir,
                    version=descriptor.version,
                    platform=descriptor.platform,
                    checksum=actual,
                    installed_at=pendulum.now("UTC"),
                )
                await anyio.to_thread.run_sync(write_installation_record, record)
            except OSError as e:
                msg = f"Cannot move installation into {target_dir}: {e}"
                raise InstallationIOError(msg, path=target_dir, cause=e) from e
        finally:
            with anyio.CancelScope(shield=True):
                await anyio.to_thread.run_sync(remove_tree, archive_path)
                await anyio.to_thread.run_sync(remove_tree, staging)

        if self._logger:
            self._logger.info(
                "installation_finished",
                version=record.version,
                platform=record.platform,
                path=str(target_dir),
            )
        return record
