"""Extension installer.

Extensions are staged like PostgreSQL itself, through ArchiveInstaller, into

    <installation_root>/.extensions/<vendor>/<name>/<version>/pg<major>-<platform>

and then copied into a PostgreSQL installation: shared libraries into
``lib/`` and control and SQL files into ``share/extension/``. The files each
extension placed are recorded in ``pgembed-extensions.json`` inside the
installation so they can be removed again.

A running server does not load new libraries until it is restarted.
"""

import contextlib
import os
import shutil
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio.to_thread
import httpx
import pendulum
from pydantic import ValidationError

from pgembed.archive import (
    RECORD_FILE_NAME,
    ArchiveInstaller,
    DirectoryLock,
    InstallationRecord,
    ReleaseDescriptor,
    find_installation,
    read_installation_record,
    select_version,
)
from pgembed.archive._installer import DEFAULT_TIMEOUT
from pgembed.exceptions import ExtensionError, ExtensionNotFoundError, InstallationIOError
from pgembed.utils import atomic_copy_file, load_json_file, logger_from_settings, write_json_file

from ._models import (
    AvailableExtension,
    ExtensionManifest,
    ExtensionRelease,
    InstalledExtension,
)
from ._repository import ExtensionRegistry, default_registry, postgresql_major

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from pgembed.settings import Settings

MANIFEST_FILE_NAME = "pgembed-extensions.json"
LIBRARY_SUFFIXES = (".so", ".dylib", ".dll")
SHARE_SUFFIXES = (".control", ".sql")
EXTENSIONS_DIR_NAME = ".extensions"


def extension_staging_dir(
    settings: "Settings",
    vendor: str,
    name: str,
    version: str,
    installation: InstallationRecord,
) -> Path:
    """Get the staging directory of an extension build."""
    return (
        settings.installation_root
        / EXTENSIONS_DIR_NAME
        / vendor
        / name
        / version
        / f"pg{postgresql_major(installation.version)}-{installation.platform}"
    )


def read_manifest(installation_dir: Path) -> ExtensionManifest:
    """Read the extension manifest of an installation.

    A missing or unreadable manifest reads as empty.
    """
    data = load_json_file(installation_dir / MANIFEST_FILE_NAME)
    if data is None:
        return ExtensionManifest()
    try:
        return ExtensionManifest.model_validate(data)
    except ValidationError:
        return ExtensionManifest()


def write_manifest(installation_dir: Path, manifest: ExtensionManifest) -> None:
    """Atomically write the extension manifest of an installation."""
    write_json_file(installation_dir / MANIFEST_FILE_NAME, manifest.model_dump(mode="json"))


def placement_for(file_name: str) -> Path | None:
    """Get where a staged file goes, relative to the installation directory.

    Returns:
        ``lib/<file>`` for shared libraries, ``share/extension/<file>`` for
        control and SQL files, or None for anything else.
    """
    lowered = file_name.lower()
    if lowered.endswith(LIBRARY_SUFFIXES):
        return Path("lib") / file_name
    if lowered.endswith(SHARE_SUFFIXES):
        return Path("share") / "extension" / file_name
    return None


def collect_files(staged: Path) -> dict[Path, Path]:
    """Map installation-relative destinations to staged source files."""
    files: dict[Path, Path] = {}
    for source in sorted(staged.rglob("*")):
        if not source.is_file() or source.name == RECORD_FILE_NAME:
            continue
        destination = placement_for(source.name)
        if destination is not None:
            files[destination] = source
    return files


def _rollback(placed: list[Path], backups: dict[Path, Path]) -> None:
    for destination in reversed(placed):
        with contextlib.suppress(OSError):
            backup = backups.pop(destination, None)
            if backup is None:
                destination.unlink(missing_ok=True)
            else:
                os.replace(backup, destination)
    for backup in backups.values():
        with contextlib.suppress(OSError):
            backup.unlink(missing_ok=True)


def _place_files(
    installation_dir: Path,
    files: dict[Path, Path],
    previous: InstalledExtension | None,
    commit: Callable[[], None],
) -> None:
    """Copy staged files into an installation, all or nothing.

    Files that would be overwritten are backed up first. If a copy or
    `commit` fails, the files placed so far are removed and the backups
    restored, so the installation matches its manifest again.
    """
    placed: list[Path] = []
    backups: dict[Path, Path] = {}
    try:
        for relative, source in files.items():
            destination = installation_dir / relative
            if destination.is_file():
                backup = destination.with_name(f".{destination.name}.pgembed-backup")
                _ = shutil.copy2(destination, backup)
                backups[destination] = backup
            atomic_copy_file(source, destination)
            placed.append(destination)
        commit()
    except BaseException:
        _rollback(placed, backups)
        raise
    for backup in backups.values():
        backup.unlink(missing_ok=True)
    if previous is not None:
        for relative in previous.files:
            if relative not in files:
                (installation_dir / relative).unlink(missing_ok=True)


def _remove_files(installation_dir: Path, extension: InstalledExtension) -> None:
    for relative in extension.files:
        (installation_dir / relative).unlink(missing_ok=True)


def _require_installation(installation_dir: Path) -> InstallationRecord:
    record = read_installation_record(installation_dir)
    if record is None:
        msg = f"No PostgreSQL installation at {installation_dir}"
        raise ExtensionError(msg)
    return record


@final
class ExtensionInstaller:
    """Installs extensions from a registry into PostgreSQL installations."""

    __slots__: tuple[str, ...] = (
        "_archive_installer",
        "_lock_timeout",
        "_logger",
        "_poll_interval",
        "_registry",
    )

    _archive_installer: ArchiveInstaller
    _lock_timeout: float
    _logger: "FilteringBoundLogger | None"
    _poll_interval: float
    _registry: ExtensionRegistry

    def __init__(
        self,
        registry: ExtensionRegistry,
        archive_installer: ArchiveInstaller | None = None,
        *,
        lock_timeout: float = 300.0,
        poll_interval: float = 0.1,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the installer.

        Args:
            registry: Where extensions are resolved.
            archive_installer: Stages downloaded archives. One with its own
                HTTP client is created when None.
            lock_timeout: Seconds to wait for the installation lock.
            poll_interval: Seconds between lock attempts.
            logger: Optional logger.
        """
        self._registry = registry
        self._archive_installer = archive_installer or ArchiveInstaller(
            lock_timeout=lock_timeout, poll_interval=poll_interval, logger=logger
        )
        self._lock_timeout = lock_timeout
        self._poll_interval = poll_interval
        self._logger = logger

    @property
    def registry(self) -> ExtensionRegistry:
        """The registry extensions are resolved from."""
        return self._registry

    async def resolve(
        self,
        vendor: str,
        name: str,
        constraint: str,
        installation: InstallationRecord,
    ) -> tuple[ExtensionRelease, ReleaseDescriptor]:
        """Resolve an extension to the artifact built for an installation.

        Args:
            vendor: Registry vendor.
            name: Extension name.
            constraint: Version constraint.
            installation: Target PostgreSQL installation.

        Returns:
            The selected release and a descriptor for its artifact.

        Raises:
            ExtensionNotFoundError: If the vendor, extension, a satisfying
                version, or a matching artifact does not exist.
            VersionNotFoundError: If the constraint is not valid syntax.
        """
        repository = self._registry.get(vendor)
        releases = await repository.list_releases(name)
        by_version = {release.version: release for release in releases}
        selected = select_version(by_version, constraint)
        if selected is None:
            msg = f"No release of {vendor}/{name} satisfies {constraint!r}"
            raise ExtensionNotFoundError(msg, vendor=vendor, name=name, constraint=constraint)
        release = by_version[selected]

        asset = repository.match_asset(release, installation.version, installation.platform)
        if asset is None:
            msg = (
                f"{vendor}/{name} {release.version} has no artifact for "
                f"PostgreSQL {postgresql_major(installation.version)} on "
                f"{installation.platform}"
            )
            raise ExtensionNotFoundError(msg, vendor=vendor, name=name, constraint=constraint)

        descriptor = ReleaseDescriptor(
            version=release.version,
            platform=f"pg{postgresql_major(installation.version)}-{installation.platform}",
            url=asset.url,
            checksum=await repository.checksum_for(asset),
            asset_name=asset.name,
        )
        if self._logger:
            self._logger.info(
                "extension_resolved",
                vendor=vendor,
                extension=name,
                version=release.version,
                asset=asset.name,
            )
        return release, descriptor

    async def install(
        self,
        settings: "Settings",
        vendor: str,
        name: str,
        constraint: str,
        installation_dir: Path,
    ) -> InstalledExtension:
        """Install an extension into a PostgreSQL installation.

        Reinstalling replaces the files of the previously installed version.

        Args:
            settings: Settings providing the installation root.
            vendor: Registry vendor.
            name: Extension name.
            constraint: Version constraint.
            installation_dir: Target PostgreSQL installation directory.

        Returns:
            The manifest entry of the installed extension.

        Raises:
            ExtensionError: If `installation_dir` is not an installation.
            ExtensionNotFoundError: If the extension cannot be resolved.
            ChecksumMismatchError: If the artifact fails verification.
            LockTimeoutError: If the installation stays locked too long.
            InstallationIOError: If files cannot be written.
        """
        installation = _require_installation(installation_dir)
        release, descriptor = await self.resolve(vendor, name, constraint, installation)
        staged = await self._archive_installer.install(
            descriptor,
            extension_staging_dir(settings, vendor, name, release.version, installation),
        )
        files = await anyio.to_thread.run_sync(collect_files, staged.path)
        if not files:
            msg = f"{vendor}/{name} {release.version} contains no extension files"
            raise ExtensionNotFoundError(msg, vendor=vendor, name=name, constraint=constraint)

        async with self._lock(installation_dir):
            manifest = read_manifest(installation_dir)
            extension = InstalledExtension(
                vendor=vendor,
                name=name,
                version=release.version,
                checksum=staged.checksum,
                files=tuple(sorted(files)),
                installed_at=pendulum.now("UTC"),
            )
            previous = manifest.get(vendor, name)
            manifest.put(extension)
            try:
                await anyio.to_thread.run_sync(
                    _place_files,
                    installation_dir,
                    files,
                    previous,
                    lambda: write_manifest(installation_dir, manifest),
                )
            except OSError as e:
                msg = f"Cannot install {vendor}/{name} into {installation_dir}: {e}"
                raise InstallationIOError(msg, path=installation_dir, cause=e) from e

        if self._logger:
            self._logger.info(
                "extension_installed",
                vendor=vendor,
                extension=name,
                version=extension.version,
                files=len(extension.files),
            )
        return extension

    async def uninstall(
        self, installation_dir: Path, vendor: str, name: str
    ) -> InstalledExtension | None:
        """Remove an extension's files from an installation.

        Returns:
            The removed manifest entry, or None if it was not installed.

        Raises:
            LockTimeoutError: If the installation stays locked too long.
            InstallationIOError: If files cannot be removed.
        """
        async with self._lock(installation_dir):
            manifest = read_manifest(installation_dir)
            removed = manifest.remove(vendor, name)
            if removed is None:
                return None
            try:
                await anyio.to_thread.run_sync(_remove_files, installation_dir, removed)
                await anyio.to_thread.run_sync(write_manifest, installation_dir, manifest)
            except OSError as e:
                msg = f"Cannot uninstall {vendor}/{name} from {installation_dir}: {e}"
                raise InstallationIOError(msg, path=installation_dir, cause=e) from e

        if self._logger:
            self._logger.info("extension_uninstalled", vendor=vendor, extension=name)
        return removed

    def get_installed(self, installation_dir: Path) -> list[InstalledExtension]:
        """List the extensions installed into an installation."""
        return list(read_manifest(installation_dir).extensions)

    async def get_available(self) -> list[AvailableExtension]:
        """List the extensions the registry offers."""
        return await self._registry.list_available()

    def _lock(self, installation_dir: Path) -> DirectoryLock:
        return DirectoryLock(
            installation_dir,
            timeout=self._lock_timeout,
            poll_interval=self._poll_interval,
            logger=self._logger,
        )


def _installation_dir(settings: "Settings", installation_dir: Path | None) -> Path:
    if installation_dir is not None:
        return installation_dir
    record = find_installation(settings)
    if record is None:
        msg = f"PostgreSQL {settings.version!r} is not installed under {settings.installation_root}"
        raise ExtensionError(msg)
    return record.path


@contextlib.asynccontextmanager
async def _installer_for(
    settings: "Settings",
    registry: ExtensionRegistry | None,
    client: httpx.AsyncClient | None,
    logger: "FilteringBoundLogger | None",
) -> AsyncIterator[ExtensionInstaller]:
    logger = logger or logger_from_settings(settings.logging, component="extensions")
    async with contextlib.AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(
                httpx.AsyncClient(follow_redirects=True, timeout=DEFAULT_TIMEOUT)
            )
        yield ExtensionInstaller(
            registry
            or default_registry(client, token=os.environ.get("GITHUB_TOKEN"), logger=logger),
            ArchiveInstaller(client, lock_timeout=settings.lock_timeout, logger=logger),
            lock_timeout=settings.lock_timeout,
            logger=logger,
        )


async def install(
    settings: "Settings",
    vendor: str,
    name: str,
    version_constraint: str,
    *,
    installation_dir: Path | None = None,
    registry: ExtensionRegistry | None = None,
    client: httpx.AsyncClient | None = None,
    logger: "FilteringBoundLogger | None" = None,
) -> InstalledExtension:
    """Install an extension into the installation the settings select.

    Args:
        settings: Settings whose version constraint selects an already
            installed PostgreSQL, unless `installation_dir` is given.
        vendor: Registry vendor, e.g. ``tensor-chord``.
        name: Extension name, e.g. ``pgvecto.rs``.
        version_constraint: Extension version constraint.
        installation_dir: Explicit target installation directory.
        registry: Registry to resolve from. Defaults to the built-in vendors.
        client: HTTP client. One is created for the call when None.
        logger: Optional logger.

    Returns:
        The manifest entry of the installed extension.
    """
    target = _installation_dir(settings, installation_dir)
    async with _installer_for(settings, registry, client, logger) as installer:
        return await installer.install(settings, vendor, name, version_constraint, target)


async def uninstall(
    settings: "Settings",
    vendor: str,
    name: str,
    *,
    installation_dir: Path | None = None,
) -> InstalledExtension | None:
    """Remove an extension from the installation the settings select."""
    target = _installation_dir(settings, installation_dir)
    installer = ExtensionInstaller(
        ExtensionRegistry(),
        lock_timeout=settings.lock_timeout,
        logger=logger_from_settings(settings.logging, component="extensions"),
    )
    return await installer.uninstall(target, vendor, name)


def get_installed_extensions(
    settings: "Settings", *, installation_dir: Path | None = None
) -> list[InstalledExtension]:
    """List the extensions installed into the installation the settings select."""
    return list(read_manifest(_installation_dir(settings, installation_dir)).extensions)


async def get_available_extensions(
    settings: "Settings",
    *,
    registry: ExtensionRegistry | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[AvailableExtension]:
    """List the extensions a registry offers."""
    async with _installer_for(settings, registry, client, None) as installer:
        return await installer.get_available()
