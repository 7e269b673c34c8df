"""PostgreSQL release resolution and archive installation.

This package resolves a version constraint against a release index and
installs the matching artifact into a shared, content-addressed cache:

    <installation_root>/<version>/<platform>/{bin,lib,share}

Example:
    >>> async with httpx.AsyncClient() as client:
    ...     resolver = VersionResolver(GitHubReleaseIndex(client=client))
    ...     descriptor = await resolver.resolve(">=16,<17")
    ...     installer = ArchiveInstaller(client)
    ...     record = await installer.install(
    ...         descriptor, installation_dir(settings, descriptor)
    ...     )
"""

from ._download import (
    download_artifact,
    normalize_checksum,
    parse_checksum,
    verify_checksum,
)
from ._extract import extract_archive
from ._index import (
    ASSET_PATTERN,
    GitHubReleaseIndex,
    ReleaseIndex,
    StaticReleaseIndex,
    fetch_checksum_file,
    fetch_github_releases,
    github_headers,
)
from ._installer import (
    RECORD_FILE_NAME,
    ArchiveInstaller,
    find_installation,
    installation_dir,
    read_installation_record,
    write_installation_record,
)
from ._lock import DirectoryLock, lock_path_for
from ._models import InstallationRecord, Release, ReleaseAsset, ReleaseDescriptor
from ._platform import detect_platform
from ._resolver import (
    VersionResolver,
    is_exact_constraint,
    parse_constraint,
    select_version,
)

__all__ = [
    "ASSET_PATTERN",
    "RECORD_FILE_NAME",
    "ArchiveInstaller",
    "DirectoryLock",
    "GitHubReleaseIndex",
    "InstallationRecord",
    "Release",
    "ReleaseAsset",
    "ReleaseDescriptor",
    "ReleaseIndex",
    "StaticReleaseIndex",
    "VersionResolver",
    "detect_platform",
    "download_artifact",
    "extract_archive",
    "find_installation",
    "fetch_checksum_file",
    "fetch_github_releases",
    "github_headers",
    "installation_dir",
    "is_exact_constraint",
    "lock_path_for",
    "normalize_checksum",
    "parse_checksum",
    "parse_constraint",
    "read_installation_record",
    "select_version",
    "verify_checksum",
    "write_installation_record",
]
