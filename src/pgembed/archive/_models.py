"""Data models for release resolution and archive installation.

This module defines the records passed between the release index, the
version resolver and the archive installer:
- ReleaseAsset: One downloadable artifact of a release
- Release: A published version and its artifacts
- ReleaseDescriptor: The artifact selected for this host
- InstallationRecord: Persisted marker of a completed installation
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    """A downloadable artifact of a release for one platform.

    Attributes:
        platform: Target triple the artifact was built for.
        name: Asset file name.
        url: Download URL.
        checksum: Published checksum (``sha256:<hex>``), if the index has one.
        checksum_url: URL of a companion checksum file, if any.
    """

    platform: str
    name: str
    url: str
    checksum: str | None = None
    checksum_url: str | None = None


@dataclass(frozen=True, slots=True)
class Release:
    """A published version and the artifacts built for it.

    Attributes:
        version: Version string as published by the index.
        assets: Artifacts of this release, one per platform.
    """

    version: str
    assets: tuple[ReleaseAsset, ...] = ()

    def asset_for(self, platform: str) -> ReleaseAsset | None:
        """Get the artifact built for a target triple, if any."""
        for asset in self.assets:
            if asset.platform == platform:
                return asset
        return None

    @property
    def platforms(self) -> tuple[str, ...]:
        """Target triples this release has artifacts for."""
        return tuple(asset.platform for asset in self.assets)


@dataclass(frozen=True, slots=True)
class ReleaseDescriptor:
    """The artifact chosen for a version and platform.

    Produced by the resolver and consumed by the installer.

    Attributes:
        version: Selected version.
        platform: Target triple of the artifact.
        url: Download URL.
        checksum: Expected checksum (``sha256:<hex>``) or None when the index
            publishes none.
        asset_name: Artifact file name, used to pick the archive format.
    """

    version: str
    platform: str
    url: str
    checksum: str | None
    asset_name: str

    @classmethod
    def from_asset(cls, version: str, asset: ReleaseAsset) -> "ReleaseDescriptor":
        """Build a descriptor from a release artifact."""
        return cls(
            version=version,
            platform=asset.platform,
            url=asset.url,
            checksum=asset.checksum,
            asset_name=asset.name,
        )


class InstallationRecord(BaseModel):
    """Marker written inside an installation directory once it is complete.

    The record is written last, so its presence means the directory holds a
    fully extracted archive.

    Attributes:
        path: Installation directory.
        version: Installed version.
        platform: Installed target triple.
        checksum: Checksum of the downloaded archive.
        installed_at: When the installation finished (UTC).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    path: Path
    version: str
    platform: str
    checksum: str
    installed_at: datetime

    @property
    def bin_dir(self) -> Path:
        """Directory holding the server executables."""
        return self.path / "bin"

    @property
    def lib_dir(self) -> Path:
        """Directory holding shared libraries."""
        return self.path / "lib"

    @property
    def extension_dir(self) -> Path:
        """Directory holding extension control and SQL files."""
        return self.path / "share" / "extension"

    def matches(self, descriptor: ReleaseDescriptor, checksum: str | None) -> bool:
        """Check whether this record satisfies a descriptor.

        Args:
            descriptor: The requested artifact.
            checksum: The descriptor's checksum in normalized form, or None
                when the index publishes none.

        Returns:
            True when version and platform match, and the checksum matches
            whenever one is known.
        """
        if self.version != descriptor.version or self.platform != descriptor.platform:
            return False
        return checksum is None or self.checksum == checksum
