"""Data models for extension resolution and installation.

- ExtensionAsset: One downloadable artifact of an extension release
- ExtensionRelease: A published extension version and its artifacts
- AvailableExtension: An extension a registry can install
- InstalledExtension: Manifest entry of an installed extension
- ExtensionManifest: Persisted list of installed extensions
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class ExtensionAsset:
    """A downloadable artifact of an extension release.

    Attributes:
        name: Asset file name.
        url: Download URL.
        checksum: Published checksum (``sha256:<hex>``), if any.
        checksum_url: URL of a companion checksum file, if any.
    """

    name: str
    url: str
    checksum: str | None = None
    checksum_url: str | None = None


@dataclass(frozen=True, slots=True)
class ExtensionRelease:
    """A published version of an extension.

    Attributes:
        name: Extension name.
        version: Version string with any ``v`` prefix removed.
        assets: Artifacts of this release.
    """

    name: str
    version: str
    assets: tuple[ExtensionAsset, ...] = ()


@dataclass(frozen=True, slots=True)
class AvailableExtension:
    """An extension offered by a registry.

    Attributes:
        vendor: Registry namespace.
        name: Extension name.
        description: Short description, usually the source repository.
    """

    vendor: str
    name: str
    description: str = ""


class InstalledExtension(BaseModel):
    """An installed extension and the files it placed.

    Attributes:
        vendor: Registry namespace.
        name: Extension name.
        version: Installed version.
        checksum: Checksum of the downloaded archive.
        files: Installed files, relative to the installation directory.
        installed_at: When the installation finished (UTC).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    vendor: str
    name: str
    version: str
    checksum: str
    files: tuple[Path, ...] = ()
    installed_at: datetime

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the extension within an installation."""
        return (self.vendor, self.name)


class ExtensionManifest(BaseModel):
    """The set of extensions installed into one PostgreSQL installation."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    extensions: list[InstalledExtension] = Field(default_factory=list)

    def get(self, vendor: str, name: str) -> InstalledExtension | None:
        """Get the entry for an extension, if installed."""
        for extension in self.extensions:
            if extension.key == (vendor, name):
                return extension
        return None

    def put(self, extension: InstalledExtension) -> None:
        """Add or replace the entry for an extension."""
        self.remove(extension.vendor, extension.name)
        self.extensions.append(extension)
        self.extensions.sort(key=lambda e: e.key)

    def remove(self, vendor: str, name: str) -> InstalledExtension | None:
        """Remove the entry for an extension.

        Returns:
            The removed entry, or None if the extension was not installed.
        """
        existing = self.get(vendor, name)
        if existing is not None:
            self.extensions.remove(existing)
        return existing
