"""PostgreSQL extension installation.

Extensions are resolved from a registry of vendors and copied into an
existing PostgreSQL installation:

- ExtensionRegistry / default_registry: Vendor name to repository
- GitHubExtensionRepository / StaticExtensionRepository: Release sources
- ExtensionInstaller: Stages, places, and records extension files
- install / uninstall / get_installed_extensions / get_available_extensions:
  Convenience functions driven by Settings

Example:
    >>> await install(settings, "tensor-chord", "pgvecto.rs", "=0.3.0")
"""

from ._installer import (
    LIBRARY_SUFFIXES,
    MANIFEST_FILE_NAME,
    SHARE_SUFFIXES,
    ExtensionInstaller,
    collect_files,
    extension_staging_dir,
    get_available_extensions,
    get_installed_extensions,
    install,
    placement_for,
    read_manifest,
    uninstall,
    write_manifest,
)
from ._models import (
    AvailableExtension,
    ExtensionAsset,
    ExtensionManifest,
    ExtensionRelease,
    InstalledExtension,
)
from ._repository import (
    PORTAL_CORP,
    TENSOR_CHORD,
    AssetMatcher,
    ExtensionRegistry,
    ExtensionRepository,
    GitHubExtensionRepository,
    StaticExtensionRepository,
    default_asset_matcher,
    default_registry,
    postgresql_major,
)

__all__ = [
    "LIBRARY_SUFFIXES",
    "MANIFEST_FILE_NAME",
    "PORTAL_CORP",
    "SHARE_SUFFIXES",
    "TENSOR_CHORD",
    "AssetMatcher",
    "AvailableExtension",
    "ExtensionAsset",
    "ExtensionInstaller",
    "ExtensionManifest",
    "ExtensionRegistry",
    "ExtensionRelease",
    "ExtensionRepository",
    "GitHubExtensionRepository",
    "InstalledExtension",
    "StaticExtensionRepository",
    "collect_files",
    "default_asset_matcher",
    "default_registry",
    "extension_staging_dir",
    "get_available_extensions",
    "get_installed_extensions",
    "install",
    "placement_for",
    "postgresql_major",
    "read_manifest",
    "uninstall",
    "write_manifest",
]
