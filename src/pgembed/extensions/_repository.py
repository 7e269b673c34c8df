"""Extension repositories and the vendor registry.

A repository lists the releases of the extensions one vendor publishes and
picks the artifact built for a PostgreSQL major version and platform:
- ExtensionRepository: Protocol the installer depends on
- GitHubExtensionRepository: Releases from GitHub repositories
- StaticExtensionRepository: In-memory repository for offline use and tests
- ExtensionRegistry: Maps vendor names to repositories
"""

import re
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, final, runtime_checkable

import httpx

from pgembed.archive import fetch_checksum_file, fetch_github_releases, normalize_checksum
from pgembed.exceptions import ExtensionNotFoundError

from ._models import AvailableExtension, ExtensionAsset, ExtensionRelease

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

AssetMatcher = Callable[[str, str, str], bool]
"""Predicate ``(asset_name, postgresql_version, platform) -> bool``."""

GITHUB_API_URL = "https://api.github.com"
TENSOR_CHORD = "tensor-chord"
PORTAL_CORP = "portal-corp"

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".zip")
_CHECKSUM_SUFFIX = ".sha256"


def postgresql_major(version: str) -> str:
    """Get the major version of a PostgreSQL version string."""
    return version.split(".", 1)[0]


def default_asset_matcher(asset_name: str, postgresql_version: str, platform: str) -> bool:
    """Match artifacts named after the PostgreSQL major version and platform.

    The asset name must contain ``pg<major>`` as a token, the target triple,
    and end with a known archive suffix. ``pg1`` does not match ``pg16``.

    Args:
        asset_name: Artifact file name.
        postgresql_version: Version of the target installation.
        platform: Target triple of the target installation.

    Returns:
        True when the artifact is built for the installation.
    """
    if not asset_name.lower().endswith(ARCHIVE_SUFFIXES):
        return False
    if platform not in asset_name:
        return False
    major = re.escape(postgresql_major(postgresql_version))
    return re.search(rf"(?<![0-9A-Za-z])pg{major}(?![0-9])", asset_name) is not None


@runtime_checkable
class ExtensionRepository(Protocol):
    """Protocol for sources of extension releases."""

    @property
    def name(self) -> str:
        """Vendor name the repository is registered under."""
        ...

    async def list_available(self) -> list[AvailableExtension]:
        """List the extensions this repository offers."""
        ...

    async def list_releases(self, name: str) -> list[ExtensionRelease]:
        """List the published releases of one extension.

        Raises:
            ExtensionNotFoundError: If the repository does not offer `name`.
            IndexUnavailableError: If the source cannot be reached.
        """
        ...

    def match_asset(
        self, release: ExtensionRelease, postgresql_version: str, platform: str
    ) -> ExtensionAsset | None:
        """Pick the artifact of a release built for an installation."""
        ...

    async def checksum_for(self, asset: ExtensionAsset) -> str | None:
        """Get the published checksum of an artifact, if any."""
        ...


def _match(
    matcher: AssetMatcher,
    release: ExtensionRelease,
    postgresql_version: str,
    platform: str,
) -> ExtensionAsset | None:
    for asset in release.assets:
        if matcher(asset.name, postgresql_version, platform):
            return asset
    return None


def _release_from_github(
    name: str,
    data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> ExtensionRelease | None:
    if data.get("draft"):
        return None
    version = str(data.get("tag_name", "")).removeprefix("v")
    if not version:
        return None
    raw_assets = [a for a in data.get("assets") or [] if isinstance(a, Mapping)]
    urls = {
        str(a.get("name", "")): str(a.get("browser_download_url", "")) for a in raw_assets
    }
    assets: list[ExtensionAsset] = []
    for raw in raw_assets:
        asset_name = str(raw.get("name", ""))
        if asset_name.endswith(_CHECKSUM_SUFFIX):
            continue
        digest = raw.get("digest")
        assets.append(
            ExtensionAsset(
                name=asset_name,
                url=urls[asset_name],
                checksum=normalize_checksum(digest) if isinstance(digest, str) else None,
                checksum_url=urls.get(f"{asset_name}{_CHECKSUM_SUFFIX}"),
            )
        )
    return ExtensionRelease(name=name, version=version, assets=tuple(assets))


@final
class GitHubExtensionRepository:
    """Extension repository backed by GitHub releases.

    Each extension maps to an ``owner/repo`` whose release tags are the
    extension versions.
    """

    __slots__: tuple[str, ...] = (
        "_api_url",
        "_asset_matcher",
        "_client",
        "_extensions",
        "_logger",
        "_releases",
        "_token",
        "_vendor",
    )

    _api_url: str
    _asset_matcher: AssetMatcher
    _client: httpx.AsyncClient
    _extensions: dict[str, str]
    _logger: "FilteringBoundLogger | None"
    _releases: dict[str, list[ExtensionRelease]]
    _token: str | None
    _vendor: str

    def __init__(
        self,
        vendor: str,
        extensions: Mapping[str, str],
        *,
        client: httpx.AsyncClient,
        asset_matcher: AssetMatcher = default_asset_matcher,
        api_url: str = GITHUB_API_URL,
        token: str | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the repository.

        Args:
            vendor: Vendor name.
            extensions: Extension name to ``owner/repo``.
            client: HTTP client used for all requests.
            asset_matcher: Picks the artifact for an installation.
            api_url: GitHub API base URL.
            token: Optional GitHub API token.
            logger: Optional logger.
        """
        self._vendor = vendor
        self._extensions = dict(extensions)
        self._client = client
        self._asset_matcher = asset_matcher
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._logger = logger
        self._releases = {}

    @property
    def name(self) -> str:
        """Vendor name."""
        return self._vendor

    async def list_available(self) -> list[AvailableExtension]:
        """List the configured extensions."""
        return [
            AvailableExtension(vendor=self._vendor, name=name, description=repo)
            for name, repo in sorted(self._extensions.items())
        ]

    async def list_releases(self, name: str) -> list[ExtensionRelease]:
        """List releases of an extension, fetching them once per repository.

        Raises:
            ExtensionNotFoundError: If `name` is not configured.
            IndexUnavailableError: If the API cannot be reached.
        """
        repo = self._extensions.get(name)
        if repo is None:
            msg = f"Extension {self._vendor}/{name} not found"
            raise ExtensionNotFoundError(msg, vendor=self._vendor, name=name)
        if name not in self._releases:
            url = f"{self._api_url}/repos/{repo}/releases"
            raw = await fetch_github_releases(self._client, url, token=self._token)
            releases = [
                r for r in (_release_from_github(name, item) for item in raw) if r is not None
            ]
            if self._logger:
                self._logger.debug(
                    "extension_releases_listed",
                    vendor=self._vendor,
                    extension=name,
                    count=len(releases),
                )
            self._releases[name] = releases
        return list(self._releases[name])

    def match_asset(
        self, release: ExtensionRelease, postgresql_version: str, platform: str
    ) -> ExtensionAsset | None:
        """Pick the artifact of a release built for an installation."""
        return _match(self._asset_matcher, release, postgresql_version, platform)

    async def checksum_for(self, asset: ExtensionAsset) -> str | None:
        """Get the artifact's digest, or its companion checksum file.

        Raises:
            IndexUnavailableError: If the companion file cannot be read.
        """
        if asset.checksum is not None:
            return asset.checksum
        if asset.checksum_url:
            return await fetch_checksum_file(self._client, asset.checksum_url)
        return None


@final
class StaticExtensionRepository:
    """In-memory extension repository."""

    __slots__: tuple[str, ...] = ("_asset_matcher", "_descriptions", "_releases", "_vendor")

    _asset_matcher: AssetMatcher
    _descriptions: dict[str, str]
    _releases: tuple[ExtensionRelease, ...]
    _vendor: str

    def __init__(
        self,
        vendor: str,
        releases: Iterable[ExtensionRelease],
        *,
        asset_matcher: AssetMatcher = default_asset_matcher,
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the repository with a fixed list of releases."""
        self._vendor = vendor
        self._releases = tuple(releases)
        self._asset_matcher = asset_matcher
        self._descriptions = dict(descriptions or {})

    @property
    def name(self) -> str:
        """Vendor name."""
        return self._vendor

    async def list_available(self) -> list[AvailableExtension]:
        """List every extension with at least one release."""
        names = sorted({release.name for release in self._releases})
        return [
            AvailableExtension(
                vendor=self._vendor,
                name=name,
                description=self._descriptions.get(name, ""),
            )
            for name in names
        ]

    async def list_releases(self, name: str) -> list[ExtensionRelease]:
        """List releases of an extension.

        Raises:
            ExtensionNotFoundError: If there is no release of `name`.
        """
        releases = [release for release in self._releases if release.name == name]
        if not releases:
            msg = f"Extension {self._vendor}/{name} not found"
            raise ExtensionNotFoundError(msg, vendor=self._vendor, name=name)
        return releases

    def match_asset(
        self, release: ExtensionRelease, postgresql_version: str, platform: str
    ) -> ExtensionAsset | None:
        """Pick the artifact of a release built for an installation."""
        return _match(self._asset_matcher, release, postgresql_version, platform)

    async def checksum_for(self, asset: ExtensionAsset) -> str | None:
        """Get the stored checksum."""
        return asset.checksum


@final
class ExtensionRegistry:
    """Repositories keyed by vendor name."""

    __slots__: tuple[str, ...] = ("_repositories",)

    _repositories: dict[str, ExtensionRepository]

    def __init__(self, repositories: Iterable[ExtensionRepository] = ()) -> None:
        """Initialize the registry with repositories."""
        self._repositories = {}
        for repository in repositories:
            self.register(repository)

    def register(self, repository: ExtensionRepository) -> None:
        """Add a repository, replacing any registered under the same vendor."""
        self._repositories[repository.name] = repository

    @property
    def vendors(self) -> list[str]:
        """Registered vendor names, sorted."""
        return sorted(self._repositories)

    def get(self, vendor: str) -> ExtensionRepository:
        """Get the repository of a vendor.

        Raises:
            ExtensionNotFoundError: If the vendor is not registered.
        """
        repository = self._repositories.get(vendor)
        if repository is None:
            msg = f"Extension vendor {vendor!r} is not registered"
            raise ExtensionNotFoundError(msg, vendor=vendor, name="")
        return repository

    async def list_available(self) -> list[AvailableExtension]:
        """List the extensions of every registered vendor."""
        available: list[AvailableExtension] = []
        for vendor in self.vendors:
            available.extend(await self._repositories[vendor].list_available())
        return available


def default_registry(
    client: httpx.AsyncClient,
    *,
    token: str | None = None,
    logger: "FilteringBoundLogger | None" = None,
) -> ExtensionRegistry:
    """Create a registry with the built-in vendors.

    Args:
        client: HTTP client shared by the repositories.
        token: Optional GitHub API token.
        logger: Optional logger.

    Returns:
        Registry holding the ``tensor-chord`` and ``portal-corp`` vendors.
    """
    return ExtensionRegistry(
        [
            GitHubExtensionRepository(
                TENSOR_CHORD,
                {"pgvecto.rs": "tensorchord/pgvecto.rs"},
                client=client,
                token=token,
                logger=logger,
            ),
            GitHubExtensionRepository(
                PORTAL_CORP,
                {"pgvector_compiled": "portalcorp/pgvector_compiled"},
                client=client,
                token=token,
                logger=logger,
            ),
        ]
    )
