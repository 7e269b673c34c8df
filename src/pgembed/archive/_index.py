"""Release index implementations.

A release index lists published PostgreSQL versions and the artifacts built
for each platform:
- ReleaseIndex: Protocol the resolver depends on
- GitHubReleaseIndex: Reads releases from the GitHub releases API
- StaticReleaseIndex: In-memory index, optionally loaded from a TOML file
"""

import re
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, final, runtime_checkable

import httpx

from pgembed.exceptions import IndexUnavailableError
from pgembed.settings import DEFAULT_RELEASES_URL

from ._download import normalize_checksum
from ._models import Release, ReleaseAsset, ReleaseDescriptor

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

ASSET_PATTERN = re.compile(
    r"^postgresql-(?P<version>[0-9][^-]*)-(?P<platform>.+)\.tar\.gz$"
)
_CHECKSUM_SUFFIX = ".sha256"
_PER_PAGE = 100


@runtime_checkable
class ReleaseIndex(Protocol):
    """Protocol for sources of published releases."""

    async def list_releases(self) -> list[Release]:
        """List every published release."""
        ...

    async def describe(self, release: Release, asset: ReleaseAsset) -> ReleaseDescriptor:
        """Build the descriptor for one artifact, filling in its checksum.

        Args:
            release: The selected release.
            asset: The artifact selected for the host platform.

        Returns:
            Descriptor with the checksum the index publishes, if any.
        """
        ...


def github_headers(token: str | None = None) -> dict[str, str]:
    """Build request headers for the GitHub REST API."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def fetch_github_releases(
    client: httpx.AsyncClient,
    url: str,
    *,
    token: str | None = None,
) -> list[dict[str, Any]]:  # pyright: ignore[reportExplicitAny]
    """Fetch all releases from a GitHub releases endpoint.

    Follows ``Link: rel="next"`` headers until the last page.

    Args:
        client: HTTP client used for the requests.
        url: Releases endpoint.
        token: Optional API token.

    Returns:
        Release objects as decoded from the API.

    Raises:
        IndexUnavailableError: On transport failure, an error status, or a
            response that is not a JSON list.
    """
    releases: list[dict[str, Any]] = []  # pyright: ignore[reportExplicitAny]
    next_url: str | None = url
    params: dict[str, int] | None = {"per_page": _PER_PAGE}
    while next_url:
        try:
            response = await client.get(
                next_url,
                params=params,
                headers=github_headers(token),
                follow_redirects=True,
            )
            _ = response.raise_for_status()
            page: object = response.json()
        except (httpx.HTTPError, ValueError) as e:
            msg = f"Release index unavailable: {next_url}: {e}"
            raise IndexUnavailableError(msg, url=next_url, cause=e) from e
        if not isinstance(page, list):
            msg = f"Unexpected release index response from {next_url}"
            raise IndexUnavailableError(msg, url=next_url)
        releases.extend(item for item in page if isinstance(item, dict))  # pyright: ignore[reportUnknownVariableType]
        next_url = response.links.get("next", {}).get("url")
        params = None
    return releases


async def fetch_checksum_file(client: httpx.AsyncClient, url: str) -> str:
    """Download a companion checksum file.

    The file holds a hex digest, optionally followed by a file name, in the
    format written by ``sha256sum``.

    Args:
        client: HTTP client used for the request.
        url: Checksum file URL.

    Returns:
        The checksum as ``sha256:<hex>``.

    Raises:
        IndexUnavailableError: If the file cannot be fetched or is empty.
    """
    try:
        response = await client.get(url, follow_redirects=True)
        _ = response.raise_for_status()
    except httpx.HTTPError as e:
        msg = f"Checksum file unavailable: {url}: {e}"
        raise IndexUnavailableError(msg, url=url, cause=e) from e
    fields = response.text.split()
    if not fields:
        msg = f"Checksum file is empty: {url}"
        raise IndexUnavailableError(msg, url=url)
    return f"sha256:{fields[0].lower()}"


def _release_from_github(
    data: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> Release | None:
    raw_assets = data.get("assets") or []
    by_name: dict[str, Mapping[str, Any]] = {  # pyright: ignore[reportExplicitAny]
        str(a.get("name", "")): a for a in raw_assets if isinstance(a, Mapping)
    }
    version: str | None = None
    assets: list[ReleaseAsset] = []
    for name, raw in sorted(by_name.items()):
        match = ASSET_PATTERN.match(name)
        if match is None:
            continue
        version = match["version"]
        companion = by_name.get(f"{name}{_CHECKSUM_SUFFIX}")
        digest = raw.get("digest")
        assets.append(
            ReleaseAsset(
                platform=match["platform"],
                name=name,
                url=str(raw.get("browser_download_url", "")),
                checksum=normalize_checksum(digest) if isinstance(digest, str) else None,
                checksum_url=(
                    str(companion.get("browser_download_url"))
                    if companion is not None
                    else None
                ),
            )
        )
    if version is None:
        tag = str(data.get("tag_name", "")).removeprefix("v")
        if not tag:
            return None
        version = tag
    return Release(version=version, assets=tuple(assets))


@final
class GitHubReleaseIndex:
    """Release index backed by the GitHub releases API.

    Assets are named ``postgresql-<version>-<platform>.tar.gz``. A checksum
    comes from the asset's ``digest`` field when GitHub reports one, else from
    the companion ``<asset>.sha256`` file.
    """

    __slots__: tuple[str, ...] = ("_client", "_logger", "_releases", "_token", "_url")

    _client: httpx.AsyncClient
    _logger: "FilteringBoundLogger | None"
    _releases: list[Release] | None
    _token: str | None
    _url: str

    def __init__(
        self,
        url: str = DEFAULT_RELEASES_URL,
        *,
        client: httpx.AsyncClient,
        token: str | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the index.

        Args:
            url: GitHub releases API endpoint.
            client: HTTP client used for all requests.
            token: Optional GitHub API token.
            logger: Optional logger.
        """
        self._url = url
        self._client = client
        self._token = token
        self._logger = logger
        self._releases = None

    @property
    def url(self) -> str:
        """The releases endpoint."""
        return self._url

    async def list_releases(self) -> list[Release]:
        """List releases, fetching them once per index instance.

        Raises:
            IndexUnavailableError: If the API cannot be reached.
        """
        if self._releases is None:
            raw = await fetch_github_releases(self._client, self._url, token=self._token)
            releases = [r for r in map(_release_from_github, raw) if r is not None]
            if self._logger:
                self._logger.debug("releases_listed", url=self._url, count=len(releases))
            self._releases = releases
        return list(self._releases)

    async def describe(self, release: Release, asset: ReleaseAsset) -> ReleaseDescriptor:
        """Build the descriptor, fetching the companion checksum if needed.

        Raises:
            IndexUnavailableError: If the companion checksum file cannot be read.
        """
        descriptor = ReleaseDescriptor.from_asset(release.version, asset)
        if descriptor.checksum is None and asset.checksum_url:
            checksum = await fetch_checksum_file(self._client, asset.checksum_url)
            descriptor = ReleaseDescriptor(
                version=descriptor.version,
                platform=descriptor.platform,
                url=descriptor.url,
                checksum=checksum,
                asset_name=descriptor.asset_name,
            )
        return descriptor


@final
class StaticReleaseIndex:
    """In-memory release index.

    Used offline and in tests. A TOML file can declare the releases:

        [[releases]]
        version = "16.4.0"

        [[releases.assets]]
        platform = "x86_64-unknown-linux-gnu"
        url = "https://example.invalid/postgresql-16.4.0.tar.gz"
        checksum = "sha256:..."
    """

    __slots__: tuple[str, ...] = ("_releases",)

    _releases: tuple[Release, ...]

    def __init__(self, releases: Iterable[Release]) -> None:
        """Initialize the index with a fixed list of releases."""
        self._releases = tuple(releases)

    @classmethod
    def from_toml(cls, path: Path) -> "StaticReleaseIndex":
        """Load releases from a TOML file.

        Raises:
            IndexUnavailableError: If the file cannot be read or is malformed.
        """
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
            releases = [
                Release(
                    version=str(entry["version"]),
                    assets=tuple(
                        ReleaseAsset(
                            platform=str(asset["platform"]),
                            name=str(asset.get("name") or Path(str(asset["url"])).name),
                            url=str(asset["url"]),
                            checksum=normalize_checksum(asset.get("checksum")),
                        )
                        for asset in entry.get("assets", [])
                    ),
                )
                for entry in data.get("releases", [])
            ]
        except (OSError, tomllib.TOMLDecodeError, KeyError, TypeError, AttributeError) as e:
            msg = f"Cannot load release index from {path}: {e}"
            raise IndexUnavailableError(msg, url=str(path), cause=e) from e
        return cls(releases)

    async def list_releases(self) -> list[Release]:
        """List the configured releases."""
        return list(self._releases)

    async def describe(self, release: Release, asset: ReleaseAsset) -> ReleaseDescriptor:
        """Build the descriptor from the stored asset."""
        return ReleaseDescriptor.from_asset(release.version, asset)
