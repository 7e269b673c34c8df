"""Version constraint parsing and release selection.

Constraints use ``packaging`` specifier syntax with a few conveniences:
- ``*`` or an empty string matches any release
- a bare version (``16.4.0``) or ``=16.4.0`` matches exactly
- ``^16.4`` and ``~16.4.1`` follow caret and tilde range semantics
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, final

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from pgembed.exceptions import UnsupportedPlatformError, VersionNotFoundError

from ._index import ReleaseIndex
from ._models import Release, ReleaseDescriptor
from ._platform import detect_platform

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_OPERATOR_CHARS = "<>=!~^"


def _parse_release(text: str, constraint: str) -> tuple[int, ...]:
    try:
        return Version(text).release
    except InvalidVersion as e:
        msg = f"Invalid version constraint: {constraint!r}"
        raise VersionNotFoundError(msg, constraint=constraint) from e


def _upper_bound(release: tuple[int, ...], index: int) -> str:
    bumped = [*release[:index], release[index] + 1]
    return ".".join(str(part) for part in bumped)


def _caret(text: str, constraint: str) -> str:
    release = _parse_release(text, constraint)
    index = next(
        (i for i, part in enumerate(release) if part != 0),
        len(release) - 1,
    )
    return f">={text},<{_upper_bound(release, index)}"


def _tilde(text: str, constraint: str) -> str:
    release = _parse_release(text, constraint)
    index = 1 if len(release) >= 2 else 0  # noqa: PLR2004
    return f">={text},<{_upper_bound(release, index)}"


def _translate(part: str, constraint: str) -> str | None:
    if part in {"", "*"}:
        return None
    if part.startswith("^"):
        return _caret(part[1:].strip(), constraint)
    if part.startswith("~") and not part.startswith("~="):
        return _tilde(part[1:].strip(), constraint)
    if part.startswith("=") and not part.startswith("=="):
        return f"=={part[1:].strip()}"
    if part[0] not in _OPERATOR_CHARS:
        return f"=={part}"
    return part


def parse_constraint(constraint: str) -> SpecifierSet:
    """Parse a version constraint into a specifier set.

    Args:
        constraint: Comma-separated constraint, see the module docstring.

    Returns:
        The equivalent specifier set. An empty set matches every release.

    Raises:
        VersionNotFoundError: If the constraint is not valid syntax.
    """
    parts = [p.strip() for p in constraint.split(",")]
    translated = [t for p in parts if (t := _translate(p, constraint)) is not None]
    try:
        return SpecifierSet(",".join(translated))
    except InvalidSpecifier as e:
        msg = f"Invalid version constraint: {constraint!r}"
        raise VersionNotFoundError(msg, constraint=constraint) from e


def is_exact_constraint(constraint: str) -> bool:
    """Whether a constraint pins a single version with no wildcard."""
    specifiers = list(parse_constraint(constraint))
    if len(specifiers) != 1:
        return False
    specifier = specifiers[0]
    return specifier.operator in {"==", "==="} and "*" not in specifier.version


def select_version(versions: Iterable[str], constraint: str) -> str | None:
    """Select the greatest version that satisfies a constraint.

    Versions that do not parse are ignored. Pre-releases are only considered
    when the constraint names one. Equal versions written differently
    (``16.4`` and ``16.4.0``) are ordered by their text so the result does not
    depend on input order.

    Args:
        versions: Candidate version strings.
        constraint: Version constraint.

    Returns:
        The selected version string, or None if nothing matches.
    """
    specifiers = parse_constraint(constraint)
    best: tuple[Version, str] | None = None
    for text in versions:
        try:
            version = Version(text)
        except InvalidVersion:
            continue
        if not specifiers.contains(version):
            continue
        if best is None or (version, text) > best:
            best = (version, text)
    return best[1] if best is not None else None


@final
class VersionResolver:
    """Resolves a version constraint to a downloadable artifact."""

    __slots__: tuple[str, ...] = ("_index", "_logger", "_platform")

    _index: ReleaseIndex
    _logger: "FilteringBoundLogger | None"
    _platform: str | None

    def __init__(
        self,
        index: ReleaseIndex,
        *,
        platform: str | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            index: Source of published releases.
            platform: Target triple to resolve for. Detected from the host
                when None.
            logger: Optional logger.
        """
        self._index = index
        self._platform = platform
        self._logger = logger

    @property
    def platform(self) -> str:
        """Target triple artifacts are resolved for."""
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    async def resolve_release(self, constraint: str) -> Release:
        """Find the greatest release that satisfies a constraint.

        Raises:
            VersionNotFoundError: If no release satisfies the constraint.
            IndexUnavailableError: If the index cannot be reached.
        """
        releases = await self._index.list_releases()
        by_version = {release.version: release for release in releases}
        selected = select_version(by_version, constraint)
        if selected is None:
            msg = f"No PostgreSQL release satisfies {constraint!r}"
            raise VersionNotFoundError(msg, constraint=constraint)
        return by_version[selected]

    async def resolve(self, constraint: str) -> ReleaseDescriptor:
        """Resolve a constraint to the artifact for this platform.

        Args:
            constraint: Version constraint.

        Returns:
            Descriptor of the artifact to install.

        Raises:
            VersionNotFoundError: If no release satisfies the constraint.
            UnsupportedPlatformError: If the platform is unknown or the
                selected release has no artifact for it.
            IndexUnavailableError: If the index cannot be reached.
        """
        release = await self.resolve_release(constraint)
        platform = self.platform
        asset = release.asset_for(platform)
        if asset is None:
            msg = f"PostgreSQL {release.version} has no artifact for {platform}"
            raise UnsupportedPlatformError(
                msg, platform=platform, version=release.version
            )

        descriptor = await self._index.describe(release, asset)
        if self._logger:
            self._logger.info(
                "version_resolved",
                constraint=constraint,
                version=descriptor.version,
                platform=descriptor.platform,
            )
        return descriptor
