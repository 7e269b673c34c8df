"""Streaming artifact download and checksum verification."""

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

import anyio
import httpx

from pgembed.exceptions import ChecksumMismatchError, DownloadError

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

DEFAULT_ALGORITHM = "sha256"
_CHUNK_SIZE = 64 * 1024


def parse_checksum(checksum: str) -> tuple[str, str]:
    """Split a checksum into algorithm and lowercase hex digest.

    A bare hex digest is treated as SHA-256.

    Args:
        checksum: ``<algorithm>:<hex>`` or ``<hex>``.

    Returns:
        Tuple of (algorithm, hex digest).
    """
    algorithm, sep, digest = checksum.strip().partition(":")
    if not sep:
        return DEFAULT_ALGORITHM, algorithm.lower()
    return algorithm.lower(), digest.lower()


def normalize_checksum(checksum: str | None) -> str | None:
    """Render a checksum in ``<algorithm>:<hex>`` form, passing None through."""
    if checksum is None:
        return None
    algorithm, digest = parse_checksum(checksum)
    return f"{algorithm}:{digest}"


def verify_checksum(expected: str | None, actual: str) -> None:
    """Compare a computed checksum against the published one.

    Args:
        expected: Published checksum, or None when there is nothing to verify.
        actual: Computed checksum in ``<algorithm>:<hex>`` form.

    Raises:
        ChecksumMismatchError: If the checksums differ.
    """
    normalized = normalize_checksum(expected)
    if normalized is None:
        return
    if normalized != normalize_checksum(actual):
        msg = f"Checksum mismatch: expected {normalized}, got {actual}"
        raise ChecksumMismatchError(msg, expected=normalized, actual=actual)


async def download_artifact(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    logger: "FilteringBoundLogger | None" = None,
) -> str:
    """Stream an artifact to a file, hashing it on the way.

    Args:
        client: HTTP client used for the request.
        url: Artifact URL.
        destination: File to write; replaced if it exists.
        algorithm: hashlib algorithm name for the returned checksum.
        logger: Optional logger.

    Returns:
        The checksum of the downloaded bytes as ``<algorithm>:<hex>``.

    Raises:
        DownloadError: On transport failure or a non-success HTTP status.
    """
    try:
        hasher = hashlib.new(algorithm)
    except ValueError as e:
        msg = f"Unsupported checksum algorithm: {algorithm}"
        raise DownloadError(msg, url=url, cause=e) from e

    if logger:
        logger.info("download_started", url=url, destination=str(destination))

    size = 0
    try:
        async with client.stream("GET", url, follow_redirects=True) as response:
            if response.is_error:
                msg = f"Download failed with HTTP {response.status_code}: {url}"
                raise DownloadError(msg, url=url, status_code=response.status_code)
            async with await anyio.open_file(destination, "wb") as out:
                async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                    hasher.update(chunk)
                    size += len(chunk)
                    _ = await out.write(chunk)
    except httpx.HTTPError as e:
        msg = f"Download failed: {url}: {e}"
        raise DownloadError(msg, url=url, cause=e) from e

    checksum = f"{algorithm}:{hasher.hexdigest()}"
    if logger:
        logger.info("download_finished", url=url, size=size, checksum=checksum)
    return checksum
