from pathlib import Path

import httpx
import pytest

from pgembed.archive import (
    download_artifact,
    normalize_checksum,
    parse_checksum,
    verify_checksum,
)
from pgembed.exceptions import ChecksumMismatchError, DownloadError
from tests.conftest import sha256_checksum

URL = "https://example.invalid/postgresql.tar.gz"


class TestParseChecksum:
    def test_prefixed(self) -> None:
        assert parse_checksum("SHA256:ABCDEF") == ("sha256", "abcdef")

    def test_bare_digest_is_sha256(self) -> None:
        assert parse_checksum(" abc123 ") == ("sha256", "abc123")

    def test_normalize_passes_none(self) -> None:
        assert normalize_checksum(None) is None

    def test_normalize_adds_algorithm(self) -> None:
        assert normalize_checksum("ABC") == "sha256:abc"


class TestVerifyChecksum:
    def test_no_expected_checksum_is_accepted(self) -> None:
        verify_checksum(None, "sha256:abc")

    def test_matching_checksum_ignores_case(self) -> None:
        verify_checksum("ABC", "sha256:abc")

    def test_mismatch_raises(self) -> None:
        with pytest.raises(ChecksumMismatchError) as exc_info:
            verify_checksum("sha256:abc", "sha256:def")

        assert exc_info.value.expected == "sha256:abc"
        assert exc_info.value.actual == "sha256:def"


@pytest.mark.anyio
class TestDownloadArtifact:
    async def test_writes_file_and_returns_checksum(self, tmp_path: Path) -> None:
        payload = b"archive-bytes" * 10_000
        transport = httpx.MockTransport(lambda _: httpx.Response(200, content=payload))
        destination = tmp_path / "artifact"

        async with httpx.AsyncClient(transport=transport) as client:
            checksum = await download_artifact(client, URL, destination)

        assert destination.read_bytes() == payload
        assert checksum == sha256_checksum(payload)

    async def test_error_status_raises(self, tmp_path: Path) -> None:
        transport = httpx.MockTransport(lambda _: httpx.Response(404))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(DownloadError) as exc_info:
                _ = await download_artifact(client, URL, tmp_path / "artifact")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == URL

    async def test_transport_failure_raises(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(DownloadError) as exc_info:
                _ = await download_artifact(client, URL, tmp_path / "artifact")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    async def test_unknown_algorithm_raises(self, tmp_path: Path) -> None:
        transport = httpx.MockTransport(lambda _: httpx.Response(200))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(DownloadError, match="Unsupported checksum algorithm"):
                _ = await download_artifact(
                    client, URL, tmp_path / "artifact", algorithm="nope"
                )
