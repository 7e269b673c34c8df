from pathlib import Path

import httpx
import pytest

from pgembed.archive import (
    ASSET_PATTERN,
    GitHubReleaseIndex,
    StaticReleaseIndex,
    fetch_checksum_file,
    github_headers,
)
from pgembed.exceptions import IndexUnavailableError
from tests.conftest import TEST_PLATFORM

API = "https://api.example.invalid/repos/acme/postgresql-binaries/releases"
DOWNLOADS = "https://downloads.example.invalid"


def _asset(name: str, **extra: str) -> dict[str, str]:
    return {"name": name, "browser_download_url": f"{DOWNLOADS}/{name}", **extra}


def _github_release(version: str, *assets: dict[str, str]) -> dict[str, object]:
    return {"tag_name": version, "draft": False, "assets": list(assets)}


class TestAssetPattern:
    def test_matches_release_artifact(self) -> None:
        match = ASSET_PATTERN.match(f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz")

        assert match is not None
        assert match["version"] == "16.4.0"
        assert match["platform"] == TEST_PLATFORM

    @pytest.mark.parametrize(
        "name",
        [
            f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz.sha256",
            "postgresql-16.4.0.tar.gz",
            f"pgvector-16.4.0-{TEST_PLATFORM}.tar.gz",
        ],
    )
    def test_ignores_other_files(self, name: str) -> None:
        assert ASSET_PATTERN.match(name) is None


class TestGithubHeaders:
    def test_without_token(self) -> None:
        headers = github_headers()

        assert headers["Accept"] == "application/vnd.github+json"
        assert "Authorization" not in headers

    def test_with_token(self) -> None:
        assert github_headers("t0k")["Authorization"] == "Bearer t0k"


@pytest.mark.anyio
class TestGitHubReleaseIndex:
    async def test_follows_pagination(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            if request.url.params.get("page") == "2":
                return httpx.Response(
                    200,
                    json=[
                        _github_release(
                            "15.8.0", _asset(f"postgresql-15.8.0-{TEST_PLATFORM}.tar.gz")
                        )
                    ],
                )
            return httpx.Response(
                200,
                json=[
                    _github_release(
                        "16.4.0", _asset(f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz")
                    )
                ],
                headers={"Link": f'<{API}?page=2>; rel="next"'},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            index = GitHubReleaseIndex(API, client=client)
            releases = await index.list_releases()
            again = await index.list_releases()

        assert [r.version for r in releases] == ["16.4.0", "15.8.0"]
        assert again == releases
        assert len(seen) == 2
        assert seen[0].params.get("per_page") == "100"

    async def test_version_comes_from_asset_name(self) -> None:
        raw = [
            _github_release(
                "release-2024-08",
                _asset(f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz"),
                _asset("postgresql-16.4.0-aarch64-apple-darwin.tar.gz"),
                _asset("README.md"),
            )
        ]
        transport = httpx.MockTransport(lambda _: httpx.Response(200, json=raw))

        async with httpx.AsyncClient(transport=transport) as client:
            releases = await GitHubReleaseIndex(API, client=client).list_releases()

        (release,) = releases
        assert release.version == "16.4.0"
        assert set(release.platforms) == {TEST_PLATFORM, "aarch64-apple-darwin"}

    async def test_release_without_assets_uses_tag(self) -> None:
        raw = [_github_release("v17.0.0"), {"tag_name": "", "assets": []}]
        transport = httpx.MockTransport(lambda _: httpx.Response(200, json=raw))

        async with httpx.AsyncClient(transport=transport) as client:
            releases = await GitHubReleaseIndex(API, client=client).list_releases()

        assert [r.version for r in releases] == ["17.0.0"]
        assert releases[0].assets == ()

    async def test_describe_prefers_digest(self) -> None:
        name = f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz"
        raw = [_github_release("16.4.0", _asset(name, digest="SHA256:" + "ab" * 32))]
        transport = httpx.MockTransport(lambda _: httpx.Response(200, json=raw))

        async with httpx.AsyncClient(transport=transport) as client:
            index = GitHubReleaseIndex(API, client=client)
            (release,) = await index.list_releases()
            asset = release.asset_for(TEST_PLATFORM)
            assert asset is not None
            descriptor = await index.describe(release, asset)

        assert descriptor.checksum == "sha256:" + "ab" * 32
        assert descriptor.url == f"{DOWNLOADS}/{name}"

    async def test_describe_reads_companion_checksum(self) -> None:
        name = f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz"
        raw = [_github_release("16.4.0", _asset(name), _asset(f"{name}.sha256"))]

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith(".sha256"):
                return httpx.Response(200, text=f"{'CD' * 32}  {name}\n")
            return httpx.Response(200, json=raw)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            index = GitHubReleaseIndex(API, client=client)
            (release,) = await index.list_releases()
            asset = release.asset_for(TEST_PLATFORM)
            assert asset is not None
            descriptor = await index.describe(release, asset)

        assert descriptor.checksum == "sha256:" + "cd" * 32

    async def test_describe_without_checksum(self) -> None:
        name = f"postgresql-16.4.0-{TEST_PLATFORM}.tar.gz"
        raw = [_github_release("16.4.0", _asset(name))]
        transport = httpx.MockTransport(lambda _: httpx.Response(200, json=raw))

        async with httpx.AsyncClient(transport=transport) as client:
            index = GitHubReleaseIndex(API, client=client)
            (release,) = await index.list_releases()
            asset = release.asset_for(TEST_PLATFORM)
            assert asset is not None
            descriptor = await index.describe(release, asset)

        assert descriptor.checksum is None

    async def test_error_status_is_unavailable(self) -> None:
        transport = httpx.MockTransport(lambda _: httpx.Response(503))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(IndexUnavailableError) as exc_info:
                _ = await GitHubReleaseIndex(API, client=client).list_releases()

        assert exc_info.value.url == API

    async def test_non_list_response_is_unavailable(self) -> None:
        transport = httpx.MockTransport(
            lambda _: httpx.Response(200, json={"message": "rate limited"})
        )

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(IndexUnavailableError, match="Unexpected"):
                _ = await GitHubReleaseIndex(API, client=client).list_releases()

    async def test_sends_token(self) -> None:
        headers: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers.get("Authorization"))
            return httpx.Response(200, json=[])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            _ = await GitHubReleaseIndex(API, client=client, token="t0k").list_releases()

        assert headers == ["Bearer t0k"]


@pytest.mark.anyio
class TestFetchChecksumFile:
    async def test_empty_file_is_unavailable(self) -> None:
        transport = httpx.MockTransport(lambda _: httpx.Response(200, text="  \n"))

        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(IndexUnavailableError, match="empty"):
                _ = await fetch_checksum_file(client, f"{DOWNLOADS}/x.sha256")


@pytest.mark.anyio
class TestStaticReleaseIndex:
    async def test_from_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "releases.toml"
        _ = path.write_text(
            f"""
[[releases]]
version = "16.4.0"

[[releases.assets]]
platform = "{TEST_PLATFORM}"
url = "{DOWNLOADS}/postgresql-16.4.0.tar.gz"
checksum = "ABCDEF"

[[releases]]
version = "15.8.0"
"""
        )

        index = StaticReleaseIndex.from_toml(path)
        releases = await index.list_releases()

        assert [r.version for r in releases] == ["16.4.0", "15.8.0"]
        asset = releases[0].asset_for(TEST_PLATFORM)
        assert asset is not None
        assert asset.name == "postgresql-16.4.0.tar.gz"
        assert asset.checksum == "sha256:abcdef"
        descriptor = await index.describe(releases[0], asset)
        assert descriptor.checksum == "sha256:abcdef"

    def test_from_toml_missing_key(self, tmp_path: Path) -> None:
        path = tmp_path / "releases.toml"
        _ = path.write_text("[[releases]]\nassets = []\n")

        with pytest.raises(IndexUnavailableError):
            _ = StaticReleaseIndex.from_toml(path)

    def test_from_toml_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(IndexUnavailableError) as exc_info:
            _ = StaticReleaseIndex.from_toml(tmp_path / "absent.toml")

        assert isinstance(exc_info.value.cause, FileNotFoundError)
