from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pendulum
import pytest

from pgembed.archive import ArchiveInstaller, InstallationRecord, write_installation_record
from pgembed.exceptions import ExtensionError, ExtensionNotFoundError, InstallationIOError
from pgembed.extensions import (
    MANIFEST_FILE_NAME,
    ExtensionAsset,
    ExtensionInstaller,
    ExtensionManifest,
    ExtensionRegistry,
    ExtensionRelease,
    InstalledExtension,
    StaticExtensionRepository,
    collect_files,
    extension_staging_dir,
    get_installed_extensions,
    install,
    placement_for,
    read_manifest,
    uninstall,
    write_manifest,
)
from pgembed.settings import Settings
from pgembed.utils import atomic_copy_file
from tests.conftest import TEST_PLATFORM, make_tarball, sha256_checksum

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture

pytestmark = pytest.mark.anyio

VENDOR = "portal-corp"
NAME = "pgvector_compiled"


def _artifact(version: str, files: Mapping[str, bytes | str] | None = None) -> bytes:
    return make_tarball(
        files
        if files is not None
        else {
            "lib/vector.so": b"\x7fELF",
            "share/extension/vector.control": "default_version = '0.7.0'\n",
            f"share/extension/vector--{version}.sql": "CREATE TYPE vector;\n",
            "README.md": "docs\n",
        },
        root="pgvector",
    )


def _asset_name(version: str) -> str:
    return f"pgvector-{version}-pg16-{TEST_PLATFORM}.tar.gz"


def _repository(artifacts: Mapping[str, bytes]) -> StaticExtensionRepository:
    return StaticExtensionRepository(
        VENDOR,
        [
            ExtensionRelease(
                name=NAME,
                version=version,
                assets=(
                    ExtensionAsset(
                        name=_asset_name(version),
                        url=f"https://dl.example.invalid/{_asset_name(version)}",
                        checksum=sha256_checksum(data),
                    ),
                ),
            )
            for version, data in artifacts.items()
        ],
    )


def _transport(artifacts: Mapping[str, bytes]) -> httpx.MockTransport:
    by_name = {_asset_name(version): data for version, data in artifacts.items()}

    def handler(request: httpx.Request) -> httpx.Response:
        data = by_name.get(request.url.path.rsplit("/", 1)[-1])
        if data is None:
            return httpx.Response(404)
        return httpx.Response(200, content=data)

    return httpx.MockTransport(handler)


def _installation(settings: Settings, version: str = "16.4.0") -> InstallationRecord:
    path = settings.installation_root / version / TEST_PLATFORM
    path.mkdir(parents=True)
    record = InstallationRecord(
        path=path,
        version=version,
        platform=TEST_PLATFORM,
        checksum="sha256:" + "0" * 64,
        installed_at=pendulum.now("UTC"),
    )
    write_installation_record(record)
    return record


def _entry(name: str, *files: str) -> InstalledExtension:
    return InstalledExtension(
        vendor=VENDOR,
        name=name,
        version="1.0.0",
        checksum="sha256:" + "1" * 64,
        files=tuple(Path(f) for f in files),
        installed_at=pendulum.now("UTC"),
    )


class TestPlacement:
    @pytest.mark.parametrize(
        ("file_name", "expected"),
        [
            ("vector.so", Path("lib/vector.so")),
            ("vectors.dylib", Path("lib/vectors.dylib")),
            ("vector.dll", Path("lib/vector.dll")),
            ("vector.control", Path("share/extension/vector.control")),
            ("vector--0.7.0.sql", Path("share/extension/vector--0.7.0.sql")),
            ("README.md", None),
            ("LICENSE", None),
        ],
    )
    def test_placement_for(self, file_name: str, expected: Path | None) -> None:
        assert placement_for(file_name) == expected

    def test_collect_files_flattens_and_skips_record(self, tmp_path: Path) -> None:
        for relative in ("lib/vector.so", "deep/nested/vector.control", "README.md"):
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            _ = path.write_text("x")
        _ = (tmp_path / ".pgembed-installation.json").write_text("{}")

        assert collect_files(tmp_path) == {
            Path("lib/vector.so"): tmp_path / "lib" / "vector.so",
            Path("share/extension/vector.control"): tmp_path / "deep/nested/vector.control",
        }

    def test_staging_dir(self, settings: Settings) -> None:
        installation = InstallationRecord(
            path=settings.installation_root / "16.4.0" / TEST_PLATFORM,
            version="16.4.0",
            platform=TEST_PLATFORM,
            checksum="sha256:" + "0" * 64,
            installed_at=pendulum.now("UTC"),
        )

        assert extension_staging_dir(
            settings, VENDOR, NAME, "0.7.0", installation
        ) == settings.installation_root / ".extensions" / VENDOR / NAME / "0.7.0" / (
            f"pg16-{TEST_PLATFORM}"
        )


class TestManifest:
    def test_missing_manifest_is_empty(self, tmp_path: Path) -> None:
        assert read_manifest(tmp_path).extensions == []

    def test_invalid_manifest_is_empty(self, tmp_path: Path) -> None:
        _ = (tmp_path / MANIFEST_FILE_NAME).write_text('{"extensions": [{"vendor": 1}]}')

        assert read_manifest(tmp_path).extensions == []

    def test_put_get_remove(self, tmp_path: Path) -> None:
        manifest = ExtensionManifest()
        manifest.put(_entry("b", "lib/b.so"))
        manifest.put(_entry("a", "lib/a.so"))
        manifest.put(_entry("a", "lib/a2.so"))

        assert [e.name for e in manifest.extensions] == ["a", "b"]
        entry = manifest.get(VENDOR, "a")
        assert entry is not None
        assert entry.files == (Path("lib/a2.so"),)

        removed = manifest.remove(VENDOR, "b")

        assert removed is not None
        assert manifest.get(VENDOR, "b") is None
        assert manifest.remove(VENDOR, "b") is None

    def test_write_then_read(self, tmp_path: Path) -> None:
        manifest = ExtensionManifest()
        manifest.put(_entry("a", "lib/a.so", "share/extension/a.control"))

        write_manifest(tmp_path, manifest)

        assert read_manifest(tmp_path) == manifest


class TestExtensionInstaller:
    async def test_install_places_files(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            extension = await installer.install(
                settings, VENDOR, NAME, "^0.7", installation.path
            )

        assert extension.version == "0.7.0"
        assert extension.checksum == sha256_checksum(artifacts["0.7.0"])
        assert extension.files == (
            Path("lib/vector.so"),
            Path("share/extension/vector--0.7.0.sql"),
            Path("share/extension/vector.control"),
        )
        assert (installation.lib_dir / "vector.so").read_bytes() == b"\x7fELF"
        assert (installation.extension_dir / "vector.control").exists()
        assert not (installation.path / "README.md").exists()
        assert installer.get_installed(installation.path) == [extension]

    async def test_reinstall_replaces_previous_version(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0"), "0.8.0": _artifact("0.8.0")}

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            _ = await installer.install(settings, VENDOR, NAME, "=0.7.0", installation.path)
            upgraded = await installer.install(settings, VENDOR, NAME, "*", installation.path)

        assert upgraded.version == "0.8.0"
        assert (installation.extension_dir / "vector--0.8.0.sql").exists()
        assert not (installation.extension_dir / "vector--0.7.0.sql").exists()
        assert [e.version for e in installer.get_installed(installation.path)] == ["0.8.0"]

    async def test_uninstall_removes_files(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            installed = await installer.install(settings, VENDOR, NAME, "*", installation.path)
            removed = await installer.uninstall(installation.path, VENDOR, NAME)
            again = await installer.uninstall(installation.path, VENDOR, NAME)

        assert removed == installed
        assert again is None
        assert not (installation.lib_dir / "vector.so").exists()
        assert installer.get_installed(installation.path) == []

    async def test_no_satisfying_version(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}
        installer = ExtensionInstaller(ExtensionRegistry([_repository(artifacts)]))

        with pytest.raises(ExtensionNotFoundError) as exc_info:
            _ = await installer.install(settings, VENDOR, NAME, "^1", installation.path)

        assert exc_info.value.constraint == "^1"

    async def test_no_artifact_for_postgresql_major(self, settings: Settings) -> None:
        installation = _installation(settings, "17.0.0")
        artifacts = {"0.7.0": _artifact("0.7.0")}
        installer = ExtensionInstaller(ExtensionRegistry([_repository(artifacts)]))

        with pytest.raises(ExtensionNotFoundError, match="PostgreSQL 17"):
            _ = await installer.install(settings, VENDOR, NAME, "*", installation.path)

    async def test_archive_without_extension_files(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0", {"README.md": "nothing here\n"})}

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            with pytest.raises(ExtensionNotFoundError, match="no extension files"):
                _ = await installer.install(settings, VENDOR, NAME, "*", installation.path)

        assert not (installation.path / MANIFEST_FILE_NAME).exists()

    async def test_requires_installation_record(self, settings: Settings, tmp_path: Path) -> None:
        installer = ExtensionInstaller(ExtensionRegistry([_repository({})]))

        with pytest.raises(ExtensionError, match="No PostgreSQL installation"):
            _ = await installer.install(settings, VENDOR, NAME, "*", tmp_path / "nowhere")

    async def test_unknown_vendor(self, settings: Settings) -> None:
        installation = _installation(settings)
        installer = ExtensionInstaller(ExtensionRegistry())

        with pytest.raises(ExtensionNotFoundError):
            _ = await installer.install(settings, "nobody", NAME, "*", installation.path)

    async def test_get_available(self) -> None:
        installer = ExtensionInstaller(ExtensionRegistry([_repository({"0.7.0": b""})]))

        available = await installer.get_available()

        assert [(e.vendor, e.name) for e in available] == [(VENDOR, NAME)]


class TestModuleFunctions:
    async def test_install_and_list(self, settings: Settings) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            extension = await install(
                settings,
                VENDOR,
                NAME,
                "=0.7.0",
                installation_dir=installation.path,
                registry=ExtensionRegistry([_repository(artifacts)]),
                client=client,
            )

        assert get_installed_extensions(settings, installation_dir=installation.path) == [
            extension
        ]

        removed = await uninstall(settings, VENDOR, NAME, installation_dir=installation.path)

        assert removed == extension
        assert get_installed_extensions(settings, installation_dir=installation.path) == []

    async def test_missing_installation(self, settings: Settings) -> None:
        with pytest.raises(ExtensionError, match="is not installed"):
            _ = get_installed_extensions(settings)


def _fail_copy_on(mocker: "MockerFixture", call_number: int) -> "MagicMock":
    calls = 0

    def copy(source: Path, destination: Path) -> None:
        nonlocal calls
        calls += 1
        if calls == call_number:
            msg = "No space left on device"
            raise OSError(msg)
        atomic_copy_file(source, destination)

    return mocker.patch("pgembed.extensions._installer.atomic_copy_file", side_effect=copy)


def _leftovers(root: Path) -> list[Path]:
    return sorted(p.relative_to(root) for p in root.rglob("*") if p.is_file())


class TestPlacementFailure:
    async def test_partial_copy_is_removed(
        self, settings: Settings, mocker: "MockerFixture"
    ) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}
        _ = _fail_copy_on(mocker, 2)

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            with pytest.raises(InstallationIOError, match="No space left"):
                _ = await installer.install(settings, VENDOR, NAME, "*", installation.path)

        assert not (installation.lib_dir / "vector.so").exists()
        assert not installation.extension_dir.exists() or not any(
            installation.extension_dir.iterdir()
        )
        assert installer.get_installed(installation.path) == []

    async def test_failed_upgrade_restores_previous_files(
        self, settings: Settings, mocker: "MockerFixture"
    ) -> None:
        installation = _installation(settings)
        artifacts = {
            "0.7.0": _artifact("0.7.0"),
            "0.8.0": _artifact(
                "0.8.0",
                {
                    "lib/vector.so": b"\x7fELF-0.8",
                    "share/extension/vector.control": "default_version = '0.8.0'\n",
                    "share/extension/vector--0.8.0.sql": "CREATE TYPE vector;\n",
                },
            ),
        }

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            previous = await installer.install(
                settings, VENDOR, NAME, "=0.7.0", installation.path
            )
            before = _leftovers(installation.path)
            copy = _fail_copy_on(mocker, 2)

            with pytest.raises(InstallationIOError):
                _ = await installer.install(settings, VENDOR, NAME, "*", installation.path)

        assert copy.call_count == 2
        assert (installation.lib_dir / "vector.so").read_bytes() == b"\x7fELF"
        assert not (installation.extension_dir / "vector--0.8.0.sql").exists()
        assert _leftovers(installation.path) == before
        assert installer.get_installed(installation.path) == [previous]

    async def test_manifest_write_failure_removes_files(
        self, settings: Settings, mocker: "MockerFixture"
    ) -> None:
        installation = _installation(settings)
        artifacts = {"0.7.0": _artifact("0.7.0")}
        _ = mocker.patch(
            "pgembed.extensions._installer.write_manifest",
            side_effect=PermissionError("read-only installation"),
        )

        async with httpx.AsyncClient(transport=_transport(artifacts)) as client:
            installer = ExtensionInstaller(
                ExtensionRegistry([_repository(artifacts)]), ArchiveInstaller(client)
            )
            with pytest.raises(InstallationIOError, match="read-only"):
                _ = await installer.install(settings, VENDOR, NAME, "*", installation.path)

        assert not (installation.lib_dir / "vector.so").exists()
        assert not (installation.extension_dir / "vector.control").exists()
