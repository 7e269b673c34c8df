"""Unit tests for logging utilities."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pgembed.settings import LogFormat, LoggingSettings, LogLevel
from pgembed.utils import create_logger, logger_from_settings
from pgembed.utils._logging import _create_logger, _get_log_level

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


@pytest.fixture(autouse=True)
def clean_log_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PGEMBED_DEBUG", raising=False)
    monkeypatch.delenv("PGEMBED_LOG_LEVEL", raising=False)


class TestCreateLoggerInternal:
    def test_creates_log_directory_if_missing(self, fs: "FakeFilesystem") -> None:
        log_path = Path("/logs/pgembed.log")
        assert not log_path.parent.exists()

        _ = _create_logger(str(log_path))

        assert log_path.parent.exists()

    def test_default_format_is_json(self, fs: "FakeFilesystem") -> None:
        logger = _create_logger("/logs/pgembed.log")

        logger.info("server_starting", port=5433)

        content = Path("/logs/pgembed.log").read_text()
        assert '"event": "server_starting"' in content
        assert '"port": 5433' in content

    def test_text_format(self, fs: "FakeFilesystem") -> None:
        logger = _create_logger("/logs/pgembed.log", log_format="text")

        logger.info("server_starting", port=5433)

        content = Path("/logs/pgembed.log").read_text()
        assert "server_starting" in content
        assert "port=5433" in content

    def test_level_filters_messages(self, fs: "FakeFilesystem") -> None:
        logger = _create_logger("/logs/pgembed.log", log_level=logging.WARNING)

        logger.info("hidden")
        logger.warning("shown")

        content = Path("/logs/pgembed.log").read_text()
        assert "hidden" not in content
        assert "shown" in content

    def test_rotation_uses_rotating_handler(self, fs: "FakeFilesystem") -> None:
        logger = _create_logger("/logs/pgembed.log", max_bytes=1024, backup_count=2)

        logger.info("rotated")

        stdlib_logger = logging.getLogger(
            next(
                name
                for name in logging.root.manager.loggerDict
                if name.startswith("pgembed.pgembed.")
            )
        )
        assert any(isinstance(h, RotatingFileHandler) for h in stdlib_logger.handlers)


class TestGetLogLevel:
    def test_default_is_info(self) -> None:
        assert _get_log_level() == logging.INFO

    def test_debug_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PGEMBED_DEBUG", "1")

        assert _get_log_level() == logging.DEBUG

    def test_level_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PGEMBED_LOG_LEVEL", "error")

        assert _get_log_level() == logging.ERROR


class TestCreateLogger:
    def test_binds_component(self, fs: "FakeFilesystem") -> None:
        logger = create_logger(log_file="/logs/pgembed.log", component="postgresql")

        logger.info("state_changed")

        assert "component=postgresql" in Path("/logs/pgembed.log").read_text()

    def test_debug_env_overrides_level(
        self, fs: "FakeFilesystem", monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PGEMBED_DEBUG", "1")
        logger = create_logger(level="error", log_file="/logs/pgembed.log")

        logger.debug("probe")

        assert "probe" in Path("/logs/pgembed.log").read_text()

    def test_from_settings(self, fs: "FakeFilesystem") -> None:
        settings = LoggingSettings(
            level=LogLevel.WARNING, format=LogFormat.JSON, file="/logs/pgembed.log"
        )
        logger = logger_from_settings(settings, component="cli")

        logger.info("hidden")
        logger.error("install_failed", version="16.4.0")

        content = Path("/logs/pgembed.log").read_text()
        assert "hidden" not in content
        assert '"component": "cli"' in content
        assert '"version": "16.4.0"' in content
