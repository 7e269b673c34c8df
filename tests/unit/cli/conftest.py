from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from pgembed.cli import create_app


@pytest.fixture
def settings_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated settings file with a private installation root."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "pgembed.settings._loader.get_user_settings_path",
        lambda: tmp_path / "user" / "pgembed.toml",
    )
    path = tmp_path / "pgembed.toml"
    _ = path.write_text(
        f"""\
version = "=16.4.0"
installation_root = "{(tmp_path / "cache").as_posix()}"
data_dir = "{(tmp_path / "data").as_posix()}"

[logging]
file = "{(tmp_path / "pgembed.log").as_posix()}"
"""
    )
    return path


@pytest.fixture
def pgembed_cli(console: Console, settings_file: Path) -> Callable[..., int]:
    """Run the CLI and return its exit code (0 if it did not exit)."""
    app = create_app(console=console, error_console=console, exit_on_error=False)

    def _run(*args: str) -> int:
        try:
            app.meta(["--config", str(settings_file), *args])
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def console_cli(console: Console, settings_file: Path) -> Callable[..., int]:
    """Run the CLI with only the given arguments and return its exit code."""
    app = create_app(console=console, error_console=console, exit_on_error=False)

    def _run(*args: str) -> int:
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
