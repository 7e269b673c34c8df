"""pgembed CLI commands."""
# pyright: reportUnusedCallResult=false

from typing import TYPE_CHECKING

from ._command import apply_option, command
from ._extensions import app as extensions_app
from ._server import install, run, setup

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "apply_option",
    "command",
    "extensions_app",
    "install",
    "register_commands",
    "run",
    "setup",
]


def register_commands(app: "App") -> None:
    app.command(install)
    app.command(setup)
    app.command(run)
    app.command(command)
    app.command(extensions_app)
