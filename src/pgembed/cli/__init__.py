"""The pgembed command-line interface."""

from ._app import app, create_app, main
from ._context import CLIContext
from ._shared import ExitCode

__all__ = ["CLIContext", "ExitCode", "app", "create_app", "main"]
