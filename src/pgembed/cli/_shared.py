# pyright: reportExplicitAny=false
"""Exit codes and output helpers shared by the CLI commands."""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never, TypeVar

import anyio
import orjson
from rich.console import Console
from rich.markup import escape

from pgembed.exceptions import (
    CommandError,
    ExtensionError,
    IndexUnavailableError,
    InstallationError,
    PgEmbedError,
    ServerError,
    SettingsError,
    SettingsLoadError,
    UnsupportedPlatformError,
    VersionNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

FormattableData = dict[str, Any] | list[Any]

T = TypeVar("T")

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "format_json",
    "run_async",
]


class ExitCode(IntEnum):
    """Process exit codes of the pgembed CLI."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5
    SERVER_ERROR = 6


def exit_code_for(error: PgEmbedError) -> ExitCode:
    """Map a library error to the exit code a command reports for it."""
    match error:
        case SettingsLoadError():
            return ExitCode.LOAD_ERROR
        case SettingsError():
            return ExitCode.VALIDATION_ERROR
        case VersionNotFoundError() | UnsupportedPlatformError() | ExtensionError():
            return ExitCode.NOT_FOUND
        case InstallationError() | IndexUnavailableError():
            return ExitCode.IO_ERROR
        case ServerError() | CommandError():
            return ExitCode.SERVER_ERROR
        case _:
            return ExitCode.INTERNAL_ERROR


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Serialize command output as JSON, indented by default."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2 if indent else 0).decode()


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error and exit.

    Args:
        message: Error text. Rich markup in it is printed literally.
        code: Exit code.
        console: Where to print. Defaults to a stderr console.

    Raises:
        SystemExit: Always, with `code`.
    """
    console = console or Console(stderr=True)
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise SystemExit(code)


def run_async(
    func: "Callable[[], Awaitable[T]]",
    *,
    console: Console | None = None,
) -> T:
    """Run a coroutine function, turning library errors into exits.

    Args:
        func: Coroutine function to run on a fresh event loop.
        console: Console for the error message.

    Returns:
        The coroutine's result.

    Raises:
        SystemExit: With the mapped exit code if a PgEmbedError escapes.
    """
    try:
        return anyio.run(func)
    except PgEmbedError as e:
        exit_with_error(str(e), exit_code_for(e), console=console)
