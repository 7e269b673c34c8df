"""The command-line interface for pgembed."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from pgembed.exceptions import SettingsError, SettingsLoadError
from pgembed.settings import LogLevel, Settings
from pgembed.utils import logger_from_settings

from ._commands import register_commands
from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

_HELP = "Install, initialize, and run embedded PostgreSQL servers."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the CLI application.

    Args:
        console: Console for command output. Defaults to stdout.
        error_console: Console for errors and events. Defaults to stderr.
        exit_on_error: Whether cyclopts exits on parse errors.

    Returns:
        The configured application.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="pgembed",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to a settings file")
        ] = None,
        verbose: Annotated[bool, Parameter(help="Enable debug logging")] = False,
        quiet: Annotated[bool, Parameter(help="Suppress lifecycle events")] = False,
    ) -> None:
        """Launch pgembed with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            config: Explicit settings file.
            verbose: Enable debug logging.
            quiet: Suppress lifecycle events.
        """
        overrides: dict[str, object] = {}
        if verbose:
            overrides["logging"] = {"level": LogLevel.DEBUG.value}

        try:
            settings = Settings.load(config, **overrides)
        except FileNotFoundError:
            exit_with_error(
                f"Settings file not found: {config}",
                ExitCode.LOAD_ERROR,
                console=error_console,
            )
        except SettingsLoadError as e:
            exit_with_error(str(e), ExitCode.LOAD_ERROR, console=error_console)
        except SettingsError as e:
            exit_with_error(str(e), ExitCode.VALIDATION_ERROR, console=error_console)

        ctx = CLIContext(
            settings=settings,
            console=console,
            error_console=error_console,
            verbose=verbose,
            quiet=quiet,
            config_path=config,
            logger=logger_from_settings(settings.logging, component="cli"),
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `pgembed` CLI."""
    create_app().meta()


if __name__ == "__main__":
    main()
