# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""Per-invocation CLI state.

The meta app builds a CLIContext from the global options and publishes it
through a context variable for the duration of one command.
"""

import contextvars
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from pgembed.settings import Settings

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


_active: contextvars.ContextVar["CLIContext | None"] = contextvars.ContextVar(
    "pgembed_cli_context", default=None
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Settings and output channels of the running command.

    Attributes:
        settings: Settings after file, environment, and flag overrides.
        console: Command output.
        error_console: Errors and lifecycle events.
        verbose: Debug logging was requested.
        quiet: Lifecycle events are suppressed.
        config_path: Settings file given with --config.
        logger: Logger bound to the ``cli`` component.
    """

    settings: Settings = field(repr=False)
    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )
    verbose: bool = False
    quiet: bool = False
    config_path: Path | None = None
    logger: "FilteringBoundLogger | None" = field(default=None, repr=False)

    @classmethod
    def get_current(cls) -> "CLIContext":
        """Get the published context, or one with default settings."""
        ctx = _active.get()
        return ctx if ctx is not None else cls(settings=Settings())

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:
        """Publish `ctx` for the commands that run next."""
        _ = _active.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Withdraw the published context."""
        _ = _active.set(None)
