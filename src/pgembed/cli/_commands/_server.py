# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Server commands: install, setup, and run."""

import signal
from pathlib import Path
from typing import Annotated, Any

import anyio
from cyclopts import Parameter

from pgembed.settings import Settings
from pgembed.supervisor import ConsoleEventSink, PostgreSQL

from .._context import CLIContext
from .._shared import format_json, run_async


def _settings(ctx: CLIContext, **updates: Any) -> Settings:  # pyright: ignore[reportExplicitAny]
    values = {key: value for key, value in updates.items() if value is not None}
    return ctx.settings.model_copy(update=values) if values else ctx.settings


def _server(ctx: CLIContext, settings: Settings) -> PostgreSQL:
    return PostgreSQL(
        settings,
        event_sink=None if ctx.quiet else ConsoleEventSink(ctx.error_console),
        logger=ctx.logger,
    )


def install(
    *,
    version: Annotated[
        str | None, Parameter(help="Version constraint, e.g. '>=16,<17'.")
    ] = None,
    json: Annotated[bool, Parameter(help="Print the installation record as JSON.")] = False,
) -> None:
    """Download and install PostgreSQL binaries into the shared cache.

    Args:
        version: Version constraint overriding the settings.
        json: Print the installation record as JSON.
    """
    ctx = CLIContext.get_current()
    server = _server(ctx, _settings(ctx, version=version))

    record = run_async(server.install, console=ctx.error_console)
    if json:
        ctx.console.print_json(format_json(record.model_dump(mode="json")))
        return
    ctx.console.print(f"PostgreSQL {record.version} ({record.platform})")
    ctx.console.print(str(record.path), highlight=False, soft_wrap=True)


def setup(
    *,
    version: Annotated[
        str | None, Parameter(help="Version constraint, e.g. '>=16,<17'.")
    ] = None,
    data_dir: Annotated[
        Path | None, Parameter(name="--data-dir", help="Data directory to initialize.")
    ] = None,
) -> None:
    """Install PostgreSQL and initialize a persistent data directory.

    Args:
        version: Version constraint overriding the settings.
        data_dir: Data directory overriding the settings.
    """
    ctx = CLIContext.get_current()
    settings = _settings(ctx, version=version, data_dir=data_dir, temporary=False)
    server = _server(ctx, settings)

    run_async(server.setup, console=ctx.error_console)
    if server.installation is not None:
        ctx.console.print(f"PostgreSQL {server.installation.version}")
    ctx.console.print(str(server.data_dir), highlight=False, soft_wrap=True)


async def _wait_for_signal() -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for _ in signals:
            return


def run(
    *,
    version: Annotated[
        str | None, Parameter(help="Version constraint, e.g. '>=16,<17'.")
    ] = None,
    data_dir: Annotated[
        Path | None, Parameter(name="--data-dir", help="Data directory to use.")
    ] = None,
    port: Annotated[int | None, Parameter(help="Port to listen on; 0 picks one.")] = None,
    database: Annotated[
        str | None, Parameter(help="Create this database once the server is up.")
    ] = None,
    temporary: Annotated[
        bool | None, Parameter(help="Remove the data directory on exit.")
    ] = None,
) -> None:
    """Run PostgreSQL in the foreground until interrupted.

    Args:
        version: Version constraint overriding the settings.
        data_dir: Data directory overriding the settings.
        port: Port overriding the settings.
        database: Database to create after startup.
        temporary: Whether the data directory is removed on exit.
    """
    ctx = CLIContext.get_current()
    settings = _settings(
        ctx, version=version, data_dir=data_dir, port=port, temporary=temporary
    )
    server = _server(ctx, settings)

    async def _run() -> None:
        async with server:
            if database and not await server.database_exists(database):
                await server.create_database(database)
            current = server.settings
            ctx.console.print(
                f"postgresql://{current.username}@{current.host}:{current.port}/"
                f"{database or 'postgres'}",
                highlight=False,
                soft_wrap=True,
            )
            await _wait_for_signal()

    run_async(_run, console=ctx.error_console)
