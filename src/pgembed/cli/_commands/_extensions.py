# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
"""Extension commands: install, uninstall, and list."""

from typing import Annotated

from cyclopts import App, Parameter
from rich.table import Table

from pgembed import extensions
from pgembed.exceptions import PgEmbedError

from .._context import CLIContext
from .._shared import ExitCode, exit_code_for, exit_with_error, format_json, run_async

app = App(name="extensions", help="Install and list PostgreSQL extensions", help_on_error=True)


@app.command(name="install")
def install_extension(
    vendor: Annotated[str, Parameter(help="Registry vendor, e.g. 'tensor-chord'.")],
    name: Annotated[str, Parameter(help="Extension name, e.g. 'pgvecto.rs'.")],
    version: Annotated[str, Parameter(help="Extension version constraint.")] = "*",
) -> None:
    """Install an extension into the selected PostgreSQL installation.

    Restart a running server to load new libraries.

    Args:
        vendor: Registry vendor.
        name: Extension name.
        version: Extension version constraint.
    """
    ctx = CLIContext.get_current()

    async def _install() -> extensions.InstalledExtension:
        return await extensions.install(
            ctx.settings, vendor, name, version, logger=ctx.logger
        )

    installed = run_async(_install, console=ctx.error_console)
    ctx.console.print(
        f"Installed {installed.vendor}/{installed.name} {installed.version} "
        f"({len(installed.files)} files)",
        highlight=False,
    )


@app.command(name="uninstall")
def uninstall_extension(
    vendor: Annotated[str, Parameter(help="Registry vendor.")],
    name: Annotated[str, Parameter(help="Extension name.")],
) -> None:
    """Remove an extension's files from the selected installation.

    Args:
        vendor: Registry vendor.
        name: Extension name.
    """
    ctx = CLIContext.get_current()

    async def _uninstall() -> extensions.InstalledExtension | None:
        return await extensions.uninstall(ctx.settings, vendor, name)

    removed = run_async(_uninstall, console=ctx.error_console)
    if removed is None:
        exit_with_error(
            f"Extension {vendor}/{name} is not installed",
            ExitCode.NOT_FOUND,
            console=ctx.error_console,
        )
    ctx.console.print(f"Removed {vendor}/{name} {removed.version}", highlight=False)


@app.command(name="list")
def list_extensions(
    *,
    available: Annotated[
        bool, Parameter(help="List extensions the registry offers instead.")
    ] = False,
    json: Annotated[bool, Parameter(help="Print as JSON.")] = False,
) -> None:
    """List installed extensions, or the extensions available to install.

    Args:
        available: List registry entries instead of installed extensions.
        json: Print as JSON.
    """
    ctx = CLIContext.get_current()

    if available:
        entries = run_async(
            lambda: extensions.get_available_extensions(ctx.settings),
            console=ctx.error_console,
        )
        if json:
            ctx.console.print_json(
                format_json(
                    [
                        {"vendor": e.vendor, "name": e.name, "description": e.description}
                        for e in entries
                    ]
                )
            )
            return
        table = Table("Vendor", "Name", "Source")
        for entry in entries:
            table.add_row(entry.vendor, entry.name, entry.description)
        ctx.console.print(table)
        return

    try:
        installed = extensions.get_installed_extensions(ctx.settings)
    except PgEmbedError as e:
        exit_with_error(str(e), exit_code_for(e), console=ctx.error_console)

    if json:
        ctx.console.print_json(
            format_json([extension.model_dump(mode="json") for extension in installed])
        )
        return
    if not installed:
        ctx.console.print("No extensions installed")
        return
    table = Table("Vendor", "Name", "Version", "Files")
    for extension in installed:
        table.add_row(
            extension.vendor, extension.name, extension.version, str(len(extension.files))
        )
    ctx.console.print(table)
