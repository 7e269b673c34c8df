# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing
"""Command to print the command line of a PostgreSQL utility."""

from pathlib import Path
from typing import Annotated

from cyclopts import Parameter

from pgembed.archive import find_installation
from pgembed.command import BUILDERS, CommandBuilder, OptionKind

from .._context import CLIContext
from .._shared import ExitCode, exit_with_error


def apply_option(builder: CommandBuilder, token: str) -> CommandBuilder:
    """Apply a ``key`` or ``key=value`` token to a builder.

    A bare key enables a flag. Repeatable and positional options accumulate
    values across tokens.

    Raises:
        KeyError: If the builder has no such option.
        ValueError: If a flag is given a value or another option is not.
    """
    key, sep, value = token.partition("=")
    key = key.strip().lstrip("-").replace("-", "_")
    option = builder.option(key)
    if option.kind is OptionKind.FLAG:
        if sep:
            msg = f"Option {key!r} is a flag and takes no value"
            raise ValueError(msg)
        return builder.set(key, True)  # noqa: FBT003
    if not sep:
        msg = f"Option {key!r} requires a value: {key}=<value>"
        raise ValueError(msg)
    if option.kind in {OptionKind.REPEAT, OptionKind.POSITIONAL}:
        current = builder.get(key)
        values: tuple[object, ...] = (
            tuple(current) if isinstance(current, (list, tuple)) else ()  # pyright: ignore[reportUnknownArgumentType]
        )
        return builder.set(key, (*values, value))
    return builder.set(key, value)


def command(
    program: Annotated[str, Parameter(help="Utility name, e.g. 'vacuumdb'.")],
    /,
    *options: Annotated[str, Parameter(help="Options as key or key=value.")],
    program_dir: Annotated[
        Path | None,
        Parameter(name="--program-dir", help="Directory holding the executable."),
    ] = None,
) -> None:
    """Print the command line of a PostgreSQL utility.

    Without --program-dir the executable is taken from the installation the
    settings select, if one exists.

    Args:
        program: Utility name.
        options: Builder options, e.g. ``all`` or ``jobs=4``.
        program_dir: Directory holding the executable.
    """
    ctx = CLIContext.get_current()
    builder_type = BUILDERS.get(program)
    if builder_type is None:
        known = ", ".join(sorted(BUILDERS))
        exit_with_error(
            f"Unknown program {program!r}. Known programs: {known}",
            ExitCode.NOT_FOUND,
            console=ctx.error_console,
        )

    builder: CommandBuilder = builder_type()
    for token in options:
        try:
            builder = apply_option(builder, token)
        except KeyError:
            exit_with_error(
                f"{program} has no option {token.partition('=')[0]!r}",
                ExitCode.VALIDATION_ERROR,
                console=ctx.error_console,
            )
        except ValueError as e:
            exit_with_error(str(e), ExitCode.VALIDATION_ERROR, console=ctx.error_console)

    default_dir: Path | None = None
    if program_dir is None:
        record = find_installation(ctx.settings)
        default_dir = record.bin_dir if record is not None else None
    else:
        builder = builder.with_program_dir(program_dir)

    ctx.console.print(
        builder.build(default_dir).to_command_string(),
        highlight=False,
        markup=False,
        soft_wrap=True,
    )
