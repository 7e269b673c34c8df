"""Command builder abstraction for the bundled PostgreSQL utilities.

Each utility has a builder subclass that declares its executable name and an
ordered table of options. Builders are immutable: every fluent method returns
a new builder. Arguments are rendered in table order, so the command line
depends only on which options are set and never on the order of calls.

Example:
    >>> spec = VacuumDbBuilder().dbname("app").analyze().port(5432).build()
    >>> spec.args
    ('--dbname', 'app', '--analyze', '--port', '5432')
"""

import dataclasses
import os
import sys
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

import anyio

from pgembed.exceptions import CommandError

# Maximum stderr size kept on a CommandError
MAX_ERROR_OUTPUT: int = 8192


class OptionKind(StrEnum):
    """How an option is rendered on the command line.

    - FLAG: ``flag`` when enabled
    - VALUE: ``flag value``
    - JOINED: ``flag=value``
    - REPEAT: ``flag value`` once per value
    - POSITIONAL: ``value`` (one argument per value for sequences)
    """

    FLAG = "flag"
    VALUE = "value"
    JOINED = "joined"
    REPEAT = "repeat"
    POSITIONAL = "positional"


@dataclass(frozen=True, slots=True)
class Option:
    """One entry of a builder's option table.

    Attributes:
        key: Name of the fluent method that sets the option.
        flag: Command-line flag; unused for positional options.
        kind: Rendering rule.
        doc: Short description, used as the fluent method's docstring.
    """

    key: str
    flag: str = ""
    kind: OptionKind = OptionKind.VALUE
    doc: str = ""

    def render(self, value: object) -> list[str]:
        """Render a configured value into command-line arguments."""
        match self.kind:
            case OptionKind.FLAG:
                return [self.flag] if value else []
            case OptionKind.VALUE:
                return [self.flag, _to_arg(value)]
            case OptionKind.JOINED:
                return [f"{self.flag}={_to_arg(value)}"]
            case OptionKind.REPEAT:
                return [arg for item in _as_sequence(value) for arg in (self.flag, _to_arg(item))]
            case OptionKind.POSITIONAL:
                return [_to_arg(item) for item in _as_sequence(value)]


def flag(key: str, name: str, doc: str = "") -> Option:
    """Declare a boolean switch."""
    return Option(key, name, OptionKind.FLAG, doc)


def value(key: str, name: str, doc: str = "") -> Option:
    """Declare an option taking a separate value argument."""
    return Option(key, name, OptionKind.VALUE, doc)


def joined(key: str, name: str, doc: str = "") -> Option:
    """Declare an option rendered as ``flag=value``."""
    return Option(key, name, OptionKind.JOINED, doc)


def repeat(key: str, name: str, doc: str = "") -> Option:
    """Declare an option that may be given more than once."""
    return Option(key, name, OptionKind.REPEAT, doc)


def positional(key: str, doc: str = "") -> Option:
    """Declare a positional argument."""
    return Option(key, "", OptionKind.POSITIONAL, doc)


def _to_arg(value: object) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def _as_sequence(value: object) -> Sequence[object]:
    if isinstance(value, (list, tuple)):
        return value  # pyright: ignore[reportUnknownVariableType]
    return (value,)


def _quote(arg: str) -> str:
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of running a command.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_code == 0


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """A finalized, immutable command invocation.

    Attributes:
        program: Executable name.
        program_dir: Directory holding the executable; looked up on PATH
            when None.
        args: Arguments in rendering order.
        env: Environment overrides applied on top of the current environment.
    """

    program: str
    program_dir: Path | None = None
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict, hash=False)

    @property
    def executable(self) -> str:
        """Path of the executable, or its bare name when no directory is set."""
        if self.program_dir is None:
            return self.program
        name = f"{self.program}.exe" if sys.platform == "win32" else self.program
        return os.path.join(self.program_dir, name)  # noqa: PTH118

    @property
    def argv(self) -> list[str]:
        """Full argument vector including the executable."""
        return [self.executable, *self.args]

    def to_command_string(self) -> str:
        """Render the command with every token double-quoted."""
        return " ".join(_quote(token) for token in self.argv)

    async def run(
        self,
        *,
        check: bool = True,
        cwd: Path | None = None,
        input: bytes | None = None,  # noqa: A002
    ) -> CommandResult:
        """Execute the command and capture its output.

        Args:
            check: Raise CommandError on a non-zero exit status.
            cwd: Working directory.
            input: Bytes written to the process's standard input.

        Returns:
            The captured result.

        Raises:
            CommandError: If the executable cannot be started, or if `check`
                is set and the exit status is non-zero.
        """
        env = {**os.environ, **self.env}
        try:
            completed = await anyio.run_process(
                self.argv,
                input=input,
                check=False,
                cwd=cwd,
                env=env,
            )
        except OSError as e:
            msg = f"Cannot run {self.program}: {e}"
            raise CommandError(
                msg, command=self.to_command_string(), exit_code=None, stderr=str(e)
            ) from e

        result = CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout.decode("utf-8", errors="replace"),
            stderr=completed.stderr.decode("utf-8", errors="replace"),
        )
        if check and not result.success:
            msg = f"{self.program} exited with status {result.exit_code}"
            raise CommandError(
                msg,
                command=self.to_command_string(),
                exit_code=result.exit_code,
                stderr=result.stderr[-MAX_ERROR_OUTPUT:],
            )
        return result


def _make_setter(option: Option) -> Callable[..., Any]:  # pyright: ignore[reportExplicitAny]
    key = option.key
    if option.kind is OptionKind.FLAG:

        def setter(self: "CommandBuilder", enabled: bool = True) -> "CommandBuilder":  # noqa: FBT001, FBT002
            return self.set(key, enabled)

    elif option.kind is OptionKind.REPEAT:

        def setter(self: "CommandBuilder", *values: object) -> "CommandBuilder":
            current = self.get(key, ())
            return self.set(key, (*_as_sequence(current), *values))

    else:

        def setter(self: "CommandBuilder", value: object) -> "CommandBuilder":
            return self.set(key, value)

    setter.__name__ = key
    setter.__doc__ = option.doc or None
    return setter


@dataclass(frozen=True, slots=True)
class CommandBuilder:
    """Base class for utility command builders.

    Subclasses set PROGRAM and OPTIONS. A fluent method is generated for every
    option that the subclass does not define itself. Setting an option to
    None or False unsets it.
    """

    PROGRAM: ClassVar[str] = ""
    OPTIONS: ClassVar[tuple[Option, ...]] = ()

    _program_dir: Path | None = None
    _options: tuple[tuple[str, object], ...] = ()
    _env: tuple[tuple[str, str], ...] = ()

    def __init_subclass__(cls) -> None:
        seen: set[str] = set()
        for option in cls.OPTIONS:
            if option.key in seen:
                msg = f"{cls.__name__} declares option {option.key!r} twice"
                raise TypeError(msg)
            seen.add(option.key)
            if hasattr(CommandBuilder, option.key):
                msg = f"{cls.__name__} option {option.key!r} shadows a builder method"
                raise TypeError(msg)
            if option.key not in cls.__dict__:
                setter = _make_setter(option)
                setter.__qualname__ = f"{cls.__qualname__}.{option.key}"
                setattr(cls, option.key, setter)

    @classmethod
    def option(cls, key: str) -> Option:
        """Look up an option declaration by key.

        Raises:
            KeyError: If the builder has no such option.
        """
        for option in cls.OPTIONS:
            if option.key == key:
                return option
        msg = f"{cls.__name__} has no option {key!r}"
        raise KeyError(msg)

    def program(self) -> str:
        """Canonical executable name."""
        return self.PROGRAM

    def program_dir(self) -> Path | None:
        """Directory override for the executable, if any."""
        return self._program_dir

    def with_program_dir(self, path: Path | str | None) -> Self:
        """Return a builder that runs the executable from `path`."""
        return dataclasses.replace(
            self, _program_dir=Path(path) if path is not None else None
        )

    def env(self) -> dict[str, str]:
        """Environment overrides for the command."""
        return dict(self._env)

    def with_env(self, key: str, value: str) -> Self:
        """Return a builder with an environment variable set."""
        env = {**dict(self._env), key: value}
        return dataclasses.replace(self, _env=tuple(sorted(env.items())))

    def get(self, key: str, default: object = None) -> object:
        """Get the configured value of an option."""
        return dict(self._options).get(key, default)

    def is_set(self, key: str) -> bool:
        """Whether an option has been set."""
        return any(k == key for k, _ in self._options)

    def set(self, key: str, value: object) -> Self:
        """Return a builder with an option set, or unset for None or False.

        Raises:
            KeyError: If the builder has no such option.
        """
        _ = self.option(key)
        options = {k: v for k, v in self._options if k != key}
        if value is not None and value is not False:
            options[key] = value
        return dataclasses.replace(self, _options=tuple(sorted(options.items())))

    def _iter_args(self) -> Iterator[str]:
        configured = dict(self._options)
        for option in self.OPTIONS:
            if option.key in configured:
                yield from option.render(configured[option.key])

    def args(self) -> tuple[str, ...]:
        """Render the configured options in table order."""
        return tuple(self._iter_args())

    def build(self, default_dir: Path | None = None) -> CommandSpec:
        """Finalize the builder into a command.

        Args:
            default_dir: Executable directory used when none was set on the
                builder.

        Returns:
            The immutable command.
        """
        return CommandSpec(
            program=self.program(),
            program_dir=self._program_dir or default_dir,
            args=self.args(),
            env=self.env(),
        )
