"""Settings models.

This module defines the immutable Settings model threaded through every
pgembed component, along with its nested logging section and enums.
"""

import secrets
import tempfile
import uuid
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self
from urllib.parse import quote

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pgembed.exceptions import SettingsError

from ._loader import deep_merge, find_settings_file, parse_env_vars, read_toml_file


DEFAULT_RELEASES_URL = (
    "https://api.github.com/repos/theseus-rs/postgresql-binaries/releases"
)


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ShutdownMode(StrEnum):
    """pg_ctl shutdown modes accepted by the supervisor.

    - FAST: roll back active transactions and disconnect clients
    - SMART: wait for all clients to disconnect
    - IMMEDIATE: abort without a clean shutdown; recovery runs on next start
    """

    FAST = "fast"
    SMART = "smart"
    IMMEDIATE = "immediate"


class LoggingSettings(BaseModel):
    """Logging settings section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""


def default_installation_root() -> Path:
    """Get the default directory that holds cached PostgreSQL installations."""
    return platformdirs.user_data_path("pgembed") / "postgresql"


def _default_data_dir() -> Path:
    return Path(tempfile.gettempdir()) / f"pgembed-{uuid.uuid4().hex}"


def _generate_password() -> str:
    return secrets.token_urlsafe(16)


class Settings(BaseModel):
    """Immutable configuration for one PostgreSQL instance.

    Created once by the caller and never mutated. Use ``model_copy(update=...)``
    to derive a variant.

    Attributes:
        version: Version constraint (``packaging`` specifier syntax, a bare
            version for an exact match, or ``*`` for the latest release).
        releases_url: Release index endpoint.
        installation_root: Root of the shared installation cache.
        data_dir: Server data directory.
        host: Address the server listens on.
        port: Port the server listens on; 0 picks a free port.
        username: Superuser name created by initdb.
        password: Superuser password.
        password_file: Where the password file for initdb is written.
            Defaults to a file next to the data directory.
        startup_timeout: Seconds to wait for the server to accept connections.
        shutdown_timeout: Seconds to wait for a graceful shutdown.
        shutdown_mode: Graceful shutdown mode.
        probe_interval: Seconds between readiness probes.
        lock_timeout: Seconds to wait for another process's install.
        temporary: Remove the data directory when the instance is closed.
        configuration: Server parameters passed as ``-c name=value``.
        logging: Logging section.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    version: str = "*"
    releases_url: str = DEFAULT_RELEASES_URL
    installation_root: Path = Field(default_factory=default_installation_root)
    data_dir: Path = Field(default_factory=_default_data_dir)
    host: str = "localhost"
    port: int = Field(default=0, ge=0, le=65535)
    username: str = "postgres"
    password: str = Field(default_factory=_generate_password, repr=False)
    password_file: Path | None = None
    startup_timeout: float = Field(default=30.0, gt=0)
    shutdown_timeout: float = Field(default=10.0, gt=0)
    shutdown_mode: ShutdownMode = ShutdownMode.FAST
    probe_interval: float = Field(default=0.1, gt=0)
    lock_timeout: float = Field(default=300.0, gt=0)
    temporary: bool = True
    configuration: dict[str, str] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def password_file_path(self) -> Path:
        """Return the password file path, deriving it from the data directory."""
        if self.password_file is not None:
            return self.password_file
        return self.data_dir.with_name(f"{self.data_dir.name}.pgpass")

    def url(self, database: str) -> str:
        """Build a ``postgresql://`` connection URL for a database.

        Args:
            database: Database name.

        Returns:
            Connection URL carrying the superuser credentials.
        """
        user = quote(self.username, safe="")
        password = quote(self.password, safe="")
        return (
            f"postgresql://{user}:{password}@{self.host}:{self.port}/"
            f"{quote(database, safe='')}"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:  # pyright: ignore[reportExplicitAny]
        """Create settings from a dictionary.

        Args:
            data: Dictionary of settings values.

        Returns:
            Validated settings.

        Raises:
            SettingsError: If a value fails validation.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid settings: {e}"
            raise SettingsError(msg) from e

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        *,
        include_env: bool = True,
        environ: dict[str, str] | None = None,
        **overrides: Any,  # pyright: ignore[reportExplicitAny]
    ) -> Self:
        """Load settings from a file, the environment, and explicit overrides.

        Precedence, highest first: `overrides`, ``PGEMBED_*`` environment
        variables, the settings file, model defaults.

        Args:
            path: Settings file. Discovered with find_settings_file() if None.
            include_env: Whether to read ``PGEMBED_*`` environment variables.
            environ: Mapping to read instead of ``os.environ``.
            **overrides: Highest-precedence values.

        Returns:
            Validated settings.

        Raises:
            FileNotFoundError: If an explicit `path` does not exist.
            SettingsLoadError: If the settings file cannot be parsed.
            SettingsError: If the merged values fail validation.
        """
        data: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

        settings_file = path if path is not None else find_settings_file()
        if settings_file is not None:
            data = deep_merge(data, read_toml_file(settings_file))

        if include_env:
            data = deep_merge(data, parse_env_vars(environ=environ))

        if overrides:
            data = deep_merge(data, overrides)

        return cls.from_dict(data)
