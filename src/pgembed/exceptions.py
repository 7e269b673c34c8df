"""pgembed exceptions."""

from pathlib import Path


class PgEmbedError(Exception):
    """Base exception for pgembed errors."""


# =============================================================================
# Settings Exceptions
# =============================================================================


class SettingsError(PgEmbedError):
    """Base exception for settings errors."""


class SettingsLoadError(SettingsError):
    """Raised when a settings file cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


# =============================================================================
# Release Resolution Exceptions
# =============================================================================


class ReleaseError(PgEmbedError):
    """Base exception for release resolution errors."""


class VersionNotFoundError(ReleaseError, LookupError):
    """Raised when no published version satisfies a constraint.

    Attributes:
        constraint: The version constraint that matched nothing.
    """

    def __init__(self, message: str, *, constraint: str) -> None:
        """Initialize with error message and the failing constraint."""
        super().__init__(message)
        self.constraint: str = constraint


class UnsupportedPlatformError(ReleaseError):
    """Raised when no artifact exists for the detected platform.

    Attributes:
        platform: The target triple (or raw machine/system pair) that failed.
        version: The selected version, if resolution got that far.
    """

    def __init__(
        self, message: str, *, platform: str, version: str | None = None
    ) -> None:
        """Initialize with error message and platform context."""
        super().__init__(message)
        self.platform: str = platform
        self.version: str | None = version


class IndexUnavailableError(ReleaseError):
    """Raised when the remote release index cannot be reached.

    Attributes:
        url: The index URL that failed.
        cause: The underlying transport error.
    """

    def __init__(
        self, message: str, *, url: str, cause: Exception | None = None
    ) -> None:
        """Initialize with error message and index context."""
        super().__init__(message)
        self.url: str = url
        self.cause: Exception | None = cause


# =============================================================================
# Installation Exceptions
# =============================================================================


class InstallationError(PgEmbedError):
    """Base exception for archive installation errors."""


class DownloadError(InstallationError):
    """Raised when an artifact download fails. Callers may retry.

    Attributes:
        url: The artifact URL.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and download context."""
        super().__init__(message)
        self.url: str = url
        self.status_code: int | None = status_code
        self.cause: Exception | None = cause


class ChecksumMismatchError(InstallationError):
    """Raised when a downloaded artifact fails checksum verification.

    Attributes:
        expected: The published checksum.
        actual: The checksum computed from the download.
    """

    def __init__(self, message: str, *, expected: str, actual: str) -> None:
        """Initialize with error message and both checksums."""
        super().__init__(message)
        self.expected: str = expected
        self.actual: str = actual


class ExtractionError(InstallationError):
    """Raised when an archive cannot be extracted.

    Attributes:
        archive: Path to the archive being extracted.
    """

    def __init__(
        self, message: str, *, archive: Path, cause: Exception | None = None
    ) -> None:
        """Initialize with error message and archive context."""
        super().__init__(message)
        self.archive: Path = archive
        self.cause: Exception | None = cause


class LockTimeoutError(InstallationError, TimeoutError):
    """Raised when another process holds an installation lock for too long.

    Attributes:
        path: The locked directory.
        timeout: Seconds waited before giving up.
    """

    def __init__(self, message: str, *, path: Path, timeout: float) -> None:
        """Initialize with error message and lock context."""
        super().__init__(message)
        self.path: Path = path
        self.timeout: float = timeout


class InstallationIOError(InstallationError, OSError):
    """Raised when the installation layout cannot be read or written.

    Attributes:
        path: The path involved in the failed operation.
    """

    def __init__(
        self, message: str, *, path: Path, cause: Exception | None = None
    ) -> None:
        """Initialize with error message and path context."""
        super().__init__(message)
        self.path: Path = path
        self.cause: Exception | None = cause


# =============================================================================
# Command Exceptions
# =============================================================================


class CommandError(PgEmbedError):
    """Raised when an invoked utility exits with a non-zero status.

    Attributes:
        command: The rendered command line.
        exit_code: The process exit code.
        stderr: Captured standard error output.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        exit_code: int | None,
        stderr: str = "",
    ) -> None:
        """Initialize with error message and process context."""
        super().__init__(message)
        self.command: str = command
        self.exit_code: int | None = exit_code
        self.stderr: str = stderr


# =============================================================================
# Server Lifecycle Exceptions
# =============================================================================


class ServerError(PgEmbedError):
    """Base exception for server lifecycle errors."""


class InvalidTransitionError(ServerError):
    """Raised when a lifecycle event is not valid for the current state.

    Attributes:
        state: The state the server was in.
        event: The rejected event.
    """

    def __init__(self, message: str, *, state: str, event: str) -> None:
        """Initialize with error message and transition context."""
        super().__init__(message)
        self.state: str = state
        self.event: str = event


class InitializationFailedError(ServerError):
    """Raised when initdb exits with a non-zero status.

    Attributes:
        data_dir: The data directory being initialized.
        exit_code: The initdb exit code.
        stderr: Captured initdb error output.
    """

    def __init__(
        self,
        message: str,
        *,
        data_dir: Path,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialize with error message and initdb context."""
        super().__init__(message)
        self.data_dir: Path = data_dir
        self.exit_code: int | None = exit_code
        self.stderr: str = stderr


class StartupTimeoutError(ServerError, TimeoutError):
    """Raised when the server does not accept connections before the deadline.

    Attributes:
        host: The probed host.
        port: The probed port.
        timeout: Seconds waited.
    """

    def __init__(self, message: str, *, host: str, port: int, timeout: float) -> None:
        """Initialize with error message and probe context."""
        super().__init__(message)
        self.host: str = host
        self.port: int = port
        self.timeout: float = timeout


class PortInUseError(ServerError):
    """Raised when the configured port is already bound by another process.

    Attributes:
        host: The configured host.
        port: The configured port.
    """

    def __init__(self, message: str, *, host: str, port: int) -> None:
        """Initialize with error message and endpoint context."""
        super().__init__(message)
        self.host: str = host
        self.port: int = port


class ProcessExitedUnexpectedlyError(ServerError):
    """Raised when the server process exits while it was expected to run.

    Attributes:
        exit_code: Exit code of the controlling process, if known.
        log_tail: Last lines of the server log, if available.
    """

    def __init__(
        self, message: str, *, exit_code: int | None = None, log_tail: str = ""
    ) -> None:
        """Initialize with error message and process context."""
        super().__init__(message)
        self.exit_code: int | None = exit_code
        self.log_tail: str = log_tail


class NotRunningError(ServerError):
    """Raised when an operation requires a running server.

    Attributes:
        state: The state the server was in.
    """

    def __init__(self, message: str, *, state: str) -> None:
        """Initialize with error message and the current state."""
        super().__init__(message)
        self.state: str = state


# =============================================================================
# Extension Exceptions
# =============================================================================


class ExtensionError(PgEmbedError):
    """Base exception for extension errors."""


class ExtensionNotFoundError(ExtensionError, LookupError):
    """Raised when an extension cannot be resolved from the registry.

    Attributes:
        vendor: The requested vendor.
        name: The requested extension name.
        constraint: The version constraint, if one was given.
    """

    def __init__(
        self,
        message: str,
        *,
        vendor: str,
        name: str,
        constraint: str | None = None,
    ) -> None:
        """Initialize with error message and extension identity."""
        super().__init__(message)
        self.vendor: str = vendor
        self.name: str = name
        self.constraint: str | None = constraint
