"""PostgreSQL server supervisor.

The PostgreSQL class owns one server instance: it installs the binaries,
initializes the data directory, starts and stops the server, and runs
administrative operations against it. All state changes go through the
pure transition() function.
"""

import contextlib
import math
import os
import shlex
import signal
import sys
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Self, final

import anyio
import anyio.to_thread
import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

from pgembed.archive import (
    ArchiveInstaller,
    GitHubReleaseIndex,
    InstallationRecord,
    ReleaseIndex,
    VersionResolver,
    find_installation,
    installation_dir,
    is_exact_constraint,
)
from pgembed.archive._installer import DEFAULT_TIMEOUT
from pgembed.command import InitDbBuilder, PgCtlBuilder, PgCtlMode
from pgembed.exceptions import (
    CommandError,
    InitializationFailedError,
    InvalidTransitionError,
    NotRunningError,
    PortInUseError,
    ProcessExitedUnexpectedlyError,
    StartupTimeoutError,
)
from pgembed.extensions import ExtensionRegistry, InstalledExtension
from pgembed.extensions import install as install_extension
from pgembed.settings import Settings
from pgembed.utils import (
    atomic_write_bytes,
    can_connect,
    find_open_port,
    is_port_in_use,
    logger_from_settings,
    remove_tree,
)

from ._client import AsyncpgClient
from ._models import LifecycleEvent, ServerEvent, ServerState, transition
from ._protocol import EventSink, SqlClient

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

PG_VERSION_FILE = "PG_VERSION"
POSTMASTER_PID_FILE = "postmaster.pid"
LOG_FILE_NAME = "postgresql.log"
LOG_TAIL_LINES = 20

_ACTIVE_STATES = frozenset({ServerState.STARTING, ServerState.RUNNING, ServerState.FAILED})
_SET_UP_STATES = frozenset(
    {
        ServerState.INITIALIZED,
        ServerState.STARTING,
        ServerState.RUNNING,
        ServerState.STOPPING,
        ServerState.STOPPED,
    }
)


class _NotReadyError(Exception):
    """The server is not accepting connections yet."""


def read_postmaster_pid(data_dir: Path) -> int | None:
    """Read the postmaster PID from a data directory.

    Returns:
        The PID on the first line of ``postmaster.pid``, or None.
    """
    try:
        first_line = (data_dir / POSTMASTER_PID_FILE).read_text().split("\n", 1)[0]
        return int(first_line.strip())
    except (OSError, ValueError):
        return None


def _pid_alive(pid: int) -> bool:
    if sys.platform == "win32":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _log_size(log_file: Path) -> int:
    try:
        return log_file.stat().st_size
    except OSError:
        return 0


def _read_log_tail(log_file: Path, offset: int = 0, lines: int = LOG_TAIL_LINES) -> str:
    try:
        with log_file.open("rb") as f:
            _ = f.seek(offset)
            content = f.read().decode("utf-8", errors="replace")
    except OSError:
        return ""
    return "\n".join(content.splitlines()[-lines:])


@final
class PostgreSQL:
    """A locally installed, supervised PostgreSQL server.

    Use as an async context manager to set up, start, and tear down a server:

        async with PostgreSQL(Settings(version="16")) as pg:
            await pg.create_database("app")
            print(pg.settings.url("app"))

    A port of 0 in the settings is replaced by a free port when the instance
    is created, so ``settings.port`` is always the port the server uses.
    """

    __slots__: tuple[str, ...] = (
        "_event_sink",
        "_index",
        "_installer",
        "_launched",
        "_logger",
        "_platform",
        "_record",
        "_settings",
        "_sql_client",
        "_state",
    )

    _event_sink: EventSink | None
    _index: ReleaseIndex | None
    _installer: ArchiveInstaller | None
    _launched: bool
    _logger: "FilteringBoundLogger"
    _platform: str | None
    _record: InstallationRecord | None
    _settings: Settings
    _sql_client: SqlClient | None
    _state: ServerState

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        index: ReleaseIndex | None = None,
        installer: ArchiveInstaller | None = None,
        sql_client: SqlClient | None = None,
        event_sink: EventSink | None = None,
        logger: "FilteringBoundLogger | None" = None,
        platform: str | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            settings: Instance settings. Defaults to Settings().
            index: Release index. Defaults to the GitHub index at
                ``settings.releases_url``.
            installer: Archive installer. Created per setup when None.
            sql_client: Client for administrative SQL. Defaults to
                AsyncpgClient.
            event_sink: Optional consumer of lifecycle events.
            logger: Logger. Built from ``settings.logging`` when None.
            platform: Target triple to install for. Detected when None.
        """
        settings = settings or Settings()
        if settings.port == 0:
            settings = settings.model_copy(update={"port": find_open_port(settings.host)})
        self._settings = settings
        self._index = index
        self._installer = installer
        self._sql_client = sql_client
        self._event_sink = event_sink
        self._logger = logger or logger_from_settings(settings.logging, component="postgresql")
        self._platform = platform
        self._record = None
        self._launched = False
        self._state = ServerState.UNINSTALLED

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        """Settings of this instance, with the resolved port."""
        return self._settings

    @property
    def state(self) -> ServerState:
        """Current lifecycle state."""
        return self._state

    @property
    def status(self) -> ServerState:
        """Alias of state."""
        return self._state

    @property
    def installation(self) -> InstallationRecord | None:
        """Record of the installation in use, once installed."""
        return self._record

    @property
    def data_dir(self) -> Path:
        """Server data directory."""
        return self._settings.data_dir

    @property
    def log_file(self) -> Path:
        """Server log written by pg_ctl."""
        return self._settings.data_dir / LOG_FILE_NAME

    @property
    def bin_dir(self) -> Path | None:
        """Directory holding the server executables, once installed."""
        return self._record.bin_dir if self._record is not None else None

    @property
    def pid(self) -> int | None:
        """Postmaster PID while the server is running."""
        return read_postmaster_pid(self.data_dir)

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    async def _apply(self, event: LifecycleEvent, message: str | None = None) -> None:
        previous = self._state
        self._state = transition(previous, event)
        self._logger.info(
            "state_changed",
            lifecycle_event=event.value,
            previous_state=previous.value,
            state=self._state.value,
            message=message,
        )
        if self._event_sink is not None:
            await self._event_sink.write_event(
                ServerEvent.now(
                    previous,
                    self._state,
                    port=self._settings.port,
                    pid=self.pid if self._state is ServerState.RUNNING else None,
                    message=message,
                )
            )

    async def _fail(self, error: BaseException) -> None:
        if self._state is ServerState.FAILED:
            return
        with anyio.CancelScope(shield=True):
            await self._apply(LifecycleEvent.FAIL, message=str(error) or type(error).__name__)

    # -------------------------------------------------------------------------
    # Installation
    # -------------------------------------------------------------------------

    def _find_local_installation(self) -> InstallationRecord | None:
        if not is_exact_constraint(self._settings.version):
            return None
        return find_installation(self._settings, self._platform)

    async def _resolve_and_install(self) -> InstallationRecord:
        local = self._find_local_installation()
        if local is not None:
            self._logger.debug("installation_found", path=str(local.path), version=local.version)
            return local

        async with contextlib.AsyncExitStack() as stack:
            client: httpx.AsyncClient | None = None
            if self._index is None or self._installer is None:
                client = await stack.enter_async_context(
                    httpx.AsyncClient(follow_redirects=True, timeout=DEFAULT_TIMEOUT)
                )
            index = self._index or GitHubReleaseIndex(
                self._settings.releases_url,
                client=client,  # pyright: ignore[reportArgumentType]
                token=os.environ.get("GITHUB_TOKEN"),
                logger=self._logger,
            )
            installer = self._installer or ArchiveInstaller(
                client,
                lock_timeout=self._settings.lock_timeout,
                logger=self._logger,
            )
            resolver = VersionResolver(index, platform=self._platform, logger=self._logger)
            descriptor = await resolver.resolve(self._settings.version)
            return await installer.install(
                descriptor, installation_dir(self._settings, descriptor)
            )

    async def install(self) -> InstallationRecord:
        """Resolve the configured version and install it.

        Moves the server to INSTALLED. Does nothing past that state.

        Returns:
            The installation record.

        Raises:
            VersionNotFoundError: If no release satisfies the version.
            UnsupportedPlatformError: If no artifact exists for this host.
            IndexUnavailableError: If the release index cannot be reached.
            InstallationError: If the download or extraction fails.
        """
        if self._record is None:
            try:
                self._record = await self._resolve_and_install()
            except BaseException as e:
                await self._fail(e)
                raise
        record = self._record
        if self._state in {ServerState.UNINSTALLED, ServerState.FAILED}:
            await self._apply(LifecycleEvent.INSTALL, message=f"PostgreSQL {record.version}")
        return record

    async def _initdb(self, record: InstallationRecord) -> None:
        settings = self._settings
        password_file = settings.password_file_path
        await anyio.to_thread.run_sync(
            lambda: atomic_write_bytes(password_file, settings.password.encode(), mode=0o600)
        )
        settings.data_dir.parent.mkdir(parents=True, exist_ok=True)

        spec = (
            InitDbBuilder()
            .pgdata(settings.data_dir)
            .username(settings.username)
            .pwfile(password_file)
            .auth("password")
            .encoding("UTF8")
            .build(default_dir=record.bin_dir)
        )
        self._logger.info("initdb_started", data_dir=str(settings.data_dir))
        try:
            result = await spec.run(check=False)
        except CommandError as e:
            msg = f"initdb could not be started: {e}"
            raise InitializationFailedError(
                msg, data_dir=settings.data_dir, exit_code=e.exit_code, stderr=e.stderr
            ) from e
        if not result.success:
            msg = f"initdb failed with status {result.exit_code}"
            raise InitializationFailedError(
                msg,
                data_dir=settings.data_dir,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

    async def setup(self) -> None:
        """Install the binaries and initialize the data directory.

        initdb is skipped when the data directory already holds a cluster.
        Calling setup() again after it succeeded does nothing.

        Raises:
            InitializationFailedError: If initdb fails.
            ReleaseError: If the version cannot be resolved.
            InstallationError: If the installation fails.
        """
        if self._state in _SET_UP_STATES:
            return
        record = await self.install()

        try:
            if not (self.data_dir / PG_VERSION_FILE).is_file():
                await self._initdb(record)
            else:
                self._logger.debug("initdb_skipped", data_dir=str(self.data_dir))
        except BaseException as e:
            await self._fail(e)
            raise
        await self._apply(LifecycleEvent.INITIALIZE, message=str(self.data_dir))

    # -------------------------------------------------------------------------
    # Start / stop
    # -------------------------------------------------------------------------

    def _server_options(self) -> str:
        settings = self._settings
        parts = ["-F", "-p", str(settings.port), "-h", settings.host]
        for name, value in sorted(settings.configuration.items()):
            parts.extend(["-c", f"{name}={value}"])
        return shlex.join(parts)

    def _check_exited(self, seen_pid: int | None, log_offset: int) -> int | None:
        """Return the live postmaster PID, or raise if the server has exited.

        A server that has not written its PID file yet is not treated as
        exited unless its log reports the port as taken.
        """
        pid = read_postmaster_pid(self.data_dir)
        if pid is not None and _pid_alive(pid):
            return pid

        log_tail = _read_log_tail(self.log_file, log_offset)
        if "address already in use" in log_tail.lower():
            msg = f"Port {self._settings.port} on {self._settings.host} is already in use"
            raise PortInUseError(msg, host=self._settings.host, port=self._settings.port)
        if seen_pid is None:
            return None
        msg = f"PostgreSQL (pid {seen_pid}) exited during startup"
        raise ProcessExitedUnexpectedlyError(msg, log_tail=log_tail)

    async def _wait_until_ready(self, log_offset: int) -> None:
        settings = self._settings
        seen_pid: int | None = None

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(_NotReadyError),
            stop=stop_after_delay(settings.startup_timeout),
            wait=wait_fixed(settings.probe_interval),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    seen_pid = self._check_exited(seen_pid, log_offset) or seen_pid
                    if not await can_connect(
                        settings.host, settings.port, timeout=settings.probe_interval * 5
                    ):
                        raise _NotReadyError
        except _NotReadyError as e:
            msg = (
                f"PostgreSQL did not accept connections on {settings.host}:"
                f"{settings.port} within {settings.startup_timeout}s"
            )
            raise StartupTimeoutError(
                msg,
                host=settings.host,
                port=settings.port,
                timeout=settings.startup_timeout,
            ) from e

    async def start(self) -> None:
        """Start the server and wait until it accepts connections.

        Raises:
            InvalidTransitionError: If the server is not initialized or stopped.
            PortInUseError: If the port is already bound.
            ProcessExitedUnexpectedlyError: If the server exits while starting.
            StartupTimeoutError: If the server does not become ready in time.
        """
        if self._state is ServerState.RUNNING:
            return
        record = self._record
        if record is None:
            msg = f"Cannot start while the server is {self._state.value}; run setup() first"
            raise InvalidTransitionError(
                msg, state=self._state.value, event=LifecycleEvent.START.value
            )
        await self._apply(LifecycleEvent.START)
        settings = self._settings

        try:
            if await anyio.to_thread.run_sync(is_port_in_use, settings.host, settings.port):
                msg = f"Port {settings.port} on {settings.host} is already in use"
                raise PortInUseError(msg, host=settings.host, port=settings.port)  # noqa: TRY301

            spec = (
                PgCtlBuilder()
                .mode(PgCtlMode.START)
                .pgdata(settings.data_dir)
                .log(self.log_file)
                .options(self._server_options())
                .no_wait()
                .build(default_dir=record.bin_dir)
            )
            log_offset = _log_size(self.log_file)
            self._logger.info("server_starting", host=settings.host, port=settings.port)
            self._launched = True
            try:
                _ = await spec.run()
            except CommandError as e:
                msg = f"pg_ctl start failed: {e}"
                raise ProcessExitedUnexpectedlyError(
                    msg,
                    exit_code=e.exit_code,
                    log_tail=_read_log_tail(self.log_file, log_offset) or e.stderr,
                ) from e
            await self._wait_until_ready(log_offset)
        except BaseException as e:
            await self._fail(e)
            with anyio.CancelScope(shield=True):
                await anyio.to_thread.run_sync(self._kill_postmaster)
            raise

        await self._apply(LifecycleEvent.READY, message=f"listening on {settings.host}:{settings.port}")

    def _kill_postmaster(self) -> None:
        pid = read_postmaster_pid(self.data_dir)
        if pid is None or not _pid_alive(pid):
            return
        self._logger.warning("server_killed", pid=pid)
        if sys.platform == "win32":
            with contextlib.suppress(OSError):
                os.kill(pid, signal.SIGTERM)
        else:
            try:
                os.killpg(pid, signal.SIGKILL)
            except OSError:
                with contextlib.suppress(OSError):
                    os.kill(pid, signal.SIGKILL)
        (self.data_dir / POSTMASTER_PID_FILE).unlink(missing_ok=True)

    async def _graceful_stop(self) -> bool:
        settings = self._settings
        record = self._record
        if record is None:
            return False
        spec = (
            PgCtlBuilder()
            .mode(PgCtlMode.STOP)
            .pgdata(settings.data_dir)
            .shutdown_mode(settings.shutdown_mode)
            .wait()
            .timeout(math.ceil(settings.shutdown_timeout))
            .build(default_dir=record.bin_dir)
        )
        with anyio.move_on_after(settings.shutdown_timeout):
            try:
                result = await spec.run(check=False)
            except CommandError as e:
                self._logger.warning("server_stop_failed", error=str(e))
                return False
            if not result.success:
                self._logger.warning(
                    "server_stop_failed", exit_code=result.exit_code, stderr=result.stderr
                )
            return result.success
        self._logger.warning("server_stop_timeout", timeout=settings.shutdown_timeout)
        return False

    async def stop(self) -> None:
        """Stop the server.

        Runs ``pg_ctl stop`` bounded by the shutdown timeout and kills the
        postmaster if that fails. The shutdown cannot be cancelled once begun.
        Does nothing when the server is already stopped, or when it failed
        before a postmaster was launched; setup() recovers from that state.

        Raises:
            InvalidTransitionError: If the server was never started.
        """
        if self._state is ServerState.STOPPED:
            return
        if self._state is ServerState.FAILED and not self._launched:
            return
        await self._apply(LifecycleEvent.STOP)
        with anyio.CancelScope(shield=True):
            self._logger.info("server_stopping", mode=self._settings.shutdown_mode.value)
            if not await self._graceful_stop():
                await anyio.to_thread.run_sync(self._kill_postmaster)
            self._launched = False
            await self._apply(LifecycleEvent.STOPPED)

    async def restart(self) -> None:
        """Stop and start the server. The data directory is preserved."""
        await self.stop()
        await self.start()

    async def close(self) -> None:
        """Stop the server if needed and remove temporary files.

        The data directory is removed when ``settings.temporary`` is set, along
        with a password file derived from it.
        """
        with anyio.CancelScope(shield=True):
            if self._state in _ACTIVE_STATES:
                await self.stop()
            if self._settings.temporary:
                await anyio.to_thread.run_sync(remove_tree, self.data_dir)
                if self._settings.password_file is None:
                    await anyio.to_thread.run_sync(
                        remove_tree, self._settings.password_file_path
                    )
                self._logger.debug("data_dir_removed", data_dir=str(self.data_dir))

    async def __aenter__(self) -> Self:
        try:
            await self.setup()
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Database administration
    # -------------------------------------------------------------------------

    def _require_running(self) -> SqlClient:
        if self._state is not ServerState.RUNNING:
            msg = f"PostgreSQL is not running (state: {self._state.value})"
            raise NotRunningError(msg, state=self._state.value)
        if self._sql_client is None:
            self._sql_client = AsyncpgClient()
        return self._sql_client

    async def create_database(self, name: str) -> None:
        """Create a database.

        Raises:
            NotRunningError: If the server is not running.
        """
        client = self._require_running()
        self._logger.info("database_create", database=name)
        await client.create_database(self._settings, name)

    async def drop_database(self, name: str) -> None:
        """Drop a database if it exists.

        Raises:
            NotRunningError: If the server is not running.
        """
        client = self._require_running()
        self._logger.info("database_drop", database=name)
        await client.drop_database(self._settings, name)

    async def database_exists(self, name: str) -> bool:
        """Check whether a database exists.

        Raises:
            NotRunningError: If the server is not running.
        """
        client = self._require_running()
        return await client.database_exists(self._settings, name)

    # -------------------------------------------------------------------------
    # Extensions
    # -------------------------------------------------------------------------

    async def install_extension(
        self,
        vendor: str,
        name: str,
        version_constraint: str = "*",
        *,
        registry: ExtensionRegistry | None = None,
    ) -> InstalledExtension:
        """Install an extension into this instance's installation.

        Installs PostgreSQL first if needed. A running server loads new
        libraries only after a restart.

        Raises:
            ExtensionNotFoundError: If the extension cannot be resolved.
            ChecksumMismatchError: If the artifact fails verification.
            LockTimeoutError: If the installation stays locked too long.
        """
        record = await self.install()
        return await install_extension(
            self._settings,
            vendor,
            name,
            version_constraint,
            installation_dir=record.path,
            registry=registry,
            logger=self._logger,
        )
