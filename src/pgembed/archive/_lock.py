"""Cross-process directory lock.

A DirectoryLock holds an exclusive advisory lock on a sidecar file
``<directory>.lock`` so that only one process installs into a directory at a
time. The lock file is never deleted; unlinking it while another process is
waiting would let two holders lock different inodes.
"""

import os
import sys
from pathlib import Path
from types import TracebackType
from typing import IO, TYPE_CHECKING, Self, final

import anyio
import anyio.to_thread

from pgembed.exceptions import InstallationIOError, LockTimeoutError

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


def lock_path_for(directory: Path) -> Path:
    """Get the sidecar lock file path for a directory."""
    return directory.with_name(f"{directory.name}.lock")


@final
class DirectoryLock:
    """Exclusive cross-process lock scoped to one directory.

    Acquisition polls a non-blocking lock at a fixed interval until the
    timeout expires. Use as an async context manager:

        async with DirectoryLock(target_dir, timeout=60):
            ...
    """

    __slots__: tuple[str, ...] = (
        "_directory",
        "_handle",
        "_lock_path",
        "_logger",
        "_poll_interval",
        "_timeout",
    )

    _directory: Path
    _handle: IO[bytes] | None
    _lock_path: Path
    _logger: "FilteringBoundLogger | None"
    _poll_interval: float
    _timeout: float

    def __init__(
        self,
        directory: Path,
        *,
        timeout: float = 300.0,
        poll_interval: float = 0.1,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the lock.

        Args:
            directory: Directory the lock protects.
            timeout: Seconds to wait for the lock before giving up.
            poll_interval: Seconds between acquisition attempts.
            logger: Optional logger.
        """
        self._directory = directory
        self._lock_path = lock_path_for(directory)
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._logger = logger
        self._handle = None

    @property
    def path(self) -> Path:
        """The sidecar lock file."""
        return self._lock_path

    @property
    def locked(self) -> bool:
        """Whether this instance currently holds the lock."""
        return self._handle is not None

    def _open(self) -> IO[bytes]:
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            return self._lock_path.open("a+b")
        except OSError as e:
            msg = f"Cannot open lock file {self._lock_path}: {e}"
            raise InstallationIOError(msg, path=self._lock_path, cause=e) from e

    @staticmethod
    def _try_lock(handle: IO[bytes]) -> bool:
        try:
            if sys.platform == "win32":
                _ = handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except (BlockingIOError, PermissionError):
            return False
        return True

    @staticmethod
    def _unlock(handle: IO[bytes]) -> None:
        if sys.platform == "win32":
            _ = handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    async def acquire(self) -> None:
        """Acquire the lock, waiting up to the configured timeout.

        Raises:
            LockTimeoutError: If another holder keeps the lock past the timeout.
            InstallationIOError: If the lock file cannot be opened.
            RuntimeError: If this instance already holds the lock.
        """
        if self._handle is not None:
            msg = f"Lock already held: {self._lock_path}"
            raise RuntimeError(msg)

        handle = await anyio.to_thread.run_sync(self._open)
        deadline = anyio.current_time() + self._timeout
        waited = False
        try:
            while not await anyio.to_thread.run_sync(self._try_lock, handle):
                if anyio.current_time() >= deadline:
                    msg = (
                        f"Timed out after {self._timeout}s waiting for lock "
                        f"on {self._directory}"
                    )
                    raise LockTimeoutError(  # noqa: TRY301
                        msg, path=self._directory, timeout=self._timeout
                    )
                if not waited and self._logger:
                    self._logger.info("lock_waiting", path=str(self._lock_path))
                waited = True
                await anyio.sleep(self._poll_interval)
        except BaseException:
            handle.close()
            raise

        self._handle = handle
        if self._logger:
            self._logger.debug("lock_acquired", path=str(self._lock_path), pid=os.getpid())

    async def release(self) -> None:
        """Release the lock. Does nothing if it is not held."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            self._unlock(handle)
        finally:
            handle.close()
        if self._logger:
            self._logger.debug("lock_released", path=str(self._lock_path))

    async def __aenter__(self) -> Self:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        with anyio.CancelScope(shield=True):
            await self.release()
