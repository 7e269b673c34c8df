from pathlib import Path

import pytest

from pgembed.archive import DirectoryLock, lock_path_for
from pgembed.exceptions import LockTimeoutError

pytestmark = pytest.mark.anyio


class TestDirectoryLock:
    async def test_creates_sidecar_lock_file(self, tmp_path: Path) -> None:
        target = tmp_path / "16.4.0"

        async with DirectoryLock(target) as lock:
            assert lock.locked
            assert lock.path == lock_path_for(target)
            assert lock.path.name == "16.4.0.lock"
            assert lock.path.is_file()

        assert not lock.locked
        assert lock.path.exists()

    async def test_second_holder_times_out(self, tmp_path: Path) -> None:
        target = tmp_path / "16.4.0"

        async with DirectoryLock(target):
            contender = DirectoryLock(target, timeout=0.2, poll_interval=0.05)
            with pytest.raises(LockTimeoutError) as exc_info:
                await contender.acquire()

        assert exc_info.value.path == target
        assert exc_info.value.timeout == 0.2
        assert not contender.locked

    async def test_lock_is_reusable_after_release(self, tmp_path: Path) -> None:
        target = tmp_path / "16.4.0"
        first = DirectoryLock(target)
        await first.acquire()
        await first.release()

        async with DirectoryLock(target, timeout=0.2) as second:
            assert second.locked

    async def test_double_acquire_raises(self, tmp_path: Path) -> None:
        lock = DirectoryLock(tmp_path / "16.4.0")
        await lock.acquire()
        try:
            with pytest.raises(RuntimeError, match="already held"):
                await lock.acquire()
        finally:
            await lock.release()

    async def test_release_without_acquire_is_noop(self, tmp_path: Path) -> None:
        await DirectoryLock(tmp_path / "16.4.0").release()
