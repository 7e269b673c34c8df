import socket
from collections.abc import Iterator

import pytest

from pgembed.utils import can_connect, find_open_port, is_port_in_use

HOST = "127.0.0.1"


@pytest.fixture
def listener() -> Iterator[socket.socket]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind((HOST, 0))
    sock.listen(4)
    yield sock
    sock.close()


class TestFindOpenPort:
    def test_returns_bindable_port(self) -> None:
        port = find_open_port(HOST)

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((HOST, port))


class TestPortChecks:
    def test_port_in_use(self, listener: socket.socket) -> None:
        assert is_port_in_use(HOST, listener.getsockname()[1])

    def test_port_free(self) -> None:
        assert not is_port_in_use(HOST, find_open_port(HOST))

    @pytest.mark.anyio
    async def test_can_connect(self, listener: socket.socket) -> None:
        assert await can_connect(HOST, listener.getsockname()[1])

    @pytest.mark.anyio
    async def test_cannot_connect(self) -> None:
        assert not await can_connect(HOST, find_open_port(HOST), timeout=0.5)
