"""Socket helpers for port selection and readiness checks."""

import socket
from typing import cast

import anyio


def find_open_port(host: str = "localhost") -> int:
    """Find an available port by binding to port 0."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        addr = cast("tuple[str, int]", s.getsockname())
        return addr[1]


def is_port_in_use(host: str, port: int) -> bool:
    """Check whether something is already listening on host:port.

    Args:
        host: Host name or address.
        port: TCP port.

    Returns:
        True if a listener accepted a connection.
    """
    try:
        with socket.create_connection((host, port), timeout=0.5):
            return True
    except OSError:
        return False


async def can_connect(host: str, port: int, *, timeout: float = 1.0) -> bool:
    """Try a single TCP connection to host:port.

    Args:
        host: Host name or address.
        port: TCP port.
        timeout: Seconds to wait for the connection.

    Returns:
        True if the connection was accepted.
    """
    with anyio.move_on_after(timeout):
        try:
            stream = await anyio.connect_tcp(host, port)
        except OSError:
            return False
        await stream.aclose()
        return True
    return False
