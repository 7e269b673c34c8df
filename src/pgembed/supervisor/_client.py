"""Default SQL client built on asyncpg.

asyncpg is an optional dependency (``pgembed[asyncpg]``) and is imported
when the client first connects.
"""

from typing import TYPE_CHECKING, Any, final

from pgembed.exceptions import ServerError
from pgembed.settings import Settings

if TYPE_CHECKING:
    import asyncpg

MAINTENANCE_DATABASE = "postgres"


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier."""
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


@final
class AsyncpgClient:
    """SqlClient implementation that connects with asyncpg."""

    __slots__: tuple[str, ...] = ("_connect_timeout", "_database")

    def __init__(
        self,
        *,
        database: str = MAINTENANCE_DATABASE,
        connect_timeout: float = 10.0,
    ) -> None:
        """Initialize the client.

        Args:
            database: Database used for administrative connections.
            connect_timeout: Seconds to wait for a connection.
        """
        self._database = database
        self._connect_timeout = connect_timeout

    async def _connect(self, settings: Settings) -> "asyncpg.Connection[Any]":  # pyright: ignore[reportExplicitAny]
        try:
            import asyncpg  # noqa: PLC0415
        except ImportError as e:
            msg = "The default SQL client requires asyncpg: pip install 'pgembed[asyncpg]'"
            raise ServerError(msg) from e

        return await asyncpg.connect(
            host=settings.host,
            port=settings.port,
            user=settings.username,
            password=settings.password,
            database=self._database,
            timeout=self._connect_timeout,
        )

    async def create_database(self, settings: Settings, name: str) -> None:
        """Create a database."""
        conn = await self._connect(settings)
        try:
            _ = await conn.execute(f"CREATE DATABASE {quote_identifier(name)}")
        finally:
            await conn.close()

    async def drop_database(self, settings: Settings, name: str) -> None:
        """Drop a database if it exists."""
        conn = await self._connect(settings)
        try:
            _ = await conn.execute(f"DROP DATABASE IF EXISTS {quote_identifier(name)}")
        finally:
            await conn.close()

    async def database_exists(self, settings: Settings, name: str) -> bool:
        """Check whether a database exists."""
        conn = await self._connect(settings)
        try:
            row = await conn.fetchval(
                "SELECT 1 FROM pg_database WHERE datname = $1", name
            )
        finally:
            await conn.close()
        return row is not None
