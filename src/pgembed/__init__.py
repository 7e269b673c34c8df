"""Install, run, and tear down a local PostgreSQL server.

Example:
    >>> from pgembed import PostgreSQL, Settings
    >>> async with PostgreSQL(Settings(version=">=16,<17")) as pg:
    ...     await pg.create_database("app")
    ...     url = pg.settings.url("app")
"""

from pgembed.command import BUILDERS, CommandBuilder, CommandSpec
from pgembed.exceptions import PgEmbedError
from pgembed.settings import Settings, ShutdownMode
from pgembed.supervisor import PostgreSQL, ServerEvent, ServerState

__all__ = [
    "BUILDERS",
    "CommandBuilder",
    "CommandSpec",
    "PgEmbedError",
    "PostgreSQL",
    "ServerEvent",
    "ServerState",
    "Settings",
    "ShutdownMode",
]
