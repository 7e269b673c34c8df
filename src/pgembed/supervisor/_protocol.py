"""Protocol definitions for the server supervisor.

This module defines the interfaces that decouple the supervisor from its
collaborators:
- EventSink: Consumes lifecycle events for logging or display
- SqlClient: Issues administrative SQL against a running server
"""

from typing import Protocol, runtime_checkable

from pgembed.settings import Settings

from ._models import ServerEvent


@runtime_checkable
class EventSink(Protocol):
    """Protocol for consuming server lifecycle events."""

    async def write_event(self, event: ServerEvent) -> None:
        """Record a lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        ...


@runtime_checkable
class SqlClient(Protocol):
    """Protocol for the SQL client used for database administration.

    Implementations connect with the superuser credentials in `settings`.
    """

    async def create_database(self, settings: Settings, name: str) -> None:
        """Create a database."""
        ...

    async def drop_database(self, settings: Settings, name: str) -> None:
        """Drop a database if it exists."""
        ...

    async def database_exists(self, settings: Settings, name: str) -> bool:
        """Check whether a database exists."""
        ...
