"""PostgreSQL server supervision.

This package manages the lifecycle of one locally installed PostgreSQL
server:

- PostgreSQL: Installs, initializes, starts, and stops a server
- ServerState / LifecycleEvent / transition: The lifecycle state machine
- ServerEvent / ServerEventType: Events reported to an EventSink
- EventSink / SqlClient: Collaborator protocols
- ConsoleEventSink: Prints events with rich
- AsyncpgClient: Default SqlClient (requires the asyncpg extra)

Example:
    >>> async with PostgreSQL(Settings(version="=16.4.0")) as pg:
    ...     await pg.create_database("app")
"""

from ._client import AsyncpgClient, quote_identifier
from ._models import (
    LifecycleEvent,
    ServerEvent,
    ServerEventType,
    ServerState,
    event_type_for,
    transition,
)
from ._output import ConsoleEventSink
from ._postgresql import PostgreSQL, read_postmaster_pid
from ._protocol import EventSink, SqlClient

__all__ = [
    "AsyncpgClient",
    "ConsoleEventSink",
    "EventSink",
    "LifecycleEvent",
    "PostgreSQL",
    "ServerEvent",
    "ServerEventType",
    "ServerState",
    "SqlClient",
    "event_type_for",
    "quote_identifier",
    "read_postmaster_pid",
    "transition",
]
