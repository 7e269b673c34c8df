"""Data models for the server supervisor.

This module defines the lifecycle types of a supervised PostgreSQL server:
- ServerState: Lifecycle states
- LifecycleEvent: Inputs to the state machine
- transition: The pure state transition function
- ServerEventType: Types of events reported to an EventSink
- ServerEvent: Immutable event records
"""

from dataclasses import dataclass
from enum import StrEnum

import pendulum

from pgembed.exceptions import InvalidTransitionError


class ServerState(StrEnum):
    """Server lifecycle states.

    - UNINSTALLED: No installation has been resolved yet
    - INSTALLED: Binaries are installed; the data directory may be empty
    - INITIALIZED: The data directory holds a database cluster
    - STARTING: The server was launched and is not yet accepting connections
    - RUNNING: The server accepts connections
    - STOPPING: A shutdown is in progress
    - STOPPED: The server was stopped and can be started again
    - FAILED: An operation failed; stop() cleans up, setup() retries
    """

    UNINSTALLED = "uninstalled"
    INSTALLED = "installed"
    INITIALIZED = "initialized"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


class LifecycleEvent(StrEnum):
    """Inputs that drive the server state machine."""

    INSTALL = "install"
    INITIALIZE = "initialize"
    START = "start"
    READY = "ready"
    FAIL = "fail"
    STOP = "stop"
    STOPPED = "stopped"


_TRANSITIONS: dict[tuple[ServerState, LifecycleEvent], ServerState] = {
    (ServerState.UNINSTALLED, LifecycleEvent.INSTALL): ServerState.INSTALLED,
    (ServerState.FAILED, LifecycleEvent.INSTALL): ServerState.INSTALLED,
    (ServerState.INSTALLED, LifecycleEvent.INITIALIZE): ServerState.INITIALIZED,
    (ServerState.INITIALIZED, LifecycleEvent.START): ServerState.STARTING,
    (ServerState.STOPPED, LifecycleEvent.START): ServerState.STARTING,
    (ServerState.STARTING, LifecycleEvent.READY): ServerState.RUNNING,
    (ServerState.STARTING, LifecycleEvent.STOP): ServerState.STOPPING,
    (ServerState.RUNNING, LifecycleEvent.STOP): ServerState.STOPPING,
    (ServerState.FAILED, LifecycleEvent.STOP): ServerState.STOPPING,
    (ServerState.STOPPING, LifecycleEvent.STOPPED): ServerState.STOPPED,
}


def transition(state: ServerState, event: LifecycleEvent) -> ServerState:
    """Compute the state that follows an event.

    Any state except FAILED moves to FAILED on a FAIL event.

    Args:
        state: Current state.
        event: Lifecycle event.

    Returns:
        The next state.

    Raises:
        InvalidTransitionError: If the event is not valid in `state`.
    """
    if event is LifecycleEvent.FAIL and state is not ServerState.FAILED:
        return ServerState.FAILED
    try:
        return _TRANSITIONS[state, event]
    except KeyError:
        msg = f"Cannot {event.value} while the server is {state.value}"
        raise InvalidTransitionError(msg, state=state.value, event=event.value) from None


class ServerEventType(StrEnum):
    """Types of server lifecycle events.

    - INSTALLED: Binaries are available
    - INITIALIZED: The data directory is ready
    - STARTED: The server accepts connections
    - STOPPED: The server has shut down
    - FAILED: An operation failed
    - TRANSITION: Any other state change
    """

    INSTALLED = "installed"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
    FAILED = "failed"
    TRANSITION = "transition"


_EVENT_TYPES: dict[ServerState, ServerEventType] = {
    ServerState.INSTALLED: ServerEventType.INSTALLED,
    ServerState.INITIALIZED: ServerEventType.INITIALIZED,
    ServerState.RUNNING: ServerEventType.STARTED,
    ServerState.STOPPED: ServerEventType.STOPPED,
    ServerState.FAILED: ServerEventType.FAILED,
}


def event_type_for(state: ServerState) -> ServerEventType:
    """Get the event type reported when the server enters a state."""
    return _EVENT_TYPES.get(state, ServerEventType.TRANSITION)


@dataclass(frozen=True, slots=True)
class ServerEvent:
    """Immutable server lifecycle event.

    Attributes:
        event_type: Type of lifecycle event.
        state: State entered.
        previous_state: State left.
        timestamp: ISO 8601 formatted timestamp.
        port: Port the server listens on.
        pid: Postmaster process ID, if known.
        message: Optional human-readable message.
    """

    event_type: ServerEventType
    state: ServerState
    previous_state: ServerState
    timestamp: str
    port: int | None = None
    pid: int | None = None
    message: str | None = None

    @classmethod
    def now(
        cls,
        previous_state: ServerState,
        state: ServerState,
        *,
        port: int | None = None,
        pid: int | None = None,
        message: str | None = None,
    ) -> "ServerEvent":
        """Create an event for a state change happening now."""
        return cls(
            event_type=event_type_for(state),
            state=state,
            previous_state=previous_state,
            timestamp=pendulum.now("UTC").to_iso8601_string(),
            port=port,
            pid=pid,
            message=message,
        )
