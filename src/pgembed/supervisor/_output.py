"""Event sink implementations for the server supervisor."""

from typing import final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import ServerEvent, ServerEventType


@final
class ConsoleEventSink:
    """Event sink that prints lifecycle events to the terminal.

    Formats events as ``[postgresql:port] EVENT (pid=N) - message`` with a
    color per event type.
    """

    __slots__: tuple[str, ...] = ("_console", "_event_styles", "_name")

    def __init__(self, console: Console | None = None, *, name: str = "postgresql") -> None:
        """Initialize the sink.

        Args:
            console: Rich Console instance for output. If None, creates one
                writing to stderr.
            name: Label printed in front of every event.
        """
        self._console = console or Console(stderr=True)
        self._name = name
        self._event_styles: dict[ServerEventType, Style] = {
            ServerEventType.INSTALLED: Style(color="cyan"),
            ServerEventType.INITIALIZED: Style(color="cyan"),
            ServerEventType.STARTED: Style(color="green", bold=True),
            ServerEventType.STOPPED: Style(color="yellow"),
            ServerEventType.FAILED: Style(color="red", bold=True),
            ServerEventType.TRANSITION: Style(dim=True),
        }

    async def write_event(self, event: ServerEvent) -> None:
        """Print a lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        style = self._event_styles.get(event.event_type, Style())
        label = self._name if event.port is None else f"{self._name}:{event.port}"

        text = Text()
        _ = text.append(f"[{label}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        if event.event_type is ServerEventType.TRANSITION:
            _ = text.append(f"{event.previous_state.value} -> {event.state.value}", style=style)
        else:
            _ = text.append(event.event_type.value.upper(), style=style)

        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=Style(dim=True))

        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        self._console.print(text)
