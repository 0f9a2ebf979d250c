"""Events passed from the streaming task to the UI loop."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass

from chatterm.constants import DEFAULT_CHANNEL_SIZE


class Severity(enum.Enum):
    """Severity of a popup message."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"

    @property
    def style(self) -> str:
        """Rich style used to render the popup."""
        return {
            Severity.ERROR: "red",
            Severity.WARNING: "yellow",
            Severity.INFO: "blue",
        }[self]


@dataclass(frozen=True)
class Token:
    """A piece of assistant text."""

    text: str
    first: bool
    """True for the first token of a stream."""


@dataclass(frozen=True)
class EndGeneration:
    """The stream is over, successfully or not."""


@dataclass(frozen=True)
class ErrorPopup:
    """A user-visible notification."""

    severity: Severity
    message: str


Event = Token | EndGeneration | ErrorPopup


class EventChannel:
    """Bounded, ordered single-producer/single-consumer event queue.

    `send` waits while the channel is full, so no event is ever dropped.
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE) -> None:
        if maxsize < 1:
            msg = f"Channel size must be positive, got {maxsize}"
            raise ValueError(msg)
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=maxsize)

    async def send(self, event: Event) -> None:
        """Enqueue an event, waiting for room if the channel is full."""
        await self._queue.put(event)

    async def recv(self) -> Event:
        """Wait for the next event."""
        return await self._queue.get()

    def try_recv(self) -> Event | None:
        """Return the next event if one is queued."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def __len__(self) -> int:
        return self._queue.qsize()
