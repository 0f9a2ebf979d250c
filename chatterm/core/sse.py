"""Incremental Server-Sent Events decoding for chat completion streams.

Three layers, each usable on its own:

- `FrameSplitter` finds event boundaries (a blank line) in a growing byte buffer.
- `parse_event_line` parses one line of a frame into a `StreamEvent`.
- `StreamDecoder` glues both to `decode_chunk` and turns raw network bytes
  into `Delta` objects.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import timedelta

from chatterm.core.chunks import DecodeError, Delta, decode_chunk, decode_utf8

LOGGER = logging.getLogger(__name__)

# A line terminator is CRLF, a lone CR, or LF.
_TERMINATOR = rb"(?:\r\n|\r(?!\n)|\n)"
_BOUNDARY = re.compile(_TERMINATOR + _TERMINATOR)
_LINE_SPLIT = re.compile(r"\r\n|\r|\n")
# Longest boundary is CRLF CRLF
_MAX_BOUNDARY_LEN = 4


class FrameSplitter:
    """Split an arbitrarily fragmented byte stream into complete frames.

    Bytes are buffered in arrival order. Every complete frame (terminated by
    two consecutive line terminators) is removed from the front of the buffer
    and returned without its terminating blank line.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._scan_from = 0

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete frame."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        """Append `data` and return every frame completed by it."""
        self._buffer.extend(data)
        return self._drain(final=False)

    def finish(self) -> list[bytes]:
        """Flush frames completed by end-of-stream and drop the unterminated tail."""
        frames = self._drain(final=True)
        if self._buffer:
            LOGGER.debug(
                "Discarding %d bytes of unterminated trailing data",
                len(self._buffer),
            )
        self._buffer.clear()
        self._scan_from = 0
        return frames

    def _drain(self, *, final: bool) -> list[bytes]:
        frames: list[bytes] = []
        while True:
            limit = len(self._buffer)
            # A trailing CR may be the first half of a CRLF still in flight
            if not final and self._buffer.endswith(b"\r"):
                limit -= 1
            match = _BOUNDARY.search(self._buffer, self._scan_from, limit)
            if match is None:
                self._scan_from = max(0, limit - (_MAX_BOUNDARY_LEN - 1))
                return frames
            frames.append(bytes(self._buffer[: match.start()]))
            del self._buffer[: match.end()]
            self._scan_from = 0


@dataclass
class StreamEvent:
    """A single Server-Sent Event."""

    id: str | None = None
    event_type: str | None = None
    data: str = ""
    """All `data` lines, each followed by a newline."""


class ParseResult(enum.Enum):
    """Outcome of parsing one event-stream line."""

    NEXT = "next"
    """The line was consumed but the event is not complete yet."""
    DISPATCH = "dispatch"
    """The event is complete. Start a fresh `StreamEvent` for the next line."""


@dataclass(frozen=True)
class SetRetry:
    """A `retry:` line asked for a new reconnect delay."""

    delay: timedelta


def parse_event_line(line: str, event: StreamEvent) -> ParseResult | SetRetry:
    """Parse one line of an event stream into `event`.

    Trailing CR/LF characters are stripped. The field name is everything up
    to the first colon and the value is the rest, minus one leading space.
    """
    line = line.rstrip("\r\n")
    if not line:
        return ParseResult.DISPATCH

    field, colon, value = line.partition(":")
    if colon:
        value = value.removeprefix(" ")

    if field == "event":
        event.event_type = value
    elif field == "data":
        event.data += value + "\n"
    elif field == "id":
        event.id = value
    elif field == "retry":
        digits = value.removeprefix("+")
        if digits.isascii() and digits.isdigit():
            try:
                return SetRetry(timedelta(milliseconds=int(digits)))
            except (OverflowError, ValueError):
                LOGGER.debug("Ignoring out of range retry value %r", value)
        else:
            LOGGER.debug("Ignoring unparsable retry value %r", value)
    # Comments (empty field name) and unknown fields are ignored
    return ParseResult.NEXT


def parse_frame(text: str) -> tuple[StreamEvent, timedelta | None]:
    """Parse a complete frame and return the event and any retry hint."""
    event = StreamEvent()
    retry: timedelta | None = None
    for line in _LINE_SPLIT.split(text):
        result = parse_event_line(line, event)
        if isinstance(result, SetRetry):
            retry = result.delay
    return event, retry


class StreamDecoder:
    """Turn the raw bytes of a chat completion response into deltas.

    One decoder is created per request and fed every byte slice in arrival
    order. Frames that fail to decode are logged and skipped.
    """

    def __init__(self) -> None:
        self._splitter = FrameSplitter()
        self.retry_delay: timedelta | None = None
        self.last_event_id: str | None = None
        self.done = False
        self.skipped_frames = 0

    def feed(self, data: bytes) -> list[Delta]:
        """Decode every delta completed by `data`."""
        return self._decode_frames(self._splitter.feed(data))

    def finish(self) -> list[Delta]:
        """Signal end of the response body."""
        return self._decode_frames(self._splitter.finish())

    def _decode_frames(self, frames: list[bytes]) -> list[Delta]:
        deltas = []
        for frame in frames:
            if self.done:
                LOGGER.debug("Ignoring frame received after end-of-stream marker")
                continue
            delta = self._decode_frame(frame)
            if delta is None:
                continue
            if delta.done:
                self.done = True
                continue
            deltas.append(delta)
        return deltas

    def _decode_frame(self, frame: bytes) -> Delta | None:
        try:
            event, retry = parse_frame(decode_utf8(frame))
            if retry is not None:
                self.retry_delay = retry
            if event.id is not None:
                self.last_event_id = event.id
            if not event.data:
                # Comment-only keep-alive or a frame without payload
                return None
            return decode_chunk(event.data)
        except DecodeError as e:
            self.skipped_frames += 1
            LOGGER.warning("Skipping %s frame: %s", e.kind, e)
            LOGGER.debug("Offending payload: %r", e.payload)
            return None
