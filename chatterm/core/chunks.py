"""Decoding of chat completion chunks carried in SSE `data` payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from chatterm.constants import DONE_SENTINEL


class ChunkDelta(BaseModel):
    """The `delta` object of a streamed choice."""

    model_config = ConfigDict(extra="ignore")

    content: str | None = None
    role: str | None = None


class ChunkChoice(BaseModel):
    """One entry of a chunk's `choices` list."""

    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: ChunkDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """A `chat.completion.chunk` object. Unknown top-level fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    choices: list[ChunkChoice]


class Delta(BaseModel):
    """The part of a chunk the conversation cares about."""

    content: str | None = None
    finish_reason: str | None = None
    done: bool = False
    """True when the payload was the stream-termination sentinel."""

    @property
    def is_empty(self) -> bool:
        """Whether the delta carries no text to append."""
        return not self.content


class DecodeError(ValueError):
    """A frame payload that could not be decoded into a chunk."""

    def __init__(
        self,
        message: str,
        *,
        kind: Literal["malformed", "encoding"] = "malformed",
        payload: str | bytes = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.payload = payload


def decode_chunk(data: str) -> Delta:
    """Decode the concatenated `data` of one frame into a `Delta`.

    The text of the first choice is used. The `[DONE]` sentinel decodes to
    ``Delta(done=True)``.

    Raises:
        DecodeError: If the payload is not a chunk object.

    """
    # Every data line was stored with a trailing newline
    payload = data.removesuffix("\n")
    if payload.strip() == DONE_SENTINEL:
        return Delta(done=True)
    try:
        chunk = ChatCompletionChunk.model_validate_json(payload)
    except ValidationError as e:
        msg = f"Malformed chunk payload: {e.error_count()} validation error(s)"
        raise DecodeError(msg, kind="malformed", payload=payload) from e

    if not chunk.choices:
        return Delta()
    choice = chunk.choices[0]
    content = choice.delta.content if choice.delta else None
    return Delta(content=content, finish_reason=choice.finish_reason)


def decode_utf8(frame: bytes) -> str:
    """Decode one raw frame as UTF-8.

    Raises:
        DecodeError: If the frame is not valid UTF-8.

    """
    try:
        return frame.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = f"Frame is not valid UTF-8: {e.reason}"
        raise DecodeError(msg, kind="encoding", payload=frame) from e
