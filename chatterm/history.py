"""Conversation transcript and streaming accumulation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from chatterm.tokens import count_tokens

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

LOGGER = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """One transcript entry.

    Messages are immutable. The reply being streamed is grown by
    `ConversationHistory.begin_or_extend`, which swaps in an extended copy.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def __str__(self) -> str:
        return self.content


@dataclass
class ConversationHistory:
    """Ordered transcript plus the reply currently being streamed.

    Only `push`, `begin_or_extend` and `finalize` mutate messages. While a
    stream is active the assistant message being written is always the last
    element of `messages`.
    """

    messages: list[Message] = field(default_factory=list)
    accumulator: str = ""
    token_count: int = 0
    _streaming: bool = field(default=False, repr=False)

    @classmethod
    def from_prompts(cls, prompts: Iterable[Message]) -> ConversationHistory:
        """Create a history seeded with copies of `prompts`."""
        history = cls()
        for prompt in prompts:
            history.push(prompt.role, prompt.content)
        return history

    @property
    def is_streaming(self) -> bool:
        """Whether an assistant message is currently being written."""
        return self._streaming

    def push(self, role: Role, content: str) -> None:
        """Append a finished message."""
        if self._streaming:
            LOGGER.warning("Message pushed during an active stream; finalizing the reply as-is")
            self.finalize()
        self.messages.append(Message(role=role, content=content))

    def begin_or_extend(self, delta_text: str, is_first_token_of_stream: bool) -> None:  # noqa: FBT001
        """Start a new assistant message or extend the one being streamed."""
        if not is_first_token_of_stream and not self._streaming:
            LOGGER.warning("Continuation token without an active stream; starting a new reply")
            is_first_token_of_stream = True

        if is_first_token_of_stream:
            if self._streaming:
                LOGGER.warning("New stream started before the previous one was finalized")
            self.accumulator = delta_text
            self.messages.append(Message(role="assistant", content=delta_text))
            self._streaming = True
            return

        self.accumulator += delta_text
        self.messages[-1] = self.messages[-1].model_copy(update={"content": self.accumulator})

    def finalize(self) -> None:
        """Mark the streamed assistant message as complete."""
        if not self._streaming:
            LOGGER.debug("finalize() called without an active stream")
            return
        self.accumulator = ""
        self._streaming = False

    def recount_tokens(
        self,
        model: str,
        counter: Callable[[str, list[Message]], int] = count_tokens,
    ) -> int:
        """Recompute `token_count`. Failures keep the previous count."""
        try:
            self.token_count = counter(model, list(self.messages))
        except Exception:
            LOGGER.warning("Could not count tokens for model %s", model, exc_info=True)
        return self.token_count

    def last(self) -> Message | None:
        """Return the most recent message, if any."""
        return self.messages[-1] if self.messages else None

    def reset(self, prompts: Iterable[Message] = ()) -> None:
        """Drop the transcript and re-seed it with `prompts`."""
        self.messages.clear()
        self.accumulator = ""
        self.token_count = 0
        self._streaming = False
        for prompt in prompts:
            self.push(prompt.role, prompt.content)

    def to_payload(self) -> list[dict[str, str]]:
        """Serialize the transcript for a chat completion request."""
        return [message.model_dump() for message in self.messages]

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)
