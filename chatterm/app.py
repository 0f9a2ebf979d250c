"""Chat session state shared by the UI loop."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

import pyperclip

from chatterm.events import EndGeneration, ErrorPopup, EventChannel, Severity, Token
from chatterm.history import ConversationHistory
from chatterm.streaming import StreamClient
from chatterm.tokens import count_tokens

if TYPE_CHECKING:
    from collections.abc import Callable

    from chatterm.config import ChatConfig
    from chatterm.events import Event
    from chatterm.history import Message

LOGGER = logging.getLogger(__name__)


class ChatApp:
    """A chat session.

    The UI loop is the only caller. The streaming task reports back through
    `channel` and the loop applies each event with `handle_event`, so the
    transcript has a single writer.
    """

    def __init__(
        self,
        config: ChatConfig,
        *,
        client: StreamClient | None = None,
        channel: EventChannel | None = None,
        token_counter: Callable[[str, list[Message]], int] = count_tokens,
    ) -> None:
        self.config = config
        self.token_counter = token_counter
        self.client = client or StreamClient(config.llm)
        self.channel = channel or EventChannel(config.general.channel_size)
        self.history = ConversationHistory.from_prompts(config.prompts)
        self.running = True
        self.generating = False
        self.error: ErrorPopup | None = None
        self._task: asyncio.Task[None] | None = None
        self.history.recount_tokens(config.llm.model, self.token_counter)

    def quit(self) -> None:
        """Stop the UI loop."""
        self.running = False

    def submit(self, text: str) -> bool:
        """Append a user message. Rejected while a reply is being generated."""
        if self.generating:
            LOGGER.info("Ignoring input while a reply is being generated")
            return False
        if not text.strip():
            return False
        self.history.push("user", text)
        return True

    def start_generation(self) -> asyncio.Task[None]:
        """Start streaming a reply to the current transcript.

        Raises:
            RuntimeError: If a reply is already being generated.

        """
        if self.generating:
            msg = "A reply is already being generated"
            raise RuntimeError(msg)
        self.generating = True
        # Messages are immutable, so a snapshot of the list is enough
        messages = list(self.history)
        self._task = asyncio.create_task(
            self.client.stream_chat_completion(messages, self.channel),
        )
        return self._task

    def handle_event(self, event: Event) -> None:
        """Apply one event from the streaming task."""
        if isinstance(event, Token):
            self.history.begin_or_extend(event.text, event.first)
        elif isinstance(event, EndGeneration):
            self._end_generation()
        elif isinstance(event, ErrorPopup):
            LOGGER.debug("%s popup: %s", event.severity.value, event.message)
            self.error = event

    async def wait_for_reply(self) -> None:
        """Apply events until the current stream ends."""
        while self.generating:
            self.handle_event(await self.channel.recv())

    async def abort(self) -> None:
        """Abandon the current stream, keeping whatever text already arrived."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        # Apply what was already decoded, in order
        while (event := self.channel.try_recv()) is not None:
            self.handle_event(event)
        if self.generating:
            self._end_generation()

    def _end_generation(self) -> None:
        self.history.finalize()
        self.generating = False
        self._task = None
        self.history.recount_tokens(self.config.llm.model, self.token_counter)

    def clear_error(self) -> None:
        """Dismiss the current popup."""
        self.error = None

    def reset_history(self) -> bool:
        """Restore the transcript to its seed prompts."""
        if self.generating:
            self.error = ErrorPopup(
                Severity.WARNING,
                "Cannot clear the chat while a reply is streaming.",
            )
            return False
        self.history.reset(self.config.prompts)
        self.history.recount_tokens(self.config.llm.model, self.token_counter)
        return True

    def copy_last_message(self) -> bool:
        """Copy the most recent message to the clipboard."""
        last = self.history.last()
        if last is None:
            self.error = ErrorPopup(Severity.INFO, "There is no message to copy.")
            return False
        try:
            pyperclip.copy(last.content)
        except pyperclip.PyperclipException as e:
            self.error = ErrorPopup(
                Severity.ERROR,
                f"Couldn't copy last message to clipboard: {e}",
            )
            return False
        return True
