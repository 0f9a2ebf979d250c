"""Streaming chat completions from an OpenAI-compatible endpoint."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel

from chatterm.core.sse import StreamDecoder
from chatterm.events import EndGeneration, ErrorPopup, Severity, Token
from chatterm.history import Message  # noqa: TC001

if TYPE_CHECKING:
    from chatterm.config import LLMConfig
    from chatterm.core.chunks import Delta
    from chatterm.events import EventChannel

LOGGER = logging.getLogger(__name__)


class ChatCompletionRequest(BaseModel):
    """Body of a chat completion POST. Unset options are not sent."""

    model: str
    messages: list[Message]
    stream: bool = True
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    seed: int | None = None
    stop: str | list[str] | None = None

    def to_payload(self) -> dict:
        """Serialize the request, dropping unset options."""
        return self.model_dump(exclude_none=True)


class StreamClient:
    """Issue streaming chat completion requests and report what they produce.

    Results are only ever reported as events on an `EventChannel`, so the
    caller's transcript is never touched from here.
    """

    def __init__(
        self,
        config: LLMConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.reconnect_delay = timedelta(milliseconds=config.reconnect_delay_ms)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_request(self, messages: list[Message]) -> ChatCompletionRequest:
        """Create the request body for `messages`."""
        return ChatCompletionRequest(
            model=self.config.model,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

    async def stream_chat_completion(
        self,
        messages: list[Message],
        channel: EventChannel,
    ) -> None:
        """Stream one completion into `channel`.

        Emits a `Token` per non-empty delta, an `ErrorPopup` if the request
        fails, and always finishes with exactly one `EndGeneration`.
        """
        try:
            await self._stream(messages, channel)
        except httpx.HTTPError as e:
            LOGGER.warning("Streaming request failed: %s", e)
            await channel.send(
                ErrorPopup(Severity.ERROR, f"Request to {self.config.base_url} failed: {e}"),
            )
        except Exception as e:
            LOGGER.exception("Unexpected streaming error")
            await channel.send(ErrorPopup(Severity.ERROR, f"Streaming failed: {e}"))
        # Not sent on cancellation; the canceller finalizes the reply itself
        await channel.send(EndGeneration())

    async def _stream(self, messages: list[Message], channel: EventChannel) -> None:
        payload = self.build_request(messages).to_payload()
        decoder = StreamDecoder()
        emitted = 0
        async with (
            httpx.AsyncClient(
                timeout=self.config.request_timeout,
                transport=self._transport,
            ) as client,
            client.stream(
                "POST",
                self.config.completions_url,
                json=payload,
                headers=self._headers(),
            ) as response,
        ):
            if response.status_code != 200:  # noqa: PLR2004
                error_text = (await response.aread()).decode(errors="ignore")
                LOGGER.error("Upstream error %s: %s", response.status_code, error_text)
                await channel.send(
                    ErrorPopup(
                        Severity.ERROR,
                        f"Upstream error {response.status_code}: {error_text}",
                    ),
                )
                return

            async for data in response.aiter_bytes():
                emitted = await _emit(decoder.feed(data), channel, emitted)
                self._update_retry(decoder)
                if decoder.done:
                    break
            else:
                emitted = await _emit(decoder.finish(), channel, emitted)
                self._update_retry(decoder)

        if decoder.skipped_frames:
            LOGGER.info("Skipped %d undecodable frame(s)", decoder.skipped_frames)
        LOGGER.debug("Stream finished after %d token(s)", emitted)

    def _update_retry(self, decoder: StreamDecoder) -> None:
        if decoder.retry_delay is not None and decoder.retry_delay != self.reconnect_delay:
            LOGGER.debug("Reconnect delay hint set to %s", decoder.retry_delay)
            self.reconnect_delay = decoder.retry_delay


async def _emit(deltas: list[Delta], channel: EventChannel, emitted: int) -> int:
    """Send a `Token` for every delta with text and return the running count."""
    for delta in deltas:
        if not delta.is_empty:
            await channel.send(Token(delta.content, first=emitted == 0))
            emitted += 1
        if delta.finish_reason:
            LOGGER.debug("Finish reason: %s", delta.finish_reason)
    return emitted
