"""Token counting for chat transcripts."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

import tiktoken

if TYPE_CHECKING:
    from collections.abc import Iterable

    from chatterm.history import Message

# Per-message framing overhead of the chat format
TOKENS_PER_MESSAGE = 3
# Every reply is primed with <|start|>assistant<|message|>
REPLY_PRIMING_TOKENS = 3


@lru_cache(maxsize=4)
def _get_encoding(model: str) -> tiktoken.Encoding:
    """Get tiktoken encoding for a model, with caching.

    Falls back to cl100k_base for unknown models (covers most modern LLMs).
    """
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding("cl100k_base")


def count_text_tokens(text: str, model: str) -> int:
    """Count the tokens of a single piece of text."""
    if not text:
        return 0
    # LLM output may contain special tokens like <|endoftext|>; count them as text
    return len(_get_encoding(model).encode(text, disallowed_special=()))


def count_tokens(model: str, messages: Iterable[Message]) -> int:
    """Count the prompt tokens a transcript costs when sent to `model`."""
    total = 0
    for message in messages:
        total += TOKENS_PER_MESSAGE
        total += count_text_tokens(message.role, model)
        total += count_text_tokens(message.content, model)
    return total + REPLY_PRIMING_TOKENS
