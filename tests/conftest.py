"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib
import io

import pytest
from rich.console import Console

from chatterm.config import ChatConfig, GeneralConfig, LLMConfig
from chatterm.history import Message


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


@pytest.fixture
def mock_console() -> Console:
    """Provide a console that writes to a StringIO for testing."""
    return Console(file=io.StringIO(), width=80, force_terminal=True)


@pytest.fixture
def llm_config() -> LLMConfig:
    """LLM settings pointing at a fake backend."""
    return LLMConfig(
        model="gpt-test",
        api_key="sk-test",
        base_url="http://llm.test/v1/",
        request_timeout=5.0,
    )


@pytest.fixture
def chat_config(llm_config: LLMConfig) -> ChatConfig:
    """A chat configuration with a single system prompt."""
    return ChatConfig(
        llm=llm_config,
        general=GeneralConfig(channel_size=4),
        prompts=[Message(role="system", content="You are terse.")],
    )


@pytest.fixture
def fake_token_counter() -> object:
    """A token counter that needs no tokenizer download: one token per word."""

    def counter(_model: str, messages: list[Message]) -> int:
        return sum(len(m.content.split()) for m in messages)

    return counter
