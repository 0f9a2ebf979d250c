"""Tests for the conversation transcript."""

from __future__ import annotations

import pydantic
import pytest

from chatterm.history import ConversationHistory, Message


def test_push_appends_in_order() -> None:
    """Messages keep insertion order."""
    history = ConversationHistory()
    history.push("system", "Be brief.")
    history.push("user", "Hi")
    assert [(m.role, m.content) for m in history] == [("system", "Be brief."), ("user", "Hi")]
    assert not history.is_streaming


def test_from_prompts_copies_messages() -> None:
    """Seed prompts are copied, so the originals never change."""
    prompts = [Message(role="system", content="Be brief.")]
    history = ConversationHistory.from_prompts(prompts)
    assert history.messages == prompts
    assert history.messages[0] is not prompts[0]


def test_begin_then_extend() -> None:
    """The first token starts a message and later tokens extend it in place."""
    history = ConversationHistory()
    history.push("user", "Greet me")
    history.begin_or_extend("Hello", is_first_token_of_stream=True)
    assert len(history) == 2
    history.begin_or_extend(" world", is_first_token_of_stream=False)
    assert len(history) == 2
    last = history.last()
    assert last is not None
    assert last.role == "assistant"
    assert last.content == "Hello world"
    assert history.accumulator == "Hello world"
    assert history.is_streaming


def test_finalize_clears_accumulator() -> None:
    """After finalize the reply is done and the accumulator is empty."""
    history = ConversationHistory()
    history.begin_or_extend("Done.", is_first_token_of_stream=True)
    history.finalize()
    assert history.accumulator == ""
    assert not history.is_streaming
    assert history.messages[-1].content == "Done."


def test_finalize_without_stream_is_noop() -> None:
    """Finalizing twice, or with no reply at all, changes nothing."""
    history = ConversationHistory()
    history.push("user", "Hi")
    history.finalize()
    history.finalize()
    assert [m.content for m in history] == ["Hi"]


def test_next_stream_starts_a_new_message() -> None:
    """Each stream writes its own assistant message."""
    history = ConversationHistory()
    history.begin_or_extend("One", is_first_token_of_stream=True)
    history.finalize()
    history.push("user", "Again")
    history.begin_or_extend("Two", is_first_token_of_stream=True)
    history.finalize()
    assert [m.content for m in history] == ["One", "Again", "Two"]


def test_continuation_without_stream_starts_message() -> None:
    """A continuation token with no stream in progress is treated as the first one."""
    history = ConversationHistory()
    history.push("user", "Hi")
    history.begin_or_extend("orphan", is_first_token_of_stream=False)
    assert len(history) == 2
    assert history.messages[-1].role == "assistant"
    assert history.messages[-1].content == "orphan"
    assert history.is_streaming


def test_continuation_after_finalize_does_not_touch_finished_message() -> None:
    """A finished reply is never extended."""
    history = ConversationHistory()
    history.begin_or_extend("Final", is_first_token_of_stream=True)
    history.finalize()
    history.begin_or_extend(" stray", is_first_token_of_stream=False)
    assert [m.content for m in history] == ["Final", " stray"]


def test_push_during_stream_finalizes_reply() -> None:
    """The streamed reply stays the last message while it is being written."""
    history = ConversationHistory()
    history.begin_or_extend("partial", is_first_token_of_stream=True)
    history.push("user", "interrupting")
    assert not history.is_streaming
    assert history.accumulator == ""
    assert [m.content for m in history] == ["partial", "interrupting"]


def test_role_is_immutable() -> None:
    """Roles cannot change after creation."""
    message = Message(role="user", content="Hi")
    with pytest.raises(pydantic.ValidationError):
        message.role = "assistant"  # type: ignore[misc]


def test_invalid_role_rejected() -> None:
    """Only system, user and assistant are roles."""
    with pytest.raises(pydantic.ValidationError):
        Message(role="tool", content="x")  # type: ignore[arg-type]


def test_recount_tokens(fake_token_counter: object) -> None:
    """The token count is recomputed with the given counter."""
    history = ConversationHistory()
    history.push("user", "one two three")
    assert history.recount_tokens("gpt-test", fake_token_counter) == 3
    assert history.token_count == 3


def test_recount_tokens_failure_keeps_transcript() -> None:
    """A failing tokenizer leaves the transcript and the previous count alone."""

    def broken(_model: str, _messages: list[Message]) -> int:
        msg = "tokenizer unavailable"
        raise RuntimeError(msg)

    history = ConversationHistory(token_count=7)
    history.push("user", "Hi")
    assert history.recount_tokens("gpt-test", broken) == 7
    assert [m.content for m in history] == ["Hi"]


def test_reset() -> None:
    """Reset re-seeds the transcript and clears streaming state."""
    history = ConversationHistory(token_count=12)
    history.push("user", "Hi")
    history.begin_or_extend("Hel", is_first_token_of_stream=True)
    history.reset([Message(role="system", content="Be brief.")])
    assert [m.content for m in history] == ["Be brief."]
    assert history.accumulator == ""
    assert history.token_count == 0
    assert not history.is_streaming


def test_to_payload() -> None:
    """The transcript serializes to role/content objects."""
    history = ConversationHistory()
    history.push("system", "Be brief.")
    history.push("user", "Hi")
    assert history.to_payload() == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
    ]


def test_last_on_empty_history() -> None:
    """An empty transcript has no last message."""
    assert ConversationHistory().last() is None


def test_content_is_immutable() -> None:
    """Finished messages cannot be edited from outside the history."""
    history = ConversationHistory()
    history.push("user", "Hi")
    with pytest.raises(pydantic.ValidationError):
        history.messages[0].content = "edited"  # type: ignore[misc]
    assert history.messages[0].content == "Hi"


def test_extend_leaves_earlier_messages_alone() -> None:
    """Only the reply being streamed changes while tokens arrive."""
    history = ConversationHistory()
    history.push("user", "Greet me")
    question = history.messages[0]
    history.begin_or_extend("Hel", is_first_token_of_stream=True)
    snapshot = history.messages[-1]
    history.begin_or_extend("lo", is_first_token_of_stream=False)
    assert history.messages[0] is question
    assert snapshot.content == "Hel"
    assert history.messages[-1].content == "Hello"
