"""Slash command handling for interactive chat sessions.

Handles commands like /clear, /copy, /tokens, /help and /quit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chatterm.app import ChatApp


def parse_slash_command(text: str) -> tuple[str, list[str]] | None:
    """Parse a slash command from text.

    Args:
        text: The input text to parse

    Returns:
        Tuple of (command, args) if it's a slash command, None otherwise

    """
    text = text.strip()
    if not text.startswith("/"):
        return None

    parts = text[1:].split()
    if not parts:
        return None

    command = parts[0].lower()
    args = parts[1:]
    return command, args


def handle_slash_command(command: str, args: list[str], app: ChatApp) -> str | None:
    """Execute a slash command and return a response message.

    Args:
        command: The command name (without slash)
        args: Command arguments
        app: The chat session

    Returns:
        Response message to display to the user, or None if there is nothing to show

    """
    if args:
        return f"/{command} takes no arguments."

    if command == "help":
        return _handle_help()

    if command == "clear":
        return _handle_clear(app)

    if command == "copy":
        return "Copied last message to the clipboard." if app.copy_last_message() else None

    if command == "tokens":
        return f"Transcript is {app.history.token_count} tokens for {app.config.llm.model}."

    if command in ("quit", "exit"):
        app.quit()
        return None

    return f"Unknown command: /{command}. Type /help for available commands."


def _handle_help() -> str:
    """Show help message."""
    return """\
Available commands:
  /clear         Reset the conversation to its initial prompts
  /copy          Copy the last message to the clipboard
  /tokens        Show the token count of the conversation
  /quit          Exit chat
  /help          Show this help message

Keyboard shortcuts:
  Enter          Send message
  Ctrl+C         Stop the current reply, or exit chat
  Ctrl+D         Exit chat"""


def _handle_clear(app: ChatApp) -> str | None:
    """Handle /clear command."""
    if not app.reset_history():
        return None
    return f"Conversation reset to {len(app.history)} initial message(s)."
