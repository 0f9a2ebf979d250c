"""Interactive terminal chat.

This command will:
- Read your message from the terminal.
- Stream the reply of an OpenAI-compatible chat completion endpoint.
- Render the reply as markdown while it arrives.
- Keep the whole conversation as context for the next turn.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import typer
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.text import Text

import chatterm.commands._cli_options as opts
from chatterm import constants
from chatterm.app import ChatApp
from chatterm.cli import app as cli_app
from chatterm.config import ChatConfig, GeneralConfig, LLMConfig, parse_prompts
from chatterm.core.chat_state import handle_slash_command, parse_slash_command
from chatterm.core.utils import (
    console,
    print_error_message,
    print_with_style,
    setup_logging,
)

if TYPE_CHECKING:
    from rich.console import RenderableType

    from chatterm.history import Message

USER_PROMPT = "[bold blue]👤 You:[/bold blue] "


def _show_error(app: ChatApp) -> None:
    """Render and dismiss the pending popup, if any."""
    if app.error is None:
        return
    console.print(
        Panel(
            Text(app.error.message),
            title=app.error.severity.value,
            border_style=f"bold {app.error.severity.style}",
        ),
    )
    app.clear_error()


def _reply_since(app: ChatApp, start: int) -> Message | None:
    """Return the assistant message created after transcript index `start`."""
    if len(app.history) > start and app.history.messages[start].role == "assistant":
        return app.history.messages[start]
    return None


def _render_reply(app: ChatApp, start: int, subtitle: str = "") -> RenderableType:
    reply = _reply_since(app, start)
    if reply is None:
        return Spinner("dots", text=f"🤖 Waiting for {app.config.llm.model}...", style="yellow")
    return Panel(
        Markdown(reply.content),
        title=f"🤖 {app.config.llm.model}",
        subtitle=subtitle,
        border_style="bold green",
    )


async def _stream_reply(app: ChatApp, *, quiet: bool) -> None:
    """Stream one reply into the transcript and show it as it arrives."""
    start = len(app.history)
    start_time = time.monotonic()
    app.start_generation()
    try:
        if quiet:
            await app.wait_for_reply()
        else:
            with Live(_render_reply(app, start), console=console, refresh_per_second=12) as live:
                while app.generating:
                    app.handle_event(await app.channel.recv())
                    live.update(_render_reply(app, start))
                elapsed = time.monotonic() - start_time
                live.update(_render_reply(app, start, f"[dim]took {elapsed:.2f}s[/dim]"))
    finally:
        # Keeps the partial reply if the stream was interrupted
        await app.abort()

    if quiet and (reply := _reply_since(app, start)) is not None:
        print(reply.content)


def _run_chat(app: ChatApp, *, quiet: bool) -> None:
    """The UI loop: read a message, stream the reply, repeat."""
    if not quiet:
        print_with_style(
            f"💬 Chatting with {app.config.llm.model}. Type /help for commands.",
            style="bold blue",
        )
    with asyncio.Runner() as runner:
        while app.running:
            try:
                text = console.input(USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            command = parse_slash_command(text)
            if command is not None:
                message = handle_slash_command(*command, app)
                if message:
                    print_with_style(message, style="cyan")
                _show_error(app)
                continue

            if not app.submit(text):
                continue
            try:
                runner.run(_stream_reply(app, quiet=quiet))
            except KeyboardInterrupt:
                print_with_style("⏹ Reply interrupted.", style="yellow")
            _show_error(app)


@cli_app.command("chat")
def chat(
    *,
    # --- LLM Configuration ---
    model: str = opts.MODEL,
    openai_api_key: str | None = opts.OPENAI_API_KEY,
    openai_base_url: str = opts.OPENAI_BASE_URL,
    temperature: float | None = opts.TEMPERATURE,
    max_tokens: int | None = opts.MAX_TOKENS,
    request_timeout: float = opts.REQUEST_TIMEOUT,
    # --- Prompt Options ---
    system_prompt: str = opts.SYSTEM_PROMPT,
    prompt: str | None = opts.PROMPT,
    # --- General Options ---
    channel_size: int = opts.CHANNEL_SIZE,
    log_level: str = opts.LOG_LEVEL,
    log_file: str | None = opts.LOG_FILE,
    quiet: bool = opts.QUIET,
    config_file: str | None = opts.CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Chat with an LLM, streaming replies as they are generated."""
    setup_logging(log_level, log_file, quiet=quiet)

    if not openai_api_key and openai_base_url.rstrip("/") == constants.DEFAULT_OPENAI_BASE_URL:
        print_error_message(
            "OpenAI API key is not set.",
            "Pass --openai-api-key, set OPENAI_API_KEY, or add `openai-api-key` to your config file.",
        )
        raise typer.Exit(1)

    try:
        prompts = parse_prompts(prompt, system_prompt)
    except ValueError as e:
        print_error_message(str(e))
        raise typer.Exit(1) from e

    config = ChatConfig(
        llm=LLMConfig(
            model=model,
            api_key=openai_api_key,
            base_url=openai_base_url,
            request_timeout=request_timeout,
            temperature=temperature,
            max_tokens=max_tokens,
        ),
        general=GeneralConfig(
            log_level=log_level,
            log_file=log_file,
            quiet=quiet,
            channel_size=channel_size,
        ),
        prompts=prompts,
    )
    _run_chat(ChatApp(config), quiet=quiet)
