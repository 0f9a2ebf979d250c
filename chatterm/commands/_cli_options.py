"""Shared CLI options for chatterm commands."""

from __future__ import annotations

import typer

from chatterm import constants


def _config_file_callback(ctx: typer.Context, value: str | None) -> str | None:
    """Load config file defaults before any other option is resolved."""
    from chatterm.cli import set_config_defaults  # noqa: PLC0415

    set_config_defaults(ctx, value)
    return value


# --- LLM Options ---
MODEL = typer.Option(
    constants.DEFAULT_MODEL,
    "--model",
    "-m",
    help="The model to chat with.",
    rich_help_panel="LLM Configuration",
)
OPENAI_API_KEY = typer.Option(
    None,
    "--openai-api-key",
    "-k",
    envvar="OPENAI_API_KEY",
    help="API key for the chat completion endpoint.",
    rich_help_panel="LLM Configuration",
)
OPENAI_BASE_URL = typer.Option(
    constants.DEFAULT_OPENAI_BASE_URL,
    "--openai-base-url",
    envvar="OPENAI_BASE_URL",
    help="Base URL of an OpenAI-compatible API (e.g., a local llama.cpp server).",
    rich_help_panel="LLM Configuration",
)
TEMPERATURE = typer.Option(
    None,
    "--temperature",
    help="Sampling temperature. Uses the server default if unset.",
    rich_help_panel="LLM Configuration",
)
MAX_TOKENS = typer.Option(
    None,
    "--max-tokens",
    help="Maximum number of tokens per reply.",
    rich_help_panel="LLM Configuration",
)
REQUEST_TIMEOUT = typer.Option(
    constants.DEFAULT_REQUEST_TIMEOUT,
    "--request-timeout",
    help="Timeout in seconds for the streaming request.",
    rich_help_panel="LLM Configuration",
)

# --- Prompt Options ---
SYSTEM_PROMPT = typer.Option(
    constants.DEFAULT_SYSTEM_PROMPT,
    "--system-prompt",
    "-s",
    help="System prompt that starts every conversation.",
    rich_help_panel="Prompt Options",
)
PROMPT = typer.Option(
    None,
    "--prompt",
    "-p",
    help='Initial messages as a JSON array, e.g. \'[{"role": "system", "content": "Be brief."}]\'.'
    " Overrides --system-prompt.",
    rich_help_panel="Prompt Options",
)

# --- General Options ---
CHANNEL_SIZE = typer.Option(
    constants.DEFAULT_CHANNEL_SIZE,
    "--channel-size",
    min=1,
    help="Number of undelivered tokens buffered between the network and the display.",
    rich_help_panel="General Options",
)
LOG_LEVEL = typer.Option(
    "WARNING",
    "--log-level",
    help="Set the log level (e.g., DEBUG, INFO, WARNING).",
    rich_help_panel="General Options",
)
LOG_FILE = typer.Option(
    None,
    "--log-file",
    help="Path to a file to write logs to.",
    rich_help_panel="General Options",
)
QUIET = typer.Option(
    False,  # noqa: FBT003
    "--quiet",
    "-q",
    help="Suppress decorations and print replies as plain text.",
    rich_help_panel="General Options",
)
CONFIG_FILE = typer.Option(
    None,
    "--config-file",
    "-c",
    is_eager=True,
    callback=_config_file_callback,
    help="Path to a custom config file.",
    rich_help_panel="General Options",
)
