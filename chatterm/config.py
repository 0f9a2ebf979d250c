"""Pydantic models for chatterm configuration and config file loading."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from chatterm.constants import (
    DEFAULT_CHANNEL_SIZE,
    DEFAULT_RECONNECT_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SYSTEM_PROMPT,
)
from chatterm.core.utils import console
from chatterm.history import Message

# --- Config File Loading ---

CONFIG_PATH = Path.home() / ".config" / "chatterm" / "config.toml"
CONFIG_PATH_2 = Path("chatterm-config.toml")


def _replace_dashed_keys_recursive(d: dict[str, Any]) -> dict[str, Any]:
    """Recursively replace dashed keys with underscores in a dictionary."""
    new_dict = {}
    for k, v in d.items():
        new_key = k.replace("-", "_")
        if isinstance(v, dict):
            new_dict[new_key] = _replace_dashed_keys_recursive(v)
        else:
            new_dict[new_key] = v
    return new_dict


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file and normalize its keys."""
    if config_path_str:
        config_path = Path(config_path_str).expanduser()
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                return _replace_dashed_keys_recursive(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            console.print(
                f"[bold red]Error parsing config file {config_path}: {e}[/bold red]",
            )
            return {}

    # Report error only if an explicit path was given
    console.print(f"[bold red]Config file not found at {config_path_str}[/bold red]")
    return {}


# --- Prompts ---

_PROMPTS = TypeAdapter(list[Message])


def parse_prompts(prompt_json: str | None, system_prompt: str | None) -> list[Message]:
    """Build the seed prompts of a conversation.

    `prompt_json` is a JSON array of ``{"role": ..., "content": ...}`` objects
    and wins over `system_prompt`.

    Raises:
        ValueError: If `prompt_json` is not a valid list of messages.

    """
    if prompt_json:
        try:
            return _PROMPTS.validate_python(json.loads(prompt_json))
        except (json.JSONDecodeError, ValidationError) as e:
            msg = f"Invalid --prompt value: {e}"
            raise ValueError(msg) from e
    if system_prompt:
        return [Message(role="system", content=system_prompt)]
    return []


# --- Pydantic Models for Configuration ---


class LLMConfig(BaseModel):
    """Connection settings for the OpenAI-compatible backend."""

    model: str
    api_key: str | None = None
    base_url: str
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    temperature: float | None = None
    max_tokens: int | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def completions_url(self) -> str:
        """Endpoint receiving the chat completion POST."""
        return f"{self.base_url}/chat/completions"


class GeneralConfig(BaseModel):
    """General configuration parameters for logging and I/O."""

    log_level: str = "WARNING"
    log_file: str | None = None
    quiet: bool = False
    channel_size: int = DEFAULT_CHANNEL_SIZE


class ChatConfig(BaseModel):
    """Everything a chat session needs."""

    llm: LLMConfig
    general: GeneralConfig = GeneralConfig()
    prompts: list[Message] = [Message(role="system", content=DEFAULT_SYSTEM_PROMPT)]
