"""Default configuration settings for the chatterm package."""

from __future__ import annotations

# --- LLM Configuration ---
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_REQUEST_TIMEOUT = 120.0

# --- Streaming ---
DONE_SENTINEL = "[DONE]"
# Bounded queue between the streaming task and the UI loop
DEFAULT_CHANNEL_SIZE = 256
# Initial reconnect-delay hint, updated by `retry:` fields
DEFAULT_RECONNECT_DELAY_MS = 3000
