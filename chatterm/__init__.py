"""A terminal chat client for OpenAI-compatible streaming chat completions."""

from __future__ import annotations

__version__ = "0.1.0"
