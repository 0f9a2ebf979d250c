"""Console output and logging helpers."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

console = Console()
err_console = Console(stderr=True)


def setup_logging(log_level: str, log_file: str | None, *, quiet: bool) -> None:
    """Sets up logging based on parsed arguments."""
    handlers: list[logging.Handler] = []
    if not quiet:
        handlers.append(RichHandler(console=err_console, show_path=False, rich_tracebacks=True))
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )
    # Suppress noisy logs from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_with_style(message: str, style: str = "bold green") -> None:
    """Print a message with a given style."""
    console.print(message, style=style)


def print_error_message(message: str, suggestion: str | None = None, title: str = "Error") -> None:
    """Prints an error message in a formatted panel."""
    error_text = Text(message)
    if suggestion:
        error_text.append("\n\n")
        error_text.append(suggestion)
    console.print(Panel(error_text, title=title, border_style="bold red"))
