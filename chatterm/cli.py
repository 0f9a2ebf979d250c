"""Typer application and config file defaults for chatterm."""

from __future__ import annotations

import dotenv
import typer

from . import __version__
from .config import load_config
from .core.utils import console

app = typer.Typer(
    name="chatterm",
    help="Chat with OpenAI-compatible LLMs from your terminal.",
    add_completion=True,
)


def _version_callback(value: bool) -> None:  # noqa: FBT001
    if value:
        console.print(f"chatterm {__version__}")
        raise typer.Exit


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(  # noqa: ARG001, FBT001
        False,  # noqa: FBT003
        "--version",
        "-V",
        is_eager=True,
        callback=_version_callback,
        help="Show the version and exit.",
    ),
) -> None:
    """Chat with LLMs from your terminal."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print("[bold yellow]Running --help for your convenience.[/bold yellow]")
        console.print(ctx.get_help())
        raise typer.Exit
    # API keys and base URLs may live in a local .env file
    dotenv.load_dotenv()


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> None:
    """Use config file values as option defaults for the command in `ctx`.

    `[defaults]` applies to every command and a section named after the
    command overrides it. Command line flags and environment variables still
    take precedence.
    """
    config = load_config(config_file)
    defaults = dict(config.get("defaults", {}))
    # Runs from an eager option callback, so ctx.command is the command being invoked
    if ctx.command.name:
        defaults.update(config.get(ctx.command.name, {}))
    ctx.default_map = defaults


# Commands register themselves on `app` when imported
from .commands import chat  # noqa: E402, F401
