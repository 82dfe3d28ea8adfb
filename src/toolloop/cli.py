"""toolloop CLI."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from toolloop.config import Settings, get_settings
from toolloop.errors import ToolLoopError
from toolloop.logging_utils import configure_logging
from toolloop.runtime import list_remote_tools, run_conversation
from toolloop.types import ConversationState

app = typer.Typer(
    name="toolloop",
    help="Drive a tool-calling conversation between a chat model and an MCP server.",
    add_completion=False,
)
console = Console()


def _load_settings(**overrides: object) -> Settings:
    try:
        settings = get_settings(**overrides)
    except ToolLoopError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    configure_logging(profile="cli", level=settings.log_level)
    return settings


def _render_final(state: ConversationState) -> None:
    console.print(Rule("Last Assistant Message", characters="="))
    console.print(state.final_content or "", markup=False)
    console.print(Rule(characters="="))


@app.command()
def run(
    prompt: str = typer.Argument(..., help="User message seeding the conversation"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model identifier"),
    mcp_url: Optional[str] = typer.Option(None, "--mcp-url", help="MCP server endpoint"),
    chat_url: Optional[str] = typer.Option(None, "--chat-url", help="Chat completions base URL"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", help="Hard cap on completion turns"),
) -> None:
    """Run one conversation until the model stops."""
    settings = _load_settings(model=model, mcp_url=mcp_url, chat_url=chat_url, max_turns=max_turns)
    try:
        state = asyncio.run(run_conversation(settings, prompt))
    except KeyboardInterrupt:
        console.print("[yellow]cancelled[/yellow]")
        raise typer.Exit(130) from None
    except ToolLoopError as exc:
        console.print(f"[red]{type(exc).__name__}: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if not state.resolved:
        console.print(f"[red]unresolved conversation: {escape(str(state.anomaly))}[/red]")
        raise typer.Exit(1)
    _render_final(state)


@app.command()
def tools(
    mcp_url: Optional[str] = typer.Option(None, "--mcp-url", help="MCP server endpoint"),
) -> None:
    """List the tools announced by the MCP server."""
    settings = _load_settings(mcp_url=mcp_url)
    try:
        descriptors = asyncio.run(list_remote_tools(settings))
    except KeyboardInterrupt:
        console.print("[yellow]cancelled[/yellow]")
        raise typer.Exit(130) from None
    except ToolLoopError as exc:
        console.print(f"[red]{type(exc).__name__}: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    if not descriptors:
        typer.echo("(no tools)")
        return
    for descriptor in descriptors:
        typer.echo(f"{descriptor.name}: {descriptor.description}")
