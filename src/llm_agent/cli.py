"""
Command-line interface for the agent loop.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from llm_agent.config import AgentConfig
from llm_agent.events import (
    DISPLAY_ASSISTANT,
    DISPLAY_TOOL_CALL,
    DISPLAY_TOOL_RESULT,
    ERROR,
    INFO,
    WARNING,
    EventBus,
    Presenter,
)
from llm_agent.logging import setup_logging
from llm_agent.loop import AgentLoop
from llm_agent.models import SuspendReason
from llm_agent.providers import ProviderClient
from llm_agent.tools import create_default_registry

console = Console()

NOTICE_STYLES = {
    INFO: "cyan",
    WARNING: "yellow",
    ERROR: "red",
}

WELCOME = """\
**Try these:**
- "Search for latest AI news"
- "Analyze this text: ..."
- "Run this code: `print(sum(range(10)))`"

Commands: `/clear` resets the conversation, `/quit` exits.
Without API keys every reply is simulated locally."""


class ConsolePresenter(Presenter):
    """Renders loop events to a rich console."""

    source = "console"

    def __init__(self, console: Console, show_tools: bool = True) -> None:
        self.console = console
        self.show_tools = show_tools
        self.status = ""

    def display_entry(self, role: str, content: str) -> None:
        if role == DISPLAY_ASSISTANT:
            self.console.print(Panel(Markdown(content), title="Agent", border_style="green"))
        elif role == DISPLAY_TOOL_CALL:
            if self.show_tools:
                self.console.print(f"[yellow]🔧 {escape(content)}[/yellow]")
        elif role == DISPLAY_TOOL_RESULT:
            if self.show_tools:
                preview = content if len(content) <= 300 else content[:300] + "..."
                self.console.print(f"[dim]✅ Result: {escape(preview)}[/dim]")

    def set_status(self, label: str) -> None:
        self.status = label
        self.console.print(f"[dim]{label}[/dim]")

    def show_notice(self, kind: str, text: str) -> None:
        style = NOTICE_STYLES.get(kind, "white")
        self.console.print(f"[{style}]{kind.capitalize()}:[/{style}] {escape(text)}")


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Tool-using LLM agent",
        prog="llm-agent",
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="YAML config file (defaults to environment variables)",
    )
    parser.add_argument("--provider", help="Provider name (openai, aipipe, anthropic, google)")
    parser.add_argument("--model", help="Model identifier")
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Disable the artificial latency of simulated replies and workflows",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    chat_parser = subparsers.add_parser("chat", help="Interactive conversation")
    chat_parser.add_argument(
        "--hide-tools",
        action="store_true",
        help="Do not print tool calls and results",
    )

    ask_parser = subparsers.add_parser("ask", help="Run a single turn")
    ask_parser.add_argument("text", nargs="+", help="Message to send")

    subparsers.add_parser("check", help="Test configured API connections")
    subparsers.add_parser("tools", help="List available tools")
    subparsers.add_parser("config", help="Show the effective configuration")

    args = parser.parse_args()

    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING")

    if args.command == "chat":
        asyncio.run(cmd_chat(args))
    elif args.command == "ask":
        asyncio.run(cmd_ask(args))
    elif args.command == "check":
        asyncio.run(cmd_check(args))
    elif args.command == "tools":
        cmd_tools(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def _load_config(args: argparse.Namespace) -> AgentConfig:
    """Build the config from a YAML file or the environment, then apply flags."""
    if getattr(args, "config", None):
        path = Path(args.config)
        if not path.exists():
            console.print(f"[red]Config file not found: {path}[/red]")
            sys.exit(1)
        config = AgentConfig.from_yaml(path)
    else:
        config = AgentConfig.from_env()

    if getattr(args, "provider", None):
        config.provider = args.provider
    if getattr(args, "model", None):
        config.model = args.model
    if getattr(args, "no_delay", False):
        config.simulation_delay = 0.0
        config.tool_latency = 0.0
    return config


def _create_loop(config: AgentConfig, presenter: Presenter | None = None) -> AgentLoop:
    """Wire the provider client, default tools, and presenter into a loop."""
    events = EventBus()
    if presenter is not None:
        presenter.attach(events)
    return AgentLoop(
        ProviderClient(config),
        create_default_registry(config),
        config=config,
        events=events,
    )


async def cmd_chat(args: argparse.Namespace) -> None:
    """Interactive conversation."""
    config = _load_config(args)
    presenter = ConsolePresenter(console, show_tools=not getattr(args, "hide_tools", False))
    loop = _create_loop(config, presenter)

    console.print(Panel(Markdown(WELCOME), title="LLM Agent", border_style="blue"))

    while True:
        try:
            user_input = console.input("[bold cyan]You:[/bold cyan] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("/quit", "/exit"):
            console.print("Goodbye!")
            break
        if user_input.lower() == "/clear":
            loop.clear()
            console.print("[dim]Conversation cleared.[/dim]")
            continue

        await loop.send(user_input)


async def cmd_ask(args: argparse.Namespace) -> None:
    """Run a single turn and exit non-zero on error."""
    config = _load_config(args)
    loop = _create_loop(config, ConsolePresenter(console))

    outcome = await loop.send(" ".join(args.text))
    if outcome.reason is SuspendReason.ERROR:
        sys.exit(1)


async def cmd_check(args: argparse.Namespace) -> None:
    """Test configured API connections."""
    config = _load_config(args)
    client = ProviderClient(config)

    results = await client.check_connections()
    if not results:
        console.print("[yellow]No API keys found to test[/yellow]")
        sys.exit(1)

    console.print("[bold]Connection Test Results:[/bold]")
    for status in results:
        mark = "[green]✓ Connected[/green]" if status.ok else f"[red]✗ Failed[/red] [dim]{status.detail}[/dim]"
        console.print(f"  {status.service}: {mark}")


def cmd_tools(args: argparse.Namespace) -> None:
    """List available tools."""
    registry = create_default_registry(_load_config(args))

    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Parameters", style="dim")

    for capability in registry.list_capabilities():
        properties = capability.parameters.get("properties", {})
        required = set(capability.parameters.get("required", []))
        params = ", ".join(f"{name}{'*' if name in required else ''}" for name in properties)
        table.add_row(capability.name, capability.description, params)

    console.print(table)
    console.print(f"\n[dim]Total: {len(registry)} tools (* = required)[/dim]")


def cmd_config(args: argparse.Namespace) -> None:
    """Show the effective configuration (credentials masked)."""
    config = _load_config(args)
    console.print("[bold]Current Configuration:[/bold]\n")
    console.print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    main()
