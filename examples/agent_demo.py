#!/usr/bin/env python3
"""
LLM Agent Demo

Runs a few turns through the agent loop and prints every event. With no API
keys configured every reply comes from the local responder, so the demo works
offline.

Usage:
    pip install -e .
    python examples/agent_demo.py
"""

import asyncio

from llm_agent import AgentConfig, AgentLoop, EventBus, Presenter, ProviderClient, create_default_registry


class PrintPresenter(Presenter):
    """Prints loop events to stdout."""

    def display_entry(self, role: str, content: str) -> None:
        print(f"[{role}] {content}")

    def set_status(self, label: str) -> None:
        print(f"  ({label})")

    def show_notice(self, kind: str, text: str) -> None:
        print(f"  !! {kind}: {text}")


async def main() -> None:
    config = AgentConfig.from_env(simulation_delay=0.2, tool_latency=0.2)
    events = EventBus()
    PrintPresenter().attach(events)

    loop = AgentLoop(ProviderClient(config), create_default_registry(config), config=config, events=events)

    for message in (
        "Search for IBM",
        "Summarize this: The quick brown fox jumps over the lazy dog. It was fast.",
        "Run this code: `print(sum(range(10)))`",
        "help",
    ):
        print("\n" + "=" * 60)
        outcome = await loop.send(message)
        print(f"-> {outcome.reason.value} after {outcome.iterations} tool round(s)")


if __name__ == "__main__":
    asyncio.run(main())
