"""Shared pytest fixtures for llm-agent tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from llm_agent import (
    AgentConfig,
    BaseTool,
    CapabilityDescriptor,
    ConversationEntry,
    LocalResponder,
    ModelReply,
    StaticCredentials,
    ToolRegistry,
    ToolRequest,
)
from llm_agent.tools import create_default_tools


class EchoTool(BaseTool):
    """Returns its arguments, optionally after a delay."""

    def __init__(self, name: str = "echo", delay: float = 0.0, log: list[str] | None = None) -> None:
        self._name = name
        self.delay = delay
        self.log = log if log is not None else []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"Echo tool {self._name}"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        }

    async def execute(self, args: dict[str, Any]) -> dict[str, Any]:
        self.log.append(f"start:{self._name}")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.log.append(f"end:{self._name}")
        return {"tool": self._name, "text": args["text"]}


class ScriptedProvider:
    """Model provider returning queued replies and recording every call."""

    def __init__(self, replies: list[ModelReply] | None = None, default: ModelReply | None = None) -> None:
        self.replies = list(replies or [])
        self.default = default or ModelReply(text="Done.", provider="scripted")
        self.calls: list[list[ConversationEntry]] = []

    async def complete(
        self,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
        provider_hint: str | None = None,
    ) -> ModelReply:
        self.calls.append(list(history))
        if self.replies:
            return self.replies.pop(0)
        return self.default


@pytest.fixture
def config() -> AgentConfig:
    """Config with no credentials and no artificial latency."""
    return AgentConfig(
        simulation_delay=0.0,
        tool_latency=0.0,
        code_timeout=5.0,
        use_env_credentials=False,
    )


@pytest.fixture
def no_credentials() -> StaticCredentials:
    return StaticCredentials({})


@pytest.fixture
def responder() -> LocalResponder:
    return LocalResponder(delay=0)


@pytest.fixture
def default_registry(config: AgentConfig) -> ToolRegistry:
    """Registry with the built-in tools, offline."""
    return ToolRegistry(create_default_tools(config))


@pytest.fixture
def capabilities(default_registry: ToolRegistry) -> list[CapabilityDescriptor]:
    return default_registry.list_capabilities()


@pytest.fixture
def echo_registry() -> ToolRegistry:
    return ToolRegistry([EchoTool()])


def tool_reply(*requests: ToolRequest, text: str = "") -> ModelReply:
    """A model reply carrying tool requests."""
    return ModelReply(text=text, tool_requests=list(requests), provider="scripted")
