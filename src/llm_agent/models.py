"""
Core data models for the agent loop.

These types describe the conversation history, the tool-call protocol, and
the canonical reply shape every provider response is translated into.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

Role = Literal["user", "assistant", "tool"]

USER: Role = "user"
ASSISTANT: Role = "assistant"
TOOL: Role = "tool"


@dataclass(frozen=True)
class ToolRequest:
    """A single tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def arguments_json(self) -> str:
        """Serialize arguments for wire formats that expect a JSON string."""
        return json.dumps(self.arguments, ensure_ascii=False)

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": self.arguments_json(),
            },
        }


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool invocation, always produced (never raised)."""

    request_id: str
    payload: Any
    is_error: bool = False

    def to_content(self) -> str:
        """Serialize the payload as the text of a ``tool`` entry."""
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, default=str, ensure_ascii=False)

    @classmethod
    def error(cls, request_id: str, message: str, **extra: Any) -> ToolResult:
        payload: dict[str, Any] = {"error": True, "message": message}
        payload.update(extra)
        return cls(request_id=request_id, payload=payload, is_error=True)


@dataclass(frozen=True)
class ConversationEntry:
    """
    One entry in the conversation history.

    ``user`` and ``assistant`` entries carry text; an ``assistant`` entry may
    also carry the tool requests it issued. A ``tool`` entry carries the
    serialized result for the request named by ``tool_request_id``.
    """

    role: Role
    content: str
    tool_requests: tuple[ToolRequest, ...] = ()
    tool_request_id: str | None = None

    @classmethod
    def user(cls, text: str) -> ConversationEntry:
        return cls(role=USER, content=text)

    @classmethod
    def assistant(
        cls,
        text: str,
        tool_requests: list[ToolRequest] | tuple[ToolRequest, ...] = (),
    ) -> ConversationEntry:
        return cls(role=ASSISTANT, content=text, tool_requests=tuple(tool_requests))

    @classmethod
    def tool(cls, request_id: str, payload: str) -> ConversationEntry:
        return cls(role=TOOL, content=payload, tool_request_id=request_id)

    @classmethod
    def from_result(cls, result: ToolResult) -> ConversationEntry:
        return cls.tool(result.request_id, result.to_content())

    @property
    def has_tool_requests(self) -> bool:
        return self.role == ASSISTANT and len(self.tool_requests) > 0


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Static description of a tool the model may call."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_function_schema(self) -> dict[str, Any]:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ModelReply:
    """Canonical ``{text, tool_requests}`` result of a model call."""

    text: str = ""
    tool_requests: list[ToolRequest] = field(default_factory=list)
    provider: str = ""  # provider name, or "simulation" for the local responder
    notice: str | None = None  # non-fatal notice for the user (e.g. fallback reason)

    @property
    def simulated(self) -> bool:
        return self.provider == "simulation"


class LoopState(str, Enum):
    """States of the agent loop."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting-model"
    EXECUTING_TOOLS = "executing-tools"
    SUSPENDED = "suspended"


class SuspendReason(str, Enum):
    """Why the loop stopped driving itself."""

    AWAITING_INPUT = "awaiting-input"
    ERROR = "error"
    ITERATION_LIMIT = "iteration-limit"


@dataclass
class LoopSession:
    """Mutable state of one conversation, owned by the agent loop."""

    history: list[ConversationEntry] = field(default_factory=list)
    is_active: bool = False
    iteration_count: int = 0
    state: LoopState = LoopState.IDLE
    suspend_reason: SuspendReason | None = None
    last_error: str | None = None
