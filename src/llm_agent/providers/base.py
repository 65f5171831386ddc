"""
Base provider adapter interface.

A provider adapter knows one wire format: how to turn a normalized
conversation plus the capability list into an HTTP request, and how to turn
the provider's JSON response back into the canonical ``ModelReply``. The
HTTP call and its fallback handling belong to ``ProviderClient``.
"""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from llm_agent.logging import get_logger
from llm_agent.models import ASSISTANT, TOOL, CapabilityDescriptor, ConversationEntry, ModelReply, ToolRequest

logger = get_logger("providers.base")

DEFAULT_PROVIDER = "openai"

# Substring tokens that identify a model family, checked in order.
MODEL_FAMILY_TOKENS: tuple[tuple[str, str], ...] = (
    ("claude", "anthropic"),
    ("gemini", "google"),
    ("gpt", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("o4", "openai"),
)


def provider_for_model(model: str) -> str:
    """Derive a provider name from a model id, defaulting to OpenAI."""
    lowered = model.lower()
    for token, provider in MODEL_FAMILY_TOKENS:
        if token in lowered:
            return provider
    return DEFAULT_PROVIDER


class ProviderError(Exception):
    """A provider call failed (transport, HTTP status, or response shape)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider = provider


@dataclass
class ProviderRequest:
    """A fully built HTTP request for one provider call."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    params: dict[str, str] = field(default_factory=dict)


def new_request_id() -> str:
    return f"call_{uuid.uuid4().hex[:24]}"


def format_messages(
    history: Sequence[ConversationEntry],
    system_prompt: str = "",
) -> list[dict[str, Any]]:
    """Format history as a flat role/content message list.

    This is the common representation every adapter starts from.
    """
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    for entry in history:
        if entry.role == TOOL:
            messages.append({
                "role": "tool",
                "content": entry.content,
                "tool_call_id": entry.tool_request_id,
            })
        elif entry.role == ASSISTANT and entry.tool_requests:
            messages.append({
                "role": "assistant",
                "content": entry.content or None,
                "tool_calls": [r.to_openai() for r in entry.tool_requests],
            })
        else:
            messages.append({"role": entry.role, "content": entry.content})
    return messages


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Decode tool-call arguments that may arrive as a JSON string or object."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed tool arguments: %.200s", raw)
            return {}
        if isinstance(decoded, dict):
            return decoded
    logger.warning("Tool arguments are not an object: %r", raw)
    return {}


def tool_request_from_dict(data: dict[str, Any]) -> ToolRequest:
    """Build a ToolRequest from an OpenAI-style or flat tool-call dict."""
    function = data.get("function")
    if isinstance(function, dict):
        name = function.get("name", "")
        raw_args = function.get("arguments")
    else:
        name = data.get("name", "")
        raw_args = data.get("arguments", data.get("input"))
    return ToolRequest(
        id=data.get("id") or new_request_id(),
        name=name,
        arguments=parse_arguments(raw_args),
    )


class ProviderAdapter(ABC):
    """
    Abstract base class for provider wire formats.

    Example implementation for a custom provider:

        class MyAdapter(ProviderAdapter):
            name = "my-provider"

            def build_request(self, messages, capabilities, model, credential, max_tokens=1024):
                return ProviderRequest(
                    url="https://api.example.com/chat",
                    headers={"Authorization": f"Bearer {credential}"},
                    body={"model": model, "messages": messages},
                )

            def parse_response(self, data):
                return ModelReply(text=data["output"])
    """

    name: str = ""

    @abstractmethod
    def build_request(
        self,
        messages: list[dict[str, Any]],
        capabilities: Sequence[CapabilityDescriptor],
        model: str,
        credential: str,
        max_tokens: int = 1024,
    ) -> ProviderRequest:
        """
        Build the provider-specific request.

        Args:
            messages: Messages in the common format (see ``format_messages``)
            capabilities: Tools the model may call
            model: Model identifier
            credential: API key or token
            max_tokens: Output token limit, for providers that require one

        Returns:
            ProviderRequest ready to POST
        """
        ...

    @abstractmethod
    def parse_response(self, data: Any) -> ModelReply:
        """
        Translate a successful response body into a ModelReply.

        Raises:
            ProviderError: If the body lacks the expected first choice/candidate
        """
        ...

    @staticmethod
    def tool_schemas(capabilities: Sequence[CapabilityDescriptor]) -> list[dict[str, Any]]:
        """Tools in OpenAI function-calling format."""
        return [c.to_function_schema() for c in capabilities]
