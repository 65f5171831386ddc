"""
Anthropic messages adapter.

The system prompt is hoisted out of the message list into the top-level
``system`` field; the remaining messages are sent as the message list.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypedDict

from llm_agent.models import CapabilityDescriptor, ModelReply
from llm_agent.providers.base import (
    ProviderAdapter,
    ProviderError,
    ProviderRequest,
    tool_request_from_dict,
)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicMessage(TypedDict, total=False):
    """Anthropic message format."""

    role: str
    content: str | list[dict[str, Any]]


class AnthropicAdapter(ProviderAdapter):
    """Messages API wire format."""

    name = "anthropic"
    url = "https://api.anthropic.com/v1/messages"

    def __init__(self, url: str | None = None) -> None:
        if url:
            self.url = url

    def build_request(
        self,
        messages: list[dict[str, Any]],
        capabilities: Sequence[CapabilityDescriptor],
        model: str,
        credential: str,
        max_tokens: int = 1024,
    ) -> ProviderRequest:
        system = next((m["content"] for m in messages if m["role"] == "system"), "")
        anthropic_messages: list[AnthropicMessage] = [
            m for m in messages if m["role"] != "system"  # type: ignore[misc]
        ]

        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system or "",
            "messages": anthropic_messages,
        }
        tools = self.tool_schemas(capabilities)
        if tools:
            body["tools"] = tools

        return ProviderRequest(
            url=self.url,
            headers={
                "Content-Type": "application/json",
                "x-api-key": credential,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body=body,
        )

    def parse_response(self, data: Any) -> ModelReply:
        if not isinstance(data, dict) or not isinstance(data.get("content"), list):
            raise ProviderError("Response contained no content blocks", provider=self.name)

        blocks = data["content"]
        text = ""
        if blocks and isinstance(blocks[0], dict):
            text = blocks[0].get("text") or ""

        tool_requests = [tool_request_from_dict(tc) for tc in data.get("tool_calls") or []]
        for block in blocks:
            if isinstance(block, dict) and block.get("type") == "tool_use":
                tool_requests.append(tool_request_from_dict(block))

        return ModelReply(text=text, tool_requests=tool_requests, provider=self.name)
