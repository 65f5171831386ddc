"""
Google Gemini generateContent adapter.

Gemini has no system or tool roles in this format: every message becomes a
``user`` or ``model`` content with a single text part, and the system
prompt is folded into the stream as a user message.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from llm_agent.models import CapabilityDescriptor, ModelReply, ToolRequest
from llm_agent.providers.base import (
    ProviderAdapter,
    ProviderError,
    ProviderRequest,
    new_request_id,
    parse_arguments,
)


class GeminiAdapter(ProviderAdapter):
    """generateContent wire format."""

    name = "google"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(self, base_url: str | None = None) -> None:
        if base_url:
            self.base_url = base_url

    def build_request(
        self,
        messages: list[dict[str, Any]],
        capabilities: Sequence[CapabilityDescriptor],
        model: str,
        credential: str,
        max_tokens: int = 1024,
    ) -> ProviderRequest:
        contents = [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m.get("content") or ""}],
            }
            for m in messages
        ]

        body: dict[str, Any] = {"contents": contents}
        if capabilities:
            body["tools"] = [
                {
                    "function_declarations": [
                        {
                            "name": c.name,
                            "description": c.description,
                            "parameters": c.parameters,
                        }
                        for c in capabilities
                    ]
                }
            ]

        return ProviderRequest(
            url=f"{self.base_url}/{model}:generateContent",
            headers={"Content-Type": "application/json"},
            body=body,
            params={"key": credential},
        )

    def parse_response(self, data: Any) -> ModelReply:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise ProviderError("Response contained no candidates", provider=self.name)

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = ""
        if parts and isinstance(parts[0], dict):
            text = parts[0].get("text") or ""

        tool_requests = []
        for part in parts:
            call = part.get("functionCall") if isinstance(part, dict) else None
            if call:
                tool_requests.append(
                    ToolRequest(
                        id=call.get("id") or new_request_id(),
                        name=call.get("name", ""),
                        arguments=parse_arguments(call.get("args")),
                    )
                )

        return ModelReply(text=text, tool_requests=tool_requests, provider=self.name)
