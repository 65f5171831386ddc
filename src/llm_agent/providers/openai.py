"""
OpenAI-style chat completions adapter.

Also used for the AI Pipe proxy, which accepts the same wire format and
routes the call to the provider named in its headers.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypedDict

from llm_agent.models import CapabilityDescriptor, ModelReply
from llm_agent.providers.base import (
    ProviderAdapter,
    ProviderError,
    ProviderRequest,
    provider_for_model,
    tool_request_from_dict,
)


class OpenAIFunction(TypedDict):
    """OpenAI function definition."""

    name: str
    description: str
    parameters: dict[str, Any]


class OpenAITool(TypedDict):
    """OpenAI tool definition."""

    type: str
    function: OpenAIFunction


class OpenAIMessage(TypedDict, total=False):
    """OpenAI message format."""

    role: str
    content: str | None
    tool_calls: list[dict[str, Any]]
    tool_call_id: str


class OpenAIAdapter(ProviderAdapter):
    """
    Chat completions wire format (flat role/content message list).

    Example:
        adapter = OpenAIAdapter()
        request = adapter.build_request(messages, capabilities, "gpt-4o-mini", api_key)
        # POST request.body to request.url with request.headers
        reply = adapter.parse_response(response_json)
    """

    name = "openai"
    url = "https://api.openai.com/v1/chat/completions"

    def __init__(self, url: str | None = None) -> None:
        if url:
            self.url = url

    def headers(self, credential: str, model: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }

    def build_request(
        self,
        messages: list[dict[str, Any]],
        capabilities: Sequence[CapabilityDescriptor],
        model: str,
        credential: str,
        max_tokens: int = 1024,
    ) -> ProviderRequest:
        body: dict[str, Any] = {
            "model": model,
            "messages": messages,
        }
        tools: list[OpenAITool] = self.tool_schemas(capabilities)  # type: ignore[assignment]
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"

        return ProviderRequest(
            url=self.url,
            headers=self.headers(credential, model),
            body=body,
        )

    def parse_response(self, data: Any) -> ModelReply:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise ProviderError("Response contained no choices", provider=self.name)

        message = choices[0].get("message") or {}
        content = message.get("content") or ""
        tool_requests = [
            tool_request_from_dict(tc) for tc in message.get("tool_calls") or []
        ]
        return ModelReply(text=content, tool_requests=tool_requests, provider=self.name)


class AIPipeAdapter(OpenAIAdapter):
    """OpenAI-format calls routed through the AI Pipe proxy."""

    name = "aipipe"
    url = "https://api.aipipe.org/v1/chat/completions"

    def headers(self, credential: str, model: str) -> dict[str, str]:
        headers = super().headers(credential, model)
        headers["X-Model-Provider"] = provider_for_model(model)
        headers["X-Model-Name"] = model
        return headers
