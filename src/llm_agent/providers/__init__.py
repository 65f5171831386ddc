"""Provider adapters and the client that calls them."""
from __future__ import annotations

from llm_agent.providers.anthropic import AnthropicAdapter
from llm_agent.providers.base import (
    DEFAULT_PROVIDER,
    ProviderAdapter,
    ProviderError,
    ProviderRequest,
    format_messages,
    provider_for_model,
)
from llm_agent.providers.client import ConnectionStatus, ProviderClient, describe_error
from llm_agent.providers.gemini import GeminiAdapter
from llm_agent.providers.openai import AIPipeAdapter, OpenAIAdapter
from llm_agent.providers.registry import AdapterRegistry

__all__ = [
    "DEFAULT_PROVIDER",
    "ProviderAdapter",
    "ProviderError",
    "ProviderRequest",
    "format_messages",
    "provider_for_model",
    "OpenAIAdapter",
    "AIPipeAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "AdapterRegistry",
    "ProviderClient",
    "ConnectionStatus",
    "describe_error",
]
