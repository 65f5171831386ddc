"""
Provider adapter registry.

Selects the adapter for a provider name. New providers are added by
registering an adapter (or a zero-argument factory) under a name; the call
path in ``ProviderClient`` never changes.

Example:
    registry = AdapterRegistry.with_defaults()
    registry.register_factory("my-proxy", lambda: OpenAIAdapter(url="https://proxy/v1/chat"))

    adapter = registry.get("claude")  # alias of "anthropic"
"""

from __future__ import annotations

from collections.abc import Callable

from llm_agent.logging import get_logger
from llm_agent.providers.anthropic import AnthropicAdapter
from llm_agent.providers.base import DEFAULT_PROVIDER, ProviderAdapter
from llm_agent.providers.gemini import GeminiAdapter
from llm_agent.providers.openai import AIPipeAdapter, OpenAIAdapter

logger = get_logger("providers.registry")

AdapterFactory = Callable[[], ProviderAdapter]

# Alternative spellings accepted for provider names
ALIASES: dict[str, str] = {
    "gemini": "google",
    "claude": "anthropic",
    "ai-pipe": "aipipe",
}


class AdapterRegistry:
    """
    Provider name -> adapter.

    Names are case-insensitive and may use the spellings in ``ALIASES``.
    Factories run on the first lookup and their adapter is reused after that.
    """

    def __init__(self, default: str = DEFAULT_PROVIDER) -> None:
        # Insertion order is registration order; a None adapter is not built yet
        self._adapters: dict[str, ProviderAdapter | None] = {}
        self._factories: dict[str, AdapterFactory] = {}
        self.default_name = default

    @classmethod
    def with_defaults(cls) -> AdapterRegistry:
        registry = cls()
        for name, factory in (
            ("openai", OpenAIAdapter),
            ("aipipe", AIPipeAdapter),
            ("anthropic", AnthropicAdapter),
            ("google", GeminiAdapter),
        ):
            registry.register_factory(name, factory)
        return registry

    @staticmethod
    def canonical_name(name: str) -> str:
        key = name.strip().lower()
        return ALIASES.get(key, key)

    def _key_for(self, name: str) -> str:
        key = self.canonical_name(name)
        if not key:
            raise ValueError("Provider name must not be empty")
        if key in self._adapters:
            logger.debug("Replacing adapter for %s", key)
        return key

    def register(self, name: str, adapter: ProviderAdapter) -> None:
        key = self._key_for(name)
        self._factories.pop(key, None)
        self._adapters[key] = adapter

    def register_factory(self, name: str, factory: AdapterFactory) -> None:
        key = self._key_for(name)
        self._factories[key] = factory
        self._adapters[key] = None

    def get(self, name: str) -> ProviderAdapter:
        """Return the adapter for ``name``; raises KeyError for unknown providers."""
        key = self.canonical_name(name)
        if key not in self._adapters:
            known = ", ".join(self._adapters) or "(none)"
            raise KeyError(f"Adapter '{name}' not found. Available: {known}")

        adapter = self._adapters[key]
        if adapter is None:
            logger.debug("Building %s adapter", key)
            adapter = self._adapters[key] = self._factories.pop(key)()
        return adapter

    def get_default(self) -> ProviderAdapter:
        return self.get(self.default_name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def __contains__(self, name: str) -> bool:
        return self.canonical_name(name) in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
