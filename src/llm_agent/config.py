"""
Configuration models for the agent loop.

Provides a configuration object that can be loaded from YAML files, plain
dictionaries, or environment variables, plus the credential sources the
provider client and tools resolve API keys from.

Example YAML:
    provider: anthropic
    model: claude-3-5-sonnet-20241022
    system_prompt: "You are a helpful research assistant."
    max_iterations: 3
    search_engine_id: "0123456789abcdef"
    credentials:
      anthropic: "sk-ant-..."
      google_search: "AIza..."
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Environment variables consulted for each credential name, in order.
ENV_CREDENTIALS: dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "aipipe": ("AIPIPE_TOKEN", "AIPIPE_API_KEY"),
    "google_search": ("GOOGLE_SEARCH_API_KEY", "GOOGLE_API_KEY"),
}

DEFAULT_MAX_ITERATIONS = 3


class CredentialSource(ABC):
    """Lookup of API credentials by provider (or service) name."""

    @abstractmethod
    def get_credential(self, name: str) -> str | None:
        """Return the credential for ``name``, or ``None`` if absent."""
        ...


class StaticCredentials(CredentialSource):
    """Credentials held in memory, e.g. supplied by a settings form."""

    def __init__(self, values: Mapping[str, str | None] | None = None) -> None:
        self._values = dict(values or {})

    def get_credential(self, name: str) -> str | None:
        value = self._values.get(name)
        return value or None


class EnvCredentials(CredentialSource):
    """Credentials read from environment variables (see ``ENV_CREDENTIALS``)."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get_credential(self, name: str) -> str | None:
        for var in ENV_CREDENTIALS.get(name, (f"{name.upper()}_API_KEY",)):
            value = self._environ.get(var)
            if value:
                return value
        return None


class ChainedCredentials(CredentialSource):
    """First non-empty credential from a list of sources."""

    def __init__(self, *sources: CredentialSource) -> None:
        self.sources = list(sources)

    def get_credential(self, name: str) -> str | None:
        for source in self.sources:
            value = source.get_credential(name)
            if value:
                return value
        return None


@dataclass
class AgentConfig:
    """
    Configuration for the agent loop and the provider client.

    Passed explicitly into the provider client at call time, so model
    selection never depends on ambient global state.
    """

    # Model selection
    provider: str | None = None  # None = derive from model id
    model: str = "gpt-4o-mini"
    system_prompt: str = ""

    # Loop behavior
    max_iterations: int = DEFAULT_MAX_ITERATIONS  # Max tool rounds per user turn

    # Remote calls
    max_tokens: int = 1024
    request_timeout: float = 60.0

    # Simulation
    simulation_delay: float = 1.0  # Artificial latency of the local responder
    tool_latency: float = 1.0  # Artificial latency of simulated workflows

    # Tools
    code_timeout: float = 10.0
    search_engine_id: str | None = None
    search_results: int = 10

    # Credentials
    credentials: dict[str, str] = field(default_factory=dict)
    use_env_credentials: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentConfig:
        """Create config from a dictionary."""
        return cls(
            provider=data.get("provider"),
            model=data.get("model", "gpt-4o-mini"),
            system_prompt=data.get("system_prompt", ""),
            max_iterations=int(data.get("max_iterations", DEFAULT_MAX_ITERATIONS)),
            max_tokens=int(data.get("max_tokens", 1024)),
            request_timeout=float(data.get("request_timeout", 60.0)),
            simulation_delay=float(data.get("simulation_delay", 1.0)),
            tool_latency=float(data.get("tool_latency", 1.0)),
            code_timeout=float(data.get("code_timeout", 10.0)),
            search_engine_id=data.get("search_engine_id"),
            search_results=int(data.get("search_results", 10)),
            credentials=dict(data.get("credentials") or {}),
            use_env_credentials=data.get("use_env_credentials", True),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> AgentConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> AgentConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    @classmethod
    def from_env(cls, **overrides: Any) -> AgentConfig:
        """Create config from environment variables (and a ``.env`` file)."""
        load_dotenv()
        values: dict[str, Any] = {
            "provider": os.environ.get("LLM_AGENT_PROVIDER") or None,
            "model": os.environ.get("LLM_AGENT_MODEL", "gpt-4o-mini"),
            "system_prompt": os.environ.get("LLM_AGENT_SYSTEM_PROMPT", ""),
            "search_engine_id": os.environ.get("GOOGLE_SEARCH_ENGINE_ID") or None,
        }
        max_iterations = os.environ.get("LLM_AGENT_MAX_ITERATIONS")
        if max_iterations:
            values["max_iterations"] = int(max_iterations)
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary (credentials are masked)."""
        return {
            "provider": self.provider,
            "model": self.model,
            "system_prompt": self.system_prompt,
            "max_iterations": self.max_iterations,
            "max_tokens": self.max_tokens,
            "request_timeout": self.request_timeout,
            "simulation_delay": self.simulation_delay,
            "tool_latency": self.tool_latency,
            "code_timeout": self.code_timeout,
            "search_engine_id": self.search_engine_id,
            "search_results": self.search_results,
            "credentials": {name: "***" for name in self.credentials},
            "use_env_credentials": self.use_env_credentials,
        }

    def credential_source(self) -> CredentialSource:
        """Explicit credentials first, then the environment if enabled."""
        sources: list[CredentialSource] = [StaticCredentials(self.credentials)]
        if self.use_env_credentials:
            sources.append(EnvCredentials())
        return ChainedCredentials(*sources)
