"""
Provider client: remote model calls with local fallback.

``ProviderClient.complete`` resolves the provider, builds the request
through the matching adapter, performs the HTTP call, and translates the
response. Every failure (missing credential, transport error, non-2xx
status, unparseable body, unexpected shape) degrades to the local fallback
responder with a notice attached to the reply; ``complete`` never raises.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from llm_agent.config import AgentConfig, CredentialSource
from llm_agent.fallback import LocalResponder
from llm_agent.logging import get_logger
from llm_agent.models import CapabilityDescriptor, ConversationEntry, ModelReply
from llm_agent.providers.base import (
    ProviderAdapter,
    ProviderError,
    ProviderRequest,
    format_messages,
    provider_for_model,
)
from llm_agent.providers.registry import AdapterRegistry
from llm_agent.tools.search import SEARCH_URL

logger = get_logger("providers.client")

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"

# Human-readable meaning of well-known failure statuses
STATUS_LABELS: dict[int, str] = {
    401: "invalid API key",
    429: "quota exceeded",
    404: "unknown model",
}


def describe_error(error: ProviderError) -> str:
    """Turn a provider error into a notice for the user."""
    provider = error.provider or "provider"
    label = STATUS_LABELS.get(error.status_code or 0)
    if label:
        return f"{provider} request failed ({label}): {error.message}. Using simulated responses."
    return f"{provider} request failed: {error.message}. Using simulated responses."


def _error_message(response: httpx.Response) -> str:
    """Provider-supplied error message if the body is JSON, else the status line."""
    status_line = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        data = response.json()
    except ValueError:
        return status_line
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return status_line


@dataclass
class ConnectionStatus:
    """Result of probing one configured service."""

    service: str
    ok: bool
    detail: str = ""


class ProviderClient:
    """
    Calls the configured model provider and always returns a usable reply.

    Example:
        client = ProviderClient(AgentConfig(model="claude-3-5-sonnet-20241022"))
        reply = await client.complete(normalize(history), registry.list_capabilities())
        if reply.notice:
            print(reply.notice)
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        registry: AdapterRegistry | None = None,
        credentials: CredentialSource | None = None,
        http_client: httpx.AsyncClient | None = None,
        fallback: LocalResponder | None = None,
    ) -> None:
        self.config = config or AgentConfig()
        self.registry = registry or AdapterRegistry.with_defaults()
        self.credentials = credentials or self.config.credential_source()
        self.http_client = http_client
        self.fallback = fallback or LocalResponder(delay=self.config.simulation_delay)

    def resolve_provider(self, provider_hint: str | None = None) -> str:
        """Explicit hint, then configured provider, then the model id."""
        if provider_hint:
            return AdapterRegistry.canonical_name(provider_hint)
        if self.config.provider:
            return AdapterRegistry.canonical_name(self.config.provider)
        return provider_for_model(self.config.model)

    async def complete(
        self,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
        provider_hint: str | None = None,
    ) -> ModelReply:
        """
        Get the next model reply for ``history``.

        Args:
            history: Normalized conversation history
            capabilities: Tools the model may request
            provider_hint: Provider name overriding configuration

        Returns:
            ModelReply from the provider, or from the local responder with
            ``notice`` set when the remote call was skipped or failed
        """
        provider = self.resolve_provider(provider_hint)

        if provider not in self.registry:
            return await self._fall_back(
                history, capabilities, f"Unsupported provider '{provider}'. Using simulated responses."
            )

        credential = self.credentials.get_credential(provider)
        if not credential:
            logger.info("No credential for %s, using local responder", provider)
            return await self._fall_back(
                history, capabilities, f"No API key configured for {provider}. Using simulated responses."
            )

        try:
            adapter = self.registry.get(provider)
            return await self._call(adapter, history, capabilities, credential)
        except ProviderError as e:
            logger.warning("%s call failed (status=%s): %s", provider, e.status_code, e.message)
            notice = describe_error(e)
        except Exception as e:
            logger.warning("%s call failed: %s", provider, e)
            notice = f"{provider} request failed: {e}. Using simulated responses."

        return await self._fall_back(history, capabilities, notice)

    async def _call(
        self,
        adapter: ProviderAdapter,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
        credential: str,
    ) -> ModelReply:
        messages = format_messages(history, self.config.system_prompt)
        request = adapter.build_request(
            messages,
            capabilities,
            self.config.model,
            credential,
            max_tokens=self.config.max_tokens,
        )
        logger.debug("POST %s (%d messages, %d tools)", request.url, len(messages), len(capabilities))

        response = await self._post(request)
        if not response.is_success:
            raise ProviderError(
                _error_message(response),
                status_code=response.status_code,
                provider=adapter.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Response was not valid JSON: {e}", provider=adapter.name) from e

        return adapter.parse_response(data)

    async def _post(self, request: ProviderRequest) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": request.headers, "json": request.body}
        if request.params:
            kwargs["params"] = request.params

        if self.http_client is not None:
            return await self.http_client.post(request.url, timeout=self.config.request_timeout, **kwargs)
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.request_timeout)) as client:
            return await client.post(request.url, **kwargs)

    async def _fall_back(
        self,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
        notice: str,
    ) -> ModelReply:
        reply = await self.fallback.respond(history, capabilities)
        reply.notice = notice
        return reply

    async def check_connections(self) -> list[ConnectionStatus]:
        """
        Probe the services that have credentials configured.

        Checks the OpenAI model listing and the Google Custom Search API.
        Services without credentials are skipped.
        """
        results: list[ConnectionStatus] = []

        openai_key = self.credentials.get_credential("openai")
        if openai_key:
            results.append(
                await self._probe(
                    "OpenAI",
                    OPENAI_MODELS_URL,
                    headers={"Authorization": f"Bearer {openai_key}"},
                )
            )

        search_key = self.credentials.get_credential("google_search")
        if search_key and self.config.search_engine_id:
            results.append(
                await self._probe(
                    "Google Search",
                    SEARCH_URL,
                    params={"key": search_key, "cx": self.config.search_engine_id, "q": "test"},
                )
            )

        return results

    async def _probe(
        self,
        service: str,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> ConnectionStatus:
        try:
            if self.http_client is not None:
                response = await self.http_client.get(
                    url, headers=headers, params=params, timeout=self.config.request_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.request_timeout)) as client:
                    response = await client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            logger.debug("%s probe failed: %s", service, e)
            return ConnectionStatus(service, ok=False, detail=f"Network error: {e}")

        if response.is_success:
            return ConnectionStatus(service, ok=True, detail="Connected")
        return ConnectionStatus(service, ok=False, detail=_error_message(response))
