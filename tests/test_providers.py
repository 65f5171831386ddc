"""Tests for provider adapters, the adapter registry, and the provider client."""

from __future__ import annotations

import json

import httpx
import pytest

from llm_agent import AgentConfig, CapabilityDescriptor, ConversationEntry, LocalResponder, StaticCredentials, ToolRequest
from llm_agent.providers import (
    AdapterRegistry,
    AIPipeAdapter,
    AnthropicAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    ProviderClient,
    ProviderError,
    format_messages,
    provider_for_model,
)
from llm_agent.providers.base import parse_arguments, tool_request_from_dict

SEARCH = CapabilityDescriptor(
    name="google_search",
    description="Search Google",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
)

OPENAI_OK = {
    "choices": [
        {
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_abc",
                        "type": "function",
                        "function": {"name": "google_search", "arguments": '{"query": "IBM"}'},
                    }
                ],
            }
        }
    ]
}


def _messages(system: str = "Be brief.") -> list[dict]:
    return format_messages([ConversationEntry.user("Search for IBM")], system)


def _client(
    handler,
    provider: str = "openai",
    credentials: dict[str, str] | None = None,
    **config_overrides,
) -> ProviderClient:
    config = AgentConfig(provider=provider, simulation_delay=0, use_env_credentials=False, **config_overrides)
    return ProviderClient(
        config,
        credentials=StaticCredentials(credentials if credentials is not None else {provider: "secret"}),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        fallback=LocalResponder(delay=0),
    )


class TestProviderForModel:
    """Tests for provider_for_model()."""

    def test_known_families(self) -> None:
        assert provider_for_model("gpt-4o-mini") == "openai"
        assert provider_for_model("o3-mini") == "openai"
        assert provider_for_model("claude-3-5-sonnet-20241022") == "anthropic"
        assert provider_for_model("gemini-1.5-pro") == "google"

    def test_default(self) -> None:
        assert provider_for_model("llama-3-70b") == "openai"


class TestFormatMessages:
    """Tests for the common message format."""

    def test_system_prompt_first(self) -> None:
        messages = _messages("Be brief.")

        assert messages[0] == {"role": "system", "content": "Be brief."}
        assert messages[1] == {"role": "user", "content": "Search for IBM"}

    def test_tool_round(self) -> None:
        request = ToolRequest(id="call_1", name="google_search", arguments={"query": "IBM"})
        history = [
            ConversationEntry.user("Search for IBM"),
            ConversationEntry.assistant("", [request]),
            ConversationEntry.tool("call_1", '{"ok": true}'),
        ]

        messages = format_messages(history)

        assert messages[1]["content"] is None
        assert messages[1]["tool_calls"][0]["function"]["arguments"] == '{"query": "IBM"}'
        assert messages[2] == {"role": "tool", "content": '{"ok": true}', "tool_call_id": "call_1"}


class TestArgumentParsing:
    """Tests for tool-call argument decoding."""

    def test_json_string(self) -> None:
        assert parse_arguments('{"a": 1}') == {"a": 1}

    def test_malformed_becomes_empty(self) -> None:
        assert parse_arguments("{not json") == {}
        assert parse_arguments("[1, 2]") == {}
        assert parse_arguments(None) == {}

    def test_flat_tool_call(self) -> None:
        request = tool_request_from_dict({"id": "t1", "name": "google_search", "input": {"query": "x"}})

        assert request == ToolRequest(id="t1", name="google_search", arguments={"query": "x"})

    def test_missing_id_is_generated(self) -> None:
        request = tool_request_from_dict({"function": {"name": "google_search", "arguments": "{}"}})

        assert request.id.startswith("call_")


class TestOpenAIAdapter:
    """Tests for the chat completions shape."""

    def test_build_request(self) -> None:
        request = OpenAIAdapter().build_request(_messages(), [SEARCH], "gpt-4o-mini", "sk-test")

        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.body["model"] == "gpt-4o-mini"
        assert request.body["messages"][0]["role"] == "system"
        assert request.body["tools"] == [SEARCH.to_function_schema()]
        assert request.body["tool_choice"] == "auto"

    def test_no_tools_omits_choice(self) -> None:
        request = OpenAIAdapter().build_request(_messages(), [], "gpt-4o-mini", "sk-test")

        assert "tools" not in request.body
        assert "tool_choice" not in request.body

    def test_parse_tool_calls(self) -> None:
        reply = OpenAIAdapter().parse_response(OPENAI_OK)

        assert reply.text == ""
        assert reply.tool_requests == [ToolRequest(id="call_abc", name="google_search", arguments={"query": "IBM"})]
        assert reply.provider == "openai"

    def test_parse_missing_choice(self) -> None:
        with pytest.raises(ProviderError):
            OpenAIAdapter().parse_response({"choices": []})

    def test_aipipe_headers(self) -> None:
        request = AIPipeAdapter().build_request(_messages(), [SEARCH], "claude-3-haiku", "token")

        assert request.url == "https://api.aipipe.org/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["X-Model-Provider"] == "anthropic"
        assert request.headers["X-Model-Name"] == "claude-3-haiku"


class TestAnthropicAdapter:
    """Tests for the messages API shape."""

    def test_system_hoisted(self) -> None:
        request = AnthropicAdapter().build_request(_messages("Be brief."), [SEARCH], "claude-3-haiku", "key", 512)

        assert request.body["system"] == "Be brief."
        assert all(m["role"] != "system" for m in request.body["messages"])
        assert request.body["max_tokens"] == 512
        assert request.body["tools"] == [SEARCH.to_function_schema()]
        assert request.headers["x-api-key"] == "key"
        assert request.headers["anthropic-version"] == "2023-06-01"

    def test_parse_text_and_tool_calls(self) -> None:
        data = {
            "content": [{"type": "text", "text": "Looking that up."}],
            "tool_calls": [{"id": "t1", "function": {"name": "google_search", "arguments": '{"query": "IBM"}'}}],
        }

        reply = AnthropicAdapter().parse_response(data)

        assert reply.text == "Looking that up."
        assert reply.tool_requests[0].id == "t1"
        assert reply.tool_requests[0].arguments == {"query": "IBM"}

    def test_parse_tool_use_blocks(self) -> None:
        data = {
            "content": [
                {"type": "text", "text": "Searching."},
                {"type": "tool_use", "id": "toolu_1", "name": "google_search", "input": {"query": "IBM"}},
            ]
        }

        reply = AnthropicAdapter().parse_response(data)

        assert reply.tool_requests == [ToolRequest(id="toolu_1", name="google_search", arguments={"query": "IBM"})]

    def test_parse_missing_content(self) -> None:
        with pytest.raises(ProviderError):
            AnthropicAdapter().parse_response({"type": "error"})


class TestGeminiAdapter:
    """Tests for the generateContent shape."""

    def test_build_request(self) -> None:
        messages = _messages("Be brief.") + [{"role": "assistant", "content": "Sure."}]

        request = GeminiAdapter().build_request(messages, [SEARCH], "gemini-1.5-flash", "g-key")

        assert request.url.endswith("/models/gemini-1.5-flash:generateContent")
        assert request.params == {"key": "g-key"}
        assert request.body["contents"] == [
            {"role": "user", "parts": [{"text": "Be brief."}]},
            {"role": "user", "parts": [{"text": "Search for IBM"}]},
            {"role": "model", "parts": [{"text": "Sure."}]},
        ]
        declarations = request.body["tools"][0]["function_declarations"]
        assert declarations == [
            {"name": "google_search", "description": "Search Google", "parameters": SEARCH.parameters}
        ]

    def test_parse_function_call(self) -> None:
        data = {
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"text": "Let me check."},
                            {"functionCall": {"name": "google_search", "args": {"query": "IBM"}}},
                        ]
                    }
                }
            ]
        }

        reply = GeminiAdapter().parse_response(data)

        assert reply.text == "Let me check."
        assert reply.tool_requests[0].name == "google_search"
        assert reply.tool_requests[0].arguments == {"query": "IBM"}
        assert reply.tool_requests[0].id.startswith("call_")

    def test_parse_missing_candidate(self) -> None:
        with pytest.raises(ProviderError):
            GeminiAdapter().parse_response({"candidates": []})


class TestAdapterRegistry:
    """Tests for AdapterRegistry."""

    def test_defaults(self) -> None:
        registry = AdapterRegistry.with_defaults()

        assert registry.list_adapters() == ["openai", "aipipe", "anthropic", "google"]
        assert isinstance(registry.get("openai"), OpenAIAdapter)
        assert isinstance(registry.get_default(), OpenAIAdapter)

    def test_aliases(self) -> None:
        registry = AdapterRegistry.with_defaults()

        assert isinstance(registry.get("Gemini"), GeminiAdapter)
        assert isinstance(registry.get("claude"), AnthropicAdapter)
        assert "gemini" in registry

    def test_factory_is_lazy_and_cached(self) -> None:
        created: list[int] = []

        def factory() -> OpenAIAdapter:
            created.append(1)
            return OpenAIAdapter(url="https://proxy.local/v1/chat")

        registry = AdapterRegistry()
        registry.register_factory("proxy", factory)

        assert created == []
        first = registry.get("proxy")
        second = registry.get("proxy")
        assert first is second
        assert created == [1]
        assert first.url == "https://proxy.local/v1/chat"

    def test_unknown_raises(self) -> None:
        with pytest.raises(KeyError, match="not found"):
            AdapterRegistry().get("nope")

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            AdapterRegistry().register("", OpenAIAdapter())


@pytest.mark.asyncio
class TestProviderClient:
    """Tests for ProviderClient.complete()."""

    async def test_success(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=OPENAI_OK)

        client = _client(handler, system_prompt="Be brief.")

        reply = await client.complete([ConversationEntry.user("Search for IBM")], [SEARCH])

        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "Be brief."}
        assert reply.provider == "openai"
        assert reply.notice is None
        assert reply.tool_requests[0].id == "call_abc"

    async def test_gemini_key_in_query(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "Hi!"}]}}]})

        client = _client(handler, provider="google", model="gemini-1.5-flash")

        reply = await client.complete([ConversationEntry.user("hello")], [])

        assert seen["params"] == {"key": "secret"}
        assert reply.text == "Hi!"

    async def test_missing_credential_skips_remote_call(self) -> None:
        """No credential: no HTTP call, simulated reply with a notice."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=OPENAI_OK)

        client = _client(handler, credentials={})

        reply = await client.complete([ConversationEntry.user("Search for IBM")], [SEARCH])

        assert calls == []
        assert reply.simulated is True
        assert "No API key" in reply.notice
        assert reply.text.startswith("I'll search for information about")

    async def test_fallback_summarizes_plain_url_search_results(self) -> None:
        """A foreign search payload in history still yields a simulated reply."""
        request = ToolRequest(id="1", name="google_search", arguments={"query": "IBM"})
        history = [
            ConversationEntry.user("Search for IBM"),
            ConversationEntry.assistant("", [request]),
            ConversationEntry.tool("1", json.dumps({"query": "IBM", "results": ["https://ibm.com"]})),
        ]

        client = _client(lambda request: httpx.Response(200, json=OPENAI_OK), credentials={})
        reply = await client.complete(history, [SEARCH])

        assert reply.simulated is True
        assert "https://ibm.com" in reply.text
        assert reply.tool_requests == []

    @pytest.mark.parametrize(
        ("status", "label"),
        [(401, "invalid API key"), (429, "quota exceeded"), (404, "unknown model")],
    )
    async def test_known_status_classified(self, status: int, label: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": {"message": "provider says no"}})

        reply = await _client(handler).complete([ConversationEntry.user("hello")], [SEARCH])

        assert reply.simulated is True
        assert label in reply.notice
        assert "provider says no" in reply.notice

    async def test_non_json_error_uses_status_line(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        reply = await _client(handler).complete([ConversationEntry.user("hello")], [SEARCH])

        assert reply.simulated is True
        assert "502 Bad Gateway" in reply.notice

    async def test_unparseable_body_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        reply = await _client(handler).complete([ConversationEntry.user("hello")], [SEARCH])

        assert reply.simulated is True
        assert "not valid JSON" in reply.notice

    async def test_missing_choice_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        reply = await _client(handler).complete([ConversationEntry.user("hello")], [SEARCH])

        assert reply.simulated is True

    async def test_transport_error_falls_back(self) -> None:
        """A raised transport error still yields a well-formed reply."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        reply = await _client(handler).complete([ConversationEntry.user("Search for IBM")], [SEARCH])

        assert reply.simulated is True
        assert "connection refused" in reply.notice
        assert reply.tool_requests[0].name == "google_search"

    async def test_provider_hint_overrides_config(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Hello"}]})

        client = _client(handler, provider="openai", credentials={"anthropic": "ant-key"})

        reply = await client.complete([ConversationEntry.user("hello")], [], provider_hint="anthropic")

        assert seen["url"] == "https://api.anthropic.com/v1/messages"
        assert reply.text == "Hello"

    async def test_unsupported_provider_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=OPENAI_OK)

        reply = await _client(handler, provider="mystery").complete([ConversationEntry.user("hi")], [])

        assert reply.simulated is True
        assert "Unsupported provider" in reply.notice

    async def test_provider_derived_from_model(self) -> None:
        client = ProviderClient(AgentConfig(model="claude-3-haiku", use_env_credentials=False))

        assert client.resolve_provider() == "anthropic"
        assert client.resolve_provider("gemini") == "google"


@pytest.mark.asyncio
class TestCheckConnections:
    """Tests for ProviderClient.check_connections()."""

    async def test_reports_each_configured_service(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.openai.com":
                return httpx.Response(200, json={"data": []})
            return httpx.Response(400, json={"error": {"message": "Invalid cx"}})

        client = _client(
            handler,
            credentials={"openai": "sk", "google_search": "g"},
            search_engine_id="cx",
        )

        results = await client.check_connections()

        assert [(r.service, r.ok) for r in results] == [("OpenAI", True), ("Google Search", False)]
        assert results[1].detail == "Invalid cx"

    async def test_nothing_configured(self) -> None:
        client = _client(lambda request: httpx.Response(200), credentials={})

        assert await client.check_connections() == []
