"""Tests for the built-in tools."""

from __future__ import annotations

import httpx
import pytest

from llm_agent import AgentConfig, StaticCredentials, ToolRegistry, ToolRequest
from llm_agent.tools import ExecutePythonTool, GoogleSearchTool, WorkflowTool, create_default_registry
from llm_agent.tools.search import SEARCH_URL, SIMULATED_SOURCE, simulated_results
from llm_agent.tools.workflow import WORKFLOWS


def _search_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSimulatedResults:
    """Tests for the offline result buckets."""

    def test_generic_query(self) -> None:
        results = simulated_results("IBM")

        assert len(results) == 3
        assert results[0]["title"] == "IBM - Wikipedia"
        assert results[0]["url"] == "https://en.wikipedia.org/wiki/IBM"
        assert all({"title", "snippet", "url", "displayLink"} <= set(r) for r in results)

    def test_topic_buckets(self) -> None:
        assert "Times of India" in simulated_results("news from india")[0]["title"]
        assert "Artificial Intelligence" in simulated_results("latest AI news")[0]["title"]
        assert "TechCrunch" in simulated_results("tech trends")[0]["title"]


@pytest.mark.asyncio
class TestGoogleSearchTool:
    """Tests for GoogleSearchTool."""

    async def test_simulated_without_credentials(self) -> None:
        tool = GoogleSearchTool(credentials=StaticCredentials({}), search_engine_id=None)

        payload = await tool.execute({"query": "IBM"})

        assert payload["query"] == "IBM"
        assert payload["source"] == SIMULATED_SOURCE
        assert payload["totalResults"] == "3"
        assert len(payload["results"]) == 3

    async def test_empty_query_is_error(self) -> None:
        tool = GoogleSearchTool()

        payload = await tool.execute({"query": "   "})

        assert payload["error"] is True

    async def test_real_search(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            seen["url"] = f"{request.url.scheme}://{request.url.host}{request.url.path}"
            return httpx.Response(
                200,
                json={
                    "items": [
                        {"title": "IBM", "snippet": "Big Blue", "link": "https://ibm.com", "displayLink": "ibm.com"}
                    ],
                    "searchInformation": {"totalResults": "1"},
                },
            )

        tool = GoogleSearchTool(
            credentials=StaticCredentials({"google_search": "key-123"}),
            search_engine_id="cx-1",
            max_results=5,
            http_client=_search_client(handler),
        )

        payload = await tool.execute({"query": "IBM"})

        assert seen["url"] == SEARCH_URL
        assert seen["key"] == "key-123"
        assert seen["cx"] == "cx-1"
        assert seen["num"] == "5"
        assert payload["results"] == [
            {"title": "IBM", "snippet": "Big Blue", "url": "https://ibm.com", "displayLink": "ibm.com"}
        ]
        assert payload["totalResults"] == "1"

    async def test_api_error_is_error_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"message": "API key not valid"}})

        tool = GoogleSearchTool(
            credentials=StaticCredentials({"google_search": "bad"}),
            search_engine_id="cx-1",
            http_client=_search_client(handler),
        )

        payload = await tool.execute({"query": "IBM"})

        assert payload["error"] is True
        assert "API key not valid" in payload["message"]


@pytest.mark.asyncio
class TestWorkflowTool:
    """Tests for WorkflowTool."""

    async def test_summarize(self) -> None:
        tool = WorkflowTool(latency=0)

        payload = await tool.execute({"workflow": "summarize", "data": "One. Two. Three.", "pipeline": "default"})

        assert payload["output"] == "Summary: One. Two."
        assert payload["type"] == "workflow_result"
        assert payload["success"] is True
        assert payload["input"] == "One. Two. Three."

    async def test_every_workflow_produces_output(self) -> None:
        tool = WorkflowTool(latency=0)

        for workflow in WORKFLOWS:
            payload = await tool.execute({"workflow": workflow, "data": "Some text here."})
            assert payload["workflow"] == workflow
            assert payload["output"]

    async def test_classify_is_deterministic(self) -> None:
        tool = WorkflowTool(latency=0)

        first = await tool.execute({"workflow": "classify", "data": "quarterly earnings"})
        second = await tool.execute({"workflow": "classify", "data": "quarterly earnings"})

        assert first["output"] == second["output"]


@pytest.mark.asyncio
class TestExecutePythonTool:
    """Tests for ExecutePythonTool."""

    async def test_captures_print(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": 'print("Hello, World!")'})

        assert payload["success"] is True
        assert payload["output"] == "Hello, World!\n"
        assert payload["error"] is None

    async def test_returns_result_variable(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "result = sum(range(10))"})

        assert payload["result"] == 45
        assert "Return value: 45" in payload["output"]

    async def test_allowed_import(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "import math\nresult = math.floor(2.7)"})

        assert payload["success"] is True
        assert payload["result"] == 2

    async def test_blocked_import(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "import os"})

        assert payload["success"] is False
        assert "not allowed" in payload["error"]

    async def test_no_open_builtin(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "open('/etc/passwd')"})

        assert payload["success"] is False
        assert "NameError" in payload["error"]

    async def test_runtime_error_reported(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "1 / 0"})

        assert payload["success"] is False
        assert payload["error"].startswith("ZeroDivisionError")

    async def test_syntax_error_reported(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "def broken(:"})

        assert payload["success"] is False
        assert "SyntaxError" in payload["error"]

    @pytest.mark.parametrize(
        "code",
        [
            "import random\nresult = random._os.getcwd()",
            "result = ().__class__.__bases__",
            "import statistics\nresult = statistics.sys.modules",
            "import json\nresult = json.codecs.open('x.txt', 'w')",
            "result = __builtins__",
        ],
    )
    async def test_escape_routes_rejected(self, code: str) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": code})

        assert payload["success"] is False
        assert payload["error"].startswith("SandboxViolation")
        assert payload["result"] is None

    async def test_timeout_kills_snippet(self) -> None:
        tool = ExecutePythonTool(timeout=0.5)

        payload = await tool.execute({"code": "while True:\n    pass"})

        assert payload["success"] is False
        assert payload["error"] == "Code timed out after 0.5s"

    async def test_runs_in_fresh_interpreter(self) -> None:
        """Module state does not carry over between calls."""
        tool = ExecutePythonTool()

        await tool.execute({"code": "import math\nmath.tau = 1"})
        payload = await tool.execute({"code": "import math\nresult = round(math.tau, 2)"})

        assert payload["result"] == 6.28

    async def test_output_is_truncated(self) -> None:
        tool = ExecutePythonTool()

        payload = await tool.execute({"code": "for _ in range(30000):\n    print('0123456789')"})

        assert payload["success"] is True
        assert payload["output"].endswith("... (output truncated)\n")
        assert len(payload["output"]) < 101_000


@pytest.mark.asyncio
class TestExecutePythonThroughRegistry:
    """Failed runs surface as error results."""

    async def test_runtime_error_flags_result(self) -> None:
        registry = create_default_registry(AgentConfig(use_env_credentials=False, simulation_delay=0))

        result = await registry.invoke(ToolRequest(id="c1", name="execute_python", arguments={"code": "1/0"}))

        assert result.is_error is True
        assert result.payload["error"].startswith("ZeroDivisionError")

    async def test_timeout_flags_result(self) -> None:
        registry = ToolRegistry([ExecutePythonTool(timeout=0.3)])

        result = await registry.invoke(
            ToolRequest(id="c2", name="execute_python", arguments={"code": "while True:\n    pass"})
        )

        assert result.is_error is True
        assert "timed out" in result.payload["error"]


class TestDefaultRegistry:
    """Tests for create_default_registry()."""

    def test_uses_config(self) -> None:
        config = AgentConfig(search_engine_id="cx", search_results=3, tool_latency=0.5, code_timeout=2.0)

        registry = create_default_registry(config)

        assert registry.get("google_search").search_engine_id == "cx"
        assert registry.get("google_search").max_results == 3
        assert registry.get("ai_workflow").latency == 0.5
        assert registry.get("execute_python").timeout == 2.0
