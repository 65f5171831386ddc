"""Built-in capabilities for the agent."""
from __future__ import annotations

from llm_agent.config import AgentConfig
from llm_agent.tools.code_exec import ExecutePythonTool
from llm_agent.tools.registry import BaseTool, ToolArgumentError, ToolRegistry, validate_arguments
from llm_agent.tools.search import GoogleSearchTool
from llm_agent.tools.workflow import WorkflowTool

__all__ = [
    "BaseTool",
    "ToolRegistry",
    "ToolArgumentError",
    "validate_arguments",
    "GoogleSearchTool",
    "WorkflowTool",
    "ExecutePythonTool",
    "create_default_tools",
    "create_default_registry",
]


def create_default_tools(config: AgentConfig | None = None) -> list[BaseTool]:
    """Create the search, workflow, and code execution tools."""
    config = config or AgentConfig()
    return [
        GoogleSearchTool(
            credentials=config.credential_source(),
            search_engine_id=config.search_engine_id,
            max_results=config.search_results,
            timeout=config.request_timeout,
        ),
        WorkflowTool(latency=config.tool_latency),
        ExecutePythonTool(timeout=config.code_timeout),
    ]


def create_default_registry(config: AgentConfig | None = None) -> ToolRegistry:
    """Create a registry holding the default tools."""
    return ToolRegistry(create_default_tools(config))
