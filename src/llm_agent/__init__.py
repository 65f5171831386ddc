"""
llm-agent - a bounded, tool-using agent loop for chat-completion APIs.

The loop sends the conversation to a remote model (OpenAI, AI Pipe,
Anthropic, or Gemini), runs the tools the model asks for concurrently, and
feeds the results back until the model answers or the iteration bound is
reached. Without credentials, or when a remote call fails, a deterministic
local responder stands in for the model.

Example:
    import asyncio
    from llm_agent import AgentConfig, AgentLoop, ProviderClient, create_default_registry

    config = AgentConfig.from_env()
    loop = AgentLoop(ProviderClient(config), create_default_registry(config), config=config)
    outcome = asyncio.run(loop.send("Search for IBM"))
"""

from llm_agent.config import (
    AgentConfig,
    ChainedCredentials,
    CredentialSource,
    EnvCredentials,
    StaticCredentials,
)
from llm_agent.events import (
    AGENT_END,
    ENTRY,
    NOTICE,
    STATUS,
    TURN_END,
    TURN_START,
    AgentEndEvent,
    EntryEvent,
    EventBus,
    NoticeEvent,
    Presenter,
    StatusEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from llm_agent.fallback import LocalResponder
from llm_agent.logging import get_logger, setup_logging
from llm_agent.loop import AgentLoop, TurnOutcome
from llm_agent.models import (
    CapabilityDescriptor,
    ConversationEntry,
    LoopSession,
    LoopState,
    ModelReply,
    SuspendReason,
    ToolRequest,
    ToolResult,
)
from llm_agent.normalizer import find_orphans, normalize
from llm_agent.providers import (
    AdapterRegistry,
    ProviderAdapter,
    ProviderClient,
    ProviderError,
    provider_for_model,
)
from llm_agent.tools import (
    BaseTool,
    ToolArgumentError,
    ToolRegistry,
    create_default_registry,
    create_default_tools,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "AgentConfig",
    "CredentialSource",
    "StaticCredentials",
    "EnvCredentials",
    "ChainedCredentials",
    # Models
    "CapabilityDescriptor",
    "ConversationEntry",
    "LoopSession",
    "LoopState",
    "ModelReply",
    "SuspendReason",
    "ToolRequest",
    "ToolResult",
    # Loop
    "AgentLoop",
    "TurnOutcome",
    "normalize",
    "find_orphans",
    # Providers
    "AdapterRegistry",
    "ProviderAdapter",
    "ProviderClient",
    "ProviderError",
    "provider_for_model",
    "LocalResponder",
    # Tools
    "BaseTool",
    "ToolArgumentError",
    "ToolRegistry",
    "create_default_registry",
    "create_default_tools",
    # Events
    "EventBus",
    "Presenter",
    "AGENT_END",
    "ENTRY",
    "NOTICE",
    "STATUS",
    "TURN_END",
    "TURN_START",
    "AgentEndEvent",
    "EntryEvent",
    "NoticeEvent",
    "StatusEvent",
    "TurnEndEvent",
    "TurnStartEvent",
    # Logging
    "get_logger",
    "setup_logging",
]
