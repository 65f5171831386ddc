"""
Local fallback responder.

A rule-based stand-in for a remote model, used when no credential is
configured or a remote call fails. Replies are a pure function of the
conversation: tool request ids are derived from the text they answer, so the
same history always yields the same reply.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import re
from collections.abc import Sequence
from typing import Any

from llm_agent.logging import get_logger
from llm_agent.models import TOOL, USER, CapabilityDescriptor, ConversationEntry, ModelReply, ToolRequest

logger = get_logger("fallback")

SIMULATION_PROVIDER = "simulation"

SEARCH_TOOL = "google_search"
WORKFLOW_TOOL = "ai_workflow"
CODE_TOOL = "execute_python"

DEFAULT_SNIPPET = 'print("Hello, World!")'

INTERVIEW_TRIGGERS = ("interview",)
SEARCH_TRIGGERS = ("search", "google", "look up")
CODE_TRIGGERS = ("code", "python", "javascript", "script")
ANALYSIS_TRIGGERS = ("analyze", "summarize", "process")
EXPLAIN_TRIGGERS = ("explain", "what is", "what are", "how does", "tell me about")
HELP_TRIGGERS = ("help", "what can you do", "capabilities")

# Words removed from a search request to leave the query itself
_QUERY_NOISE = re.compile(r"\b(?:look\s+up|google|search|find|for|about)\b", re.IGNORECASE)
_FENCED = re.compile(r"```[\w+-]*\n(.*?)\n?```", re.DOTALL)
_INLINE = re.compile(r"`([^`]+)`")

CAPABILITY_MENU = (
    "- **Search**: ask me to search for anything\n"
    "- **AI processing**: ask me to analyze, summarize, or process text\n"
    "- **Code**: ask me to run a Python snippet"
)

INTERVIEW_PROMPT = (
    "Happy to help you prepare for an interview. A few questions first:\n\n"
    "1. What role and company are you interviewing for?\n"
    "2. Is it a technical, behavioral, or mixed interview?\n"
    "3. Which topics do you feel least confident about?\n"
    "4. How much time do you have before the interview?\n\n"
    "Answer whichever you can and I'll put together practice questions."
)


def _contains_any(text: str, triggers: Sequence[str]) -> bool:
    return any(t in text for t in triggers)


def _request_id(seed: str, index: int = 0) -> str:
    digest = hashlib.sha1(f"{index}:{seed}".encode()).hexdigest()
    return f"call_sim_{digest[:20]}"


def clean_query(text: str) -> str:
    """Strip search trigger words from ``text``."""
    return " ".join(_QUERY_NOISE.sub(" ", text).split())


def extract_code(text: str) -> str:
    """Return a fenced or backticked snippet from ``text``, else a default."""
    match = _FENCED.search(text) or _INLINE.search(text)
    if match:
        return match.group(1).strip()
    return DEFAULT_SNIPPET


def summarize_search(payload: dict[str, Any]) -> str:
    query = payload.get("query", "")
    results = payload.get("results") or []
    if not results:
        return f'I couldn\'t find any results for "{query}". Would you like to try a different search?'

    lines = []
    for index, result in enumerate(results, start=1):
        if not isinstance(result, dict):
            # Plain URLs or strings from a foreign search backend
            lines.append(f"{index}. {result}")
            continue
        url = result.get("url", "")
        lines.append(
            f"{index}. **{result.get('title', '')}**\n"
            f"   {result.get('snippet', '')}\n"
            f"   [{url}]({url})"
        )
    return (
        f'Here are the search results for "{query}":\n\n'
        + "\n\n".join(lines)
        + "\n\nWould you like me to search for something else or look closer at one of these results?"
    )


def summarize_workflow(payload: dict[str, Any]) -> str:
    return (
        f"AI {payload.get('workflow')} workflow completed:\n\n{payload.get('output')}\n\n"
        "Is there anything else you'd like me to process or analyze?"
    )


def summarize_code(payload: dict[str, Any]) -> str:
    status = "Success" if payload.get("success") else "Error"
    output = payload.get("output") or ""
    error = f"Error: {payload['error']}" if payload.get("error") else ""
    body = "\n".join(part for part in (output, error) if part) or "(no output)"
    return (
        f"Code execution {status}:\n\n"
        f"Code:\n```python\n{payload.get('code', '')}\n```\n\n"
        f"Output:\n```\n{body}\n```\n\n"
        "Would you like to run more code or try something else?"
    )


def summarize_tool_result(content: str) -> str:
    """Describe a serialized tool result in plain language."""
    try:
        payload = json.loads(content)
    except (TypeError, ValueError):
        payload = None

    if isinstance(payload, dict):
        if payload.get("error") is True:
            return f"Sorry, the tool reported an error: {payload.get('message', 'unknown error')}"
        try:
            if "query" in payload and isinstance(payload.get("results"), list):
                return summarize_search(payload)
            if "workflow" in payload and "output" in payload:
                return summarize_workflow(payload)
            if "code" in payload:
                return summarize_code(payload)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Unexpected tool result shape, showing it raw: %s", e)

    preview = content if len(content) <= 500 else content[:500] + "..."
    return f"The tool returned:\n\n{preview}"


class LocalResponder:
    """
    Deterministic local model used when remote providers are unavailable.

    Example:
        responder = LocalResponder(delay=0)
        reply = await responder.respond(
            [ConversationEntry.user("Search for IBM")],
            registry.list_capabilities(),
        )
        # reply.tool_requests[0].name == "google_search"
    """

    def __init__(self, delay: float = 1.0) -> None:
        self.delay = delay

    async def respond(
        self,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
    ) -> ModelReply:
        if self.delay > 0:
            # Mimic remote latency
            await asyncio.sleep(self.delay)

        available = {c.name for c in capabilities}
        if history and history[-1].role == TOOL:
            return self._reply(summarize_tool_result(history[-1].content))

        text = next((e.content for e in reversed(history) if e.role == USER), "")
        return self._respond_to_user(text, available)

    def _respond_to_user(self, text: str, available: set[str]) -> ModelReply:
        lowered = text.lower()

        if _contains_any(lowered, INTERVIEW_TRIGGERS):
            return self._reply(INTERVIEW_PROMPT)

        if _contains_any(lowered, SEARCH_TRIGGERS) and SEARCH_TOOL in available:
            query = clean_query(text) or text
            return self._reply(
                f'I\'ll search for information about "{query}".',
                self._request(SEARCH_TOOL, {"query": query}, text),
            )

        if _contains_any(lowered, CODE_TRIGGERS) and CODE_TOOL in available:
            return self._reply(
                "I'll execute this Python code for you.",
                self._request(CODE_TOOL, {"code": extract_code(text)}, text),
            )

        if _contains_any(lowered, ANALYSIS_TRIGGERS) and WORKFLOW_TOOL in available:
            workflow = "summarize" if "summarize" in lowered else "analyze"
            return self._reply(
                f"I'll run the {workflow} workflow on this content.",
                self._request(
                    WORKFLOW_TOOL,
                    {"workflow": workflow, "data": text, "pipeline": "default"},
                    text,
                ),
            )

        if _contains_any(lowered, EXPLAIN_TRIGGERS) and SEARCH_TOOL in available:
            return self._reply(
                f'I\'ll search for information about "{text}".',
                self._request(SEARCH_TOOL, {"query": text}, text),
            )

        if _contains_any(lowered, HELP_TRIGGERS):
            return self._reply(f"I can help you with:\n{CAPABILITY_MENU}\n\nWhat would you like to do?")

        return self._reply(
            f'I understand you\'re asking about: "{text}". I can help you with:\n'
            f"{CAPABILITY_MENU}\n\nWhat would you like to do?"
        )

    @staticmethod
    def _request(name: str, arguments: dict[str, Any], seed: str) -> list[ToolRequest]:
        return [ToolRequest(id=_request_id(f"{name}:{seed}"), name=name, arguments=arguments)]

    @staticmethod
    def _reply(text: str, tool_requests: list[ToolRequest] | None = None) -> ModelReply:
        return ModelReply(text=text, tool_requests=tool_requests or [], provider=SIMULATION_PROVIDER)
