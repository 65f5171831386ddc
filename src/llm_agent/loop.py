"""
The agent loop.

Drives one conversation: each user turn calls the model, runs any requested
tools concurrently, feeds the results back, and repeats until the model
answers without tool requests or the iteration bound is hit.

States:
    IDLE -> AWAITING_MODEL -> (EXECUTING_TOOLS -> AWAITING_MODEL)* -> SUSPENDED

Example:
    from llm_agent import AgentConfig, AgentLoop, ProviderClient, create_default_registry

    config = AgentConfig.from_env()
    loop = AgentLoop(ProviderClient(config), create_default_registry(config), config=config)
    outcome = await loop.send("Search for the latest AI news")
    print(outcome.reason)  # SuspendReason.AWAITING_INPUT
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from llm_agent.config import DEFAULT_MAX_ITERATIONS, AgentConfig
from llm_agent.events import (
    AGENT_END,
    DISPLAY_ASSISTANT,
    DISPLAY_TOOL_CALL,
    DISPLAY_TOOL_RESULT,
    DISPLAY_USER,
    ENTRY,
    ERROR,
    INFO,
    NOTICE,
    STATUS,
    TURN_END,
    TURN_START,
    WARNING,
    AgentEndEvent,
    EntryEvent,
    EventBus,
    NoticeEvent,
    StatusEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from llm_agent.logging import get_logger
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
from llm_agent.normalizer import normalize

logger = get_logger("loop")

STATUS_THINKING = "Thinking..."
STATUS_EXECUTING = "Executing tools..."
STATUS_READY = "Ready"
STATUS_ERROR = "Error"


class ModelProvider(Protocol):
    async def complete(
        self,
        history: Sequence[ConversationEntry],
        capabilities: Sequence[CapabilityDescriptor],
        provider_hint: str | None = None,
    ) -> ModelReply: ...


class ToolInvoker(Protocol):
    def list_capabilities(self) -> list[CapabilityDescriptor]: ...

    async def invoke(self, request: ToolRequest) -> ToolResult: ...


@dataclass
class TurnOutcome:
    """How a call to ``AgentLoop.send`` ended."""

    state: LoopState
    reason: SuspendReason | None = None
    error: str | None = None
    iterations: int = 0
    accepted: bool = True  # False when the input was ignored


class AgentLoop:
    """
    Bounded agent loop over a single conversation.

    Only one turn runs at a time: input sent while a turn is active is
    ignored. Faults never escape ``send``; they suspend the loop with
    ``SuspendReason.ERROR`` and are reported on the event bus.
    """

    def __init__(
        self,
        provider: ModelProvider,
        tools: ToolInvoker,
        config: AgentConfig | None = None,
        events: EventBus | None = None,
        max_iterations: int | None = None,
        provider_hint: str | None = None,
    ) -> None:
        self.provider = provider
        self.tools = tools
        self.config = config or AgentConfig()
        self.events = events or EventBus()
        self.max_iterations = max_iterations or self.config.max_iterations or DEFAULT_MAX_ITERATIONS
        self.provider_hint = provider_hint
        self.session = LoopSession()

    @property
    def history(self) -> list[ConversationEntry]:
        return list(self.session.history)

    @property
    def is_active(self) -> bool:
        return self.session.is_active

    @property
    def state(self) -> LoopState:
        return self.session.state

    def clear(self) -> None:
        """Discard the conversation.

        A turn still in flight runs to completion against the old session
        and never touches the new one.
        """
        if self.session.is_active:
            logger.debug("Clearing conversation while a turn is in flight")
        self.session = LoopSession()

    async def send(self, text: str) -> TurnOutcome:
        """
        Submit user input and drive the loop until it suspends.

        Args:
            text: User message; blank input is ignored

        Returns:
            TurnOutcome describing the suspended state
        """
        session = self.session
        text = text.strip() if text else ""
        if not text:
            return TurnOutcome(state=session.state, accepted=False)
        if session.is_active:
            logger.debug("Turn already in progress, ignoring input")
            return TurnOutcome(state=session.state, accepted=False)

        session.history.append(ConversationEntry.user(text))
        session.is_active = True
        session.iteration_count = 0
        session.suspend_reason = None
        session.last_error = None

        error: str | None = None
        try:
            await self._emit(session, ENTRY, EntryEvent(DISPLAY_USER, text))
            reason = await self._run(session)
        except Exception as e:
            logger.error("Agent turn failed: %s", e, exc_info=True)
            reason = SuspendReason.ERROR
            error = str(e)

        if reason is None:
            # Cleared mid-turn
            session.is_active = False
            session.state = LoopState.IDLE
            return TurnOutcome(state=LoopState.IDLE, iterations=session.iteration_count)

        return await self._suspend(session, text, reason, error)

    async def _run(self, session: LoopSession) -> SuspendReason | None:
        """Alternate model calls and tool rounds; returns None if the session was cleared."""
        capabilities = self.tools.list_capabilities()

        while True:
            session.state = LoopState.AWAITING_MODEL
            await self._emit(session, STATUS, StatusEvent(STATUS_THINKING))

            messages = normalize(session.history)
            await self._emit(
                session,
                TURN_START,
                TurnStartEvent(iteration=session.iteration_count, message_count=len(messages)),
            )

            reply = await self.provider.complete(messages, capabilities, provider_hint=self.provider_hint)
            if session is not self.session:
                return None

            if reply.notice:
                await self._emit(session, NOTICE, NoticeEvent(INFO, reply.notice))

            # A reply with requests but no text is still recorded so its results are paired
            if reply.text.strip() or reply.tool_requests:
                session.history.append(ConversationEntry.assistant(reply.text, reply.tool_requests))
            if reply.text.strip():
                await self._emit(session, ENTRY, EntryEvent(DISPLAY_ASSISTANT, reply.text))

            await self._emit(
                session,
                TURN_END,
                TurnEndEvent(
                    iteration=session.iteration_count,
                    has_tool_requests=bool(reply.tool_requests),
                    content=reply.text,
                    tool_request_count=len(reply.tool_requests),
                    provider=reply.provider,
                ),
            )

            if not reply.tool_requests:
                return SuspendReason.AWAITING_INPUT

            session.state = LoopState.EXECUTING_TOOLS
            await self._emit(session, STATUS, StatusEvent(STATUS_EXECUTING))
            for request in reply.tool_requests:
                await self._emit(
                    session,
                    ENTRY,
                    EntryEvent(DISPLAY_TOOL_CALL, f"{request.name}({request.arguments_json()})"),
                )

            results = await self._execute(reply.tool_requests)
            if session is not self.session:
                return None

            for result in results:
                session.history.append(ConversationEntry.from_result(result))
                await self._emit(session, ENTRY, EntryEvent(DISPLAY_TOOL_RESULT, result.to_content()))

            session.iteration_count += 1
            if session.iteration_count >= self.max_iterations:
                logger.info("Iteration limit reached (%d)", self.max_iterations)
                await self._emit(
                    session,
                    NOTICE,
                    NoticeEvent(
                        WARNING,
                        f"Stopped after {self.max_iterations} tool rounds. "
                        "Send another message to continue.",
                    ),
                )
                return SuspendReason.ITERATION_LIMIT

    async def _execute(self, requests: Sequence[ToolRequest]) -> list[ToolResult]:
        """Run all requests concurrently and wait for every one to settle.

        Results come back in request order. An invocation that raises becomes
        an error result for its request; its siblings still run to completion.
        """
        logger.debug("Executing %d tool request(s)", len(requests))
        settled = await asyncio.gather(*(self.tools.invoke(r) for r in requests), return_exceptions=True)

        results: list[ToolResult] = []
        for request, outcome in zip(requests, settled):
            if isinstance(outcome, BaseException):
                logger.warning("Tool %s raised: %s", request.name, outcome)
                outcome = ToolResult.error(request.id, f"Tool execution failed: {outcome}")
            results.append(outcome)
        return results

    async def _suspend(
        self,
        session: LoopSession,
        user_input: str,
        reason: SuspendReason,
        error: str | None,
    ) -> TurnOutcome:
        session.state = LoopState.SUSPENDED
        session.suspend_reason = reason
        session.last_error = error
        session.is_active = False

        if reason is SuspendReason.ERROR:
            await self._emit_final(session, NOTICE, NoticeEvent(ERROR, f"Agent error: {error}"))
            await self._emit_final(session, STATUS, StatusEvent(STATUS_ERROR))
        else:
            await self._emit_final(session, STATUS, StatusEvent(STATUS_READY))

        await self._emit_final(
            session,
            AGENT_END,
            AgentEndEvent(
                user_input=user_input,
                iterations=session.iteration_count,
                reason=reason.value,
                error=error,
            ),
        )
        return TurnOutcome(
            state=session.state,
            reason=reason,
            error=error,
            iterations=session.iteration_count,
        )

    async def _emit(self, session: LoopSession, event: str, data: Any) -> None:
        # Events from a cleared session are dropped
        if session is self.session:
            await self.events.emit(event, data)

    async def _emit_final(self, session: LoopSession, event: str, data: Any) -> None:
        # The turn is already over; a failing presenter can no longer change its outcome
        try:
            await self._emit(session, event, data)
        except Exception as e:
            logger.warning("Presenter failed while reporting %s: %s", event, e)
