"""
Event system for the agent loop.

The loop reports everything a user interface needs (new entries, status
changes, notices, turn boundaries) as events on an ``EventBus``. A
``Presenter`` subscribes to the display events and turns them into
``display_entry`` / ``set_status`` / ``show_notice`` calls, so the loop makes
no assumption about rendering.

Example:
    from llm_agent.events import EventBus, NOTICE

    bus = EventBus()

    @bus.on(NOTICE)
    def log_notice(event):
        print(f"[{event.kind}] {event.text}")

    loop = AgentLoop(client, registry, events=bus)
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from llm_agent.logging import get_logger

logger = get_logger("events")


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

# Event name constants
ENTRY = "entry"
STATUS = "status"
NOTICE = "notice"
TURN_START = "turn_start"
TURN_END = "turn_end"
AGENT_END = "agent_end"

# Display roles used in EntryEvent
DISPLAY_USER = "user"
DISPLAY_ASSISTANT = "assistant"
DISPLAY_TOOL_CALL = "tool-call"
DISPLAY_TOOL_RESULT = "tool-result"

# Notice kinds
INFO = "info"
WARNING = "warning"
ERROR = "error"


@dataclass
class EntryEvent:
    """Emitted when something should appear in the conversation view."""

    role: str  # one of the DISPLAY_* roles
    content: str


@dataclass
class StatusEvent:
    """Emitted when the loop's status label changes."""

    label: str


@dataclass
class NoticeEvent:
    """Emitted for user-facing notices (fallbacks, limits, errors)."""

    kind: str  # "info", "warning", "error"
    text: str


@dataclass
class TurnStartEvent:
    """Emitted before each model call."""

    iteration: int
    message_count: int  # number of entries sent to the model


@dataclass
class TurnEndEvent:
    """Emitted after each model call."""

    iteration: int
    has_tool_requests: bool
    content: str = ""
    tool_request_count: int = 0
    provider: str = ""


@dataclass
class AgentEndEvent:
    """Emitted when the loop stops driving itself."""

    user_input: str
    iterations: int
    reason: str = ""  # "awaiting-input", "iteration-limit", "error"
    error: str | None = None


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

# Sync or async callable taking the event payload
EventHandler = Callable[[Any], Any]


@dataclass
class _Subscription:
    event: str
    handler: EventHandler
    priority: int = 0  # lower runs first
    source: str = ""
    propagate: bool = False  # re-raise instead of logging


class EventBus:
    """
    Publishes loop events to subscribers.

    Subscribers run in priority order, one after another, inside the loop's
    own control flow. A subscriber that raises is logged and skipped, unless
    it subscribed with ``propagate=True``: then the error reaches the emitter
    (the loop ends the turn with ``SuspendReason.ERROR``).

    Usage:
        bus = EventBus()

        @bus.on(TURN_START)
        def on_turn(event: TurnStartEvent):
            print(f"Calling model with {event.message_count} entries")

        unsubscribe = bus.on(AGENT_END, on_end)
        unsubscribe()
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def on(
        self,
        event: str,
        handler: EventHandler | None = None,
        priority: int = 0,
        source: str = "",
        propagate: bool = False,
    ) -> Callable[[], None] | Callable[[EventHandler], EventHandler]:
        """
        Subscribe ``handler`` to ``event``.

        Returns an unsubscribe function, or a decorator when ``handler`` is
        omitted.
        """
        if handler is None:

            def decorator(fn: EventHandler) -> EventHandler:
                self.on(event, fn, priority=priority, source=source, propagate=propagate)
                return fn

            return decorator

        subscription = _Subscription(event, handler, priority, source, propagate)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def off_by_source(self, source: str) -> int:
        """Drop every subscription registered under ``source``; returns how many."""
        kept = [s for s in self._subscriptions if s.source != source]
        removed = len(self._subscriptions) - len(kept)
        self._subscriptions = kept
        return removed

    def clear(self) -> None:
        self._subscriptions.clear()

    async def emit(self, event: str, data: Any = None) -> list[Any]:
        """Deliver ``data`` to the subscribers of ``event``; returns their non-None results."""
        results: list[Any] = []
        for subscription in sorted(self._subscriptions, key=lambda s: s.priority):
            if subscription.event != event:
                continue
            try:
                result = subscription.handler(data)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                if subscription.propagate:
                    raise
                logger.warning("Handler for %s (source=%r) failed: %s", event, subscription.source, e)
                continue
            if result is not None:
                results.append(result)
        return results

    @property
    def handler_count(self) -> int:
        return len(self._subscriptions)

    def has_handlers(self, event: str) -> bool:
        return any(s.event == event for s in self._subscriptions)


# ---------------------------------------------------------------------------
# Presenter
# ---------------------------------------------------------------------------


class Presenter:
    """
    Presentation interface driven by loop events.

    Subclasses override the three display hooks; the defaults do nothing.
    A hook that raises ends the current turn with an error.    """

    source = "presenter"

    def display_entry(self, role: str, content: str) -> None:
        pass

    def set_status(self, label: str) -> None:
        pass

    def show_notice(self, kind: str, text: str) -> None:
        pass

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Subscribe to ``bus``; returns a function that detaches again."""
        hooks = {
            ENTRY: lambda e: self.display_entry(e.role, e.content),
            STATUS: lambda e: self.set_status(e.label),
            NOTICE: lambda e: self.show_notice(e.kind, e.text),
        }
        unsubscribers = [bus.on(event, hook, source=self.source, propagate=True) for event, hook in hooks.items()]

        def detach() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return detach
