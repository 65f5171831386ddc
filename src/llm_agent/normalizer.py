"""History normalization for providers that enforce tool-call pairing."""
from __future__ import annotations

from collections.abc import Iterable

from llm_agent.logging import get_logger
from llm_agent.models import TOOL, ConversationEntry

logger = get_logger("normalizer")


def _is_paired(entry: ConversationEntry, open_request_ids: frozenset[str]) -> bool:
    return entry.tool_request_id is not None and entry.tool_request_id in open_request_ids


def normalize(history: Iterable[ConversationEntry]) -> list[ConversationEntry]:
    """Return a provider-safe copy of ``history``.

    A ``tool`` entry is kept only when the closest preceding non-tool entry is
    an assistant entry that issued a tool request with the same id. Orphaned
    tool entries are dropped silently. The input is never modified, and
    normalizing an already clean sequence returns an equal sequence.
    """
    cleaned: list[ConversationEntry] = []
    open_request_ids: frozenset[str] = frozenset()

    for entry in history:
        if entry.role == TOOL:
            if _is_paired(entry, open_request_ids):
                cleaned.append(entry)
            else:
                logger.debug("Dropping orphaned tool entry (id=%s)", entry.tool_request_id)
            continue

        cleaned.append(entry)
        # Only an assistant turn that issued requests opens a tool-result window
        open_request_ids = frozenset(r.id for r in entry.tool_requests) if entry.has_tool_requests else frozenset()

    return cleaned


def find_orphans(history: Iterable[ConversationEntry]) -> list[ConversationEntry]:
    """Return the tool entries ``normalize`` would drop."""
    orphans: list[ConversationEntry] = []
    open_request_ids: frozenset[str] = frozenset()
    for entry in history:
        if entry.role == TOOL:
            if not _is_paired(entry, open_request_ids):
                orphans.append(entry)
            continue
        open_request_ids = frozenset(r.id for r in entry.tool_requests) if entry.has_tool_requests else frozenset()
    return orphans
