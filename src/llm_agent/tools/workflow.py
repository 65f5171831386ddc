"""AI workflow tool - specialized text processing outside the main conversation."""
from __future__ import annotations

import asyncio
import hashlib
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from llm_agent.logging import get_logger
from llm_agent.tools.registry import BaseTool

logger = get_logger("tools.workflow")

WORKFLOWS = ["summarize", "analyze", "transform", "generate", "extract", "classify"]

_CATEGORIES = ["Technology", "Business", "Science", "Entertainment", "Politics"]
_ENTITY_KINDS = ["entities", "key phrases", "important dates", "names", "locations"]


def _summarize(data: str) -> str:
    sentences = [s.strip() for s in data.split(".") if s.strip()]
    return f"Summary: {'. '.join(sentences[:2])}."


def _analyze(data: str) -> str:
    return (
        f"Analysis: The provided content appears to be {len(data)} characters long, "
        f"contains {len(data.split())} words, and discusses topics related to the "
        "main themes present in the text."
    )


def _transform(data: str) -> str:
    return f"Transformed: {data.upper()[::-1]}"


def _generate(data: str) -> str:
    return (
        f'Generated content based on "{data}": This is AI-generated content that '
        "expands on the input concept, providing additional context and information "
        "relevant to the specified topic."
    )


def _extract(data: str) -> str:
    return (
        f'Extracted from "{data}": Found {len(_ENTITY_KINDS)} key elements including '
        f"{', '.join(_ENTITY_KINDS)}."
    )


def _classify(data: str) -> str:
    digest = hashlib.sha256(data.encode()).digest()
    category = _CATEGORIES[digest[0] % len(_CATEGORIES)]
    confidence = 85 + (digest[1] % 100) / 10
    return f'Classification: "{data}" belongs to category "{category}" with {confidence:.1f}% confidence.'


_HANDLERS: dict[str, Callable[[str], str]] = {
    "summarize": _summarize,
    "analyze": _analyze,
    "transform": _transform,
    "generate": _generate,
    "extract": _extract,
    "classify": _classify,
}


class WorkflowTool(BaseTool):
    """Run a named processing workflow over a piece of text."""

    def __init__(self, latency: float = 1.0) -> None:
        self.latency = latency

    @property
    def name(self) -> str:
        return "ai_workflow"

    @property
    def description(self) -> str:
        return (
            "Use AI workflows for specialized data processing tasks "
            "(separate from the main LLM conversation)"
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "workflow": {
                    "type": "string",
                    "description": "The workflow or operation to execute",
                    "enum": WORKFLOWS,
                },
                "data": {
                    "type": "string",
                    "description": "Input data for the workflow",
                },
                "pipeline": {
                    "type": "string",
                    "description": "Optional pipeline configuration",
                    "default": "default",
                },
            },
            "required": ["workflow", "data"],
        }

    async def execute(self, args: dict[str, Any]) -> dict[str, Any]:
        workflow = args["workflow"]
        data = args["data"]
        pipeline = args.get("pipeline", "default")

        logger.debug("Running workflow %s (pipeline=%s, %d chars)", workflow, pipeline, len(data))

        if self.latency > 0:
            await asyncio.sleep(self.latency)

        try:
            output = _HANDLERS[workflow](data)
        except Exception as e:
            return {
                "error": True,
                "message": f"Workflow failed: {e}",
                "workflow": workflow,
                "pipeline": pipeline,
                "type": "workflow_error",
            }

        return {
            "workflow": workflow,
            "pipeline": pipeline,
            "input": data,
            "output": output,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "success": True,
            "type": "workflow_result",
        }
