"""Tool registry: capability declarations and invocation dispatch."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import jsonschema

from llm_agent.logging import get_logger
from llm_agent.models import CapabilityDescriptor, ToolRequest, ToolResult

logger = get_logger("tools.registry")


class ToolArgumentError(ValueError):
    """Raised when tool arguments do not match the capability schema."""

    def __init__(self, tool_name: str, message: str, path: str = "$") -> None:
        super().__init__(f"Invalid arguments for '{tool_name}': {message} (at {path})")
        self.tool_name = tool_name
        self.path = path


class BaseTool(ABC):
    """Base class for capabilities the model can invoke."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]: ...

    @abstractmethod
    async def execute(self, args: dict[str, Any]) -> Any:
        """Run the capability and return a JSON-serializable payload.

        Implementations report their own failures as payloads carrying
        ``"error": True`` or ``"success": False`` instead of raising.
        """
        ...

    def descriptor(self) -> CapabilityDescriptor:
        return CapabilityDescriptor(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )


def _format_path(error: jsonschema.ValidationError) -> str:
    if error.absolute_path:
        return "/" + "/".join(str(part) for part in error.absolute_path)
    return "$"


def _reports_failure(payload: Any) -> bool:
    """True for payloads flagged ``"error": True`` or ``"success": False``."""
    return isinstance(payload, dict) and (payload.get("error") is True or payload.get("success") is False)


def validate_arguments(descriptor: CapabilityDescriptor, args: Any) -> dict[str, Any]:
    """Validate ``args`` against the descriptor schema and fill in defaults.

    Raises:
        ToolArgumentError: If the arguments do not satisfy the schema
    """
    if not isinstance(args, dict):
        raise ToolArgumentError(descriptor.name, "arguments must be an object")

    schema = descriptor.parameters or {"type": "object"}
    validator = jsonschema.Draft202012Validator(schema)
    error = jsonschema.exceptions.best_match(validator.iter_errors(args))
    if error is not None:
        raise ToolArgumentError(descriptor.name, error.message, _format_path(error))

    filled = dict(args)
    for prop, prop_schema in schema.get("properties", {}).items():
        if prop not in filled and isinstance(prop_schema, dict) and "default" in prop_schema:
            filled[prop] = prop_schema["default"]
    return filled


class ToolRegistry:
    """
    Registry of the capabilities available to the model.

    Capabilities are registered once at startup and read-only afterwards.
    ``invoke`` always returns a ``ToolResult``: unknown names, invalid
    arguments, and faults raised inside a tool all become error results so
    the conversation never misses a tool response.
    """

    def __init__(self, tools: list[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            logger.debug("Overriding tool: %s", tool.name)
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def list_capabilities(self) -> list[CapabilityDescriptor]:
        return [t.descriptor() for t in self._tools.values()]

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get tool definitions in OpenAI function calling format."""
        return [d.to_function_schema() for d in self.list_capabilities()]

    async def invoke(self, request: ToolRequest) -> ToolResult:
        """Dispatch ``request`` to the matching capability."""
        tool = self._tools.get(request.name)
        if tool is None:
            available = ", ".join(self._tools) or "(none)"
            logger.warning("Model requested unknown tool: %s", request.name)
            return ToolResult.error(
                request.id,
                f"Unknown tool: {request.name}. Available tools: {available}",
            )

        try:
            args = validate_arguments(tool.descriptor(), request.arguments)
        except ToolArgumentError as e:
            logger.debug("Rejected call to %s: %s", request.name, e)
            return ToolResult.error(request.id, str(e))
        except Exception as e:
            # Broken schema on the capability itself (unknown type, bad $ref, ...)
            logger.warning("Could not validate arguments for %s: %s", request.name, e)
            return ToolResult.error(request.id, f"Invalid parameter schema for '{request.name}': {e}")

        logger.debug("Executing tool %s with args: %s", request.name, args)
        try:
            payload = await tool.execute(args)
        except Exception as e:
            logger.warning("Tool %s failed: %s", request.name, e)
            return ToolResult.error(request.id, f"Tool execution failed: {e}")

        is_error = _reports_failure(payload)
        return ToolResult(request_id=request.id, payload=payload, is_error=is_error)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
