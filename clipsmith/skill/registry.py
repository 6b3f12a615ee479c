"""Tool registry: a dispatch table from tool name to ToolSpec.

Example:
    from clipsmith.skill.registry import ToolRegistry

    async def echo(message: str) -> ToolResult:
        return ToolResult(output=message)

    registry = ToolRegistry()
    registry.register(ToolSpec(
        name="echo",
        description="Echo a message",
        handler=echo,
        parameters={"type": "object", "properties": {"message": {"type": "string"}}},
    ))

    result = await registry.execute("echo", {"message": "hello"})
"""

from __future__ import annotations

import logging
from typing import Any

import jsonschema

from clipsmith.core.types import ToolResult
from clipsmith.skill.base import ToolSpec, format_validation_error, validate_tool_name

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of the tools available to direct callers and to the agent.

    Registration order is preserved in get_definitions().
    """

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        """Register a tool, replacing any tool with the same name.

        Raises:
            ValueError: If the tool name is invalid.
            jsonschema.SchemaError: If the parameters schema is invalid.
        """
        validate_tool_name(spec.name)
        jsonschema.Draft202012Validator.check_schema(spec.parameters)
        self._specs[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get OpenAI-format tool definitions for all registered tools.

        Returns:
            List of definitions with the structure:
            {
                "type": "function",
                "function": {
                    "name": "tool_name",
                    "description": "tool description",
                    "parameters": {...json schema...}
                }
            }
        """
        return [spec.to_definition() for spec in self._specs.values()]

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Validate arguments and run a tool.

        Never raises: unknown tools, invalid arguments and handler exceptions
        are all reported as a ToolResult with error set.

        Args:
            name: Tool name.
            arguments: Raw arguments (usually parsed from the chat backend).

        Returns:
            The handler's result or an error result.
        """
        spec = self._specs.get(name)
        if spec is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult(error=f"Unknown tool: {name}")

        arguments = arguments or {}
        try:
            jsonschema.validate(arguments, spec.parameters)
        except jsonschema.ValidationError as e:
            return ToolResult(error=format_validation_error(e, name))

        # Drop arguments the schema does not declare
        known = set(spec.parameters.get("properties", {}))
        extras = set(arguments) - known
        if extras:
            logger.debug("Ignoring unexpected arguments for %s: %s", name, sorted(extras))
        validated = {k: v for k, v in arguments.items() if k in known}

        try:
            return await spec.handler(**validated)
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e, exc_info=True)
            return ToolResult(error=f"{name} failed: {e}")
