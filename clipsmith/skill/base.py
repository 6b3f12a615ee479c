"""Tool specifications for the clipsmith tool surface.

A tool is an explicit record: a stable name, a description for the chat
backend, a JSON Schema for its arguments, a description of what it returns,
and an async handler. Nothing is discovered by reflection.
"""

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from clipsmith.core.types import ToolResult

# Tool names as accepted by OpenAI-style function calling
VALID_TOOL_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]{0,63}$")

ToolHandler = Callable[..., Awaitable[ToolResult]]

EMPTY_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}}


def validate_tool_name(name: str) -> None:
    """Validate a tool name.

    Raises:
        ValueError: If the name is empty, too long, or has invalid characters.
    """
    if not isinstance(name, str) or not VALID_TOOL_NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid tool name {name!r}: must be 1-64 chars, start with a letter "
            "or underscore, and contain only letters, digits, '_' or '-'"
        )


@dataclass(frozen=True)
class ToolSpec:
    """A named, described, schema-typed operation.

    Attributes:
        name: Stable name advertised to the chat backend.
        description: Natural-language description of the effect.
        handler: Async callable receiving validated keyword arguments.
        parameters: JSON Schema for the arguments.
        returns: Description of the returned value.
    """

    name: str
    description: str
    handler: ToolHandler
    parameters: dict[str, Any]
    returns: str = ""

    def to_definition(self) -> dict[str, Any]:
        """OpenAI function-calling definition for this tool."""
        description = self.description
        if self.returns:
            description = f"{description} Returns: {self.returns}"
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": description,
                "parameters": self.parameters,
            },
        }


def format_validation_error(error: Any, tool_name: str) -> str:
    """Format a jsonschema ValidationError into a user-friendly message.

    Args:
        error: The jsonschema validation error.
        tool_name: Name of the tool for context.

    Returns:
        Human-readable error message.
    """
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else ""
    validator = error.validator

    if validator == "required":
        # error.message is like "'instructions' is a required property"
        return f"{tool_name}: {error.message}"

    if validator == "type":
        if path:
            return f"{tool_name}: Parameter '{path}' has wrong type - {error.message}"
        return f"{tool_name}: {error.message}"

    if validator in ("minLength", "maxLength"):
        if path:
            return f"{tool_name}: Parameter '{path}' {error.message}"
        return f"{tool_name}: {error.message}"

    if path:
        return f"{tool_name}: Parameter '{path}' - {error.message}"
    return f"{tool_name}: {error.message}"
