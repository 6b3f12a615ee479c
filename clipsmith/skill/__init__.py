"""Tool surface: explicit tool registry and the clipboard tool catalogue."""
from clipsmith.skill.base import ToolSpec, validate_tool_name
from clipsmith.skill.clipboard_tools import ClipboardTools, TextCompleter, register_clipboard_tools
from clipsmith.skill.registry import ToolRegistry

__all__ = [
    "ClipboardTools",
    "TextCompleter",
    "ToolRegistry",
    "ToolSpec",
    "register_clipboard_tools",
    "validate_tool_name",
]
