"""Core types for clipsmith.

This module defines the data structures shared by the providers, the tool
registry and the agent loop: messages, tool calls, tool results, roles and
streaming events. All dataclasses are frozen for immutability.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A request from the chat backend to execute a tool.

    Attributes:
        id: Unique identifier for this tool call.
        name: Name of the tool to execute.
        arguments: Arguments to pass to the tool.
    """

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class Usage:
    """Token accounting reported by a completion backend."""

    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass(frozen=True)
class Message:
    """A message in a conversation.

    Attributes:
        role: The role of the message sender.
        content: The text content of the message.
        tool_calls: Tool calls requested by the assistant (if any).
        tool_call_id: ID of the tool call this message is responding to (for tool messages).
        usage: Tokens the backend reported for producing this message (assistant replies).
    """

    role: Role
    content: str
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    usage: Usage | None = None


@dataclass(frozen=True)
class ToolResult:
    """Result of executing a tool.

    Attributes:
        output: The output of the tool. Clipboard tools always report the
            formats on the snapshot here, even when they fail.
        error: Error message if the tool failed.
    """

    output: str = ""
    error: str = ""

    @property
    def success(self) -> bool:
        """Return True if the tool execution succeeded (no error)."""
        return not self.error


@dataclass(frozen=True)
class TextCompletion:
    """A single prompt completion (legacy completions endpoint).

    Attributes:
        text: The generated text.
        finish_reason: Why generation stopped ("stop", "length", ...).
        usage: Token usage, when the backend reports it.
    """

    text: str
    finish_reason: str | None = None
    usage: Usage | None = None

    @property
    def truncated(self) -> bool:
        """True when the backend cut the output at the token ceiling."""
        return self.finish_reason == "length"


# --- Streaming Types ---
# Yielded by streaming backends to communicate text and completion status.


@dataclass(frozen=True)
class StreamEvent:
    """Base class for all streaming events."""

    pass


@dataclass(frozen=True)
class ContentDelta(StreamEvent):
    """A chunk of generated text.

    Attributes:
        text: The text fragment.
    """

    text: str


@dataclass(frozen=True)
class StreamComplete(StreamEvent):
    """Signals the stream has ended.

    Attributes:
        text: The full accumulated text.
        finish_reason: Finish reason reported by the backend, if any.
    """

    text: str
    finish_reason: str | None = None
