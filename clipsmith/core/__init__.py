"""Core types and interfaces."""

from clipsmith.core.cancel import CancellationSlot, CancellationToken
from clipsmith.core.errors import (
    ClipsmithError,
    ConfigError,
    ConversionError,
    LoadError,
    ProviderError,
    ToolError,
)
from clipsmith.core.interfaces import (
    AsyncProvider,
    CredentialStore,
    LocalInferenceBackend,
    TelemetrySink,
)
from clipsmith.core.types import (
    ContentDelta,
    Message,
    Role,
    StreamComplete,
    StreamEvent,
    TextCompletion,
    ToolCall,
    ToolResult,
    Usage,
)

__all__ = [
    "CancellationToken",
    "CancellationSlot",
    "ClipsmithError",
    "ConfigError",
    "ConversionError",
    "LoadError",
    "ProviderError",
    "ToolError",
    "AsyncProvider",
    "CredentialStore",
    "LocalInferenceBackend",
    "TelemetrySink",
    "Message",
    "Role",
    "ToolCall",
    "ToolResult",
    "Usage",
    "TextCompletion",
    # Streaming types
    "StreamEvent",
    "ContentDelta",
    "StreamComplete",
]
