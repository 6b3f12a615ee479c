"""Typed exception hierarchy for clipsmith."""

from __future__ import annotations


class ClipsmithError(Exception):
    """Base class for all clipsmith errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(ClipsmithError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class LoadError(ClipsmithError):
    """Raised when a JSON file cannot be read or parsed."""


class ProviderError(ClipsmithError):
    """Raised for completion backend issues (API errors, network issues, auth failure).

    Attributes:
        status: HTTP status code when the remote service rejected the request
            (401, 429, ...). None for network, parsing and other local failures.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def is_remote_rejection(self) -> bool:
        """True when the backend answered with a structured error status."""
        return self.status is not None


class ConversionError(ClipsmithError):
    """Raised when clipboard content cannot be converted to the requested format."""


class ToolError(ClipsmithError):
    """Raised inside a tool handler; reported to the caller as a failed ToolResult."""
