"""Core interfaces (protocols) for clipsmith.

This module defines the Protocol interfaces for the collaborators the engine
talks to: chat backends, local inference backends, credential stores and
telemetry sinks. Using Protocols enables structural subtyping, so test fakes
and alternative backends need no common base class.
"""

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Protocol

from clipsmith.core.types import Message

if TYPE_CHECKING:
    from clipsmith.core.cancel import CancellationToken


class AsyncProvider(Protocol):
    """Protocol for async chat-completion backends.

    Implemented by the HTTP provider and by the simulated offline provider,
    so the agent loop works the same against either.

    Example:
        class EchoProvider:
            async def complete(
                self,
                messages: list[Message],
                tools: list[dict[str, Any]] | None = None,
            ) -> Message:
                return Message(Role.ASSISTANT, messages[-1].content)
    """

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> Message:
        """Perform a non-streaming chat completion.

        Args:
            messages: The conversation history as a list of Messages.
            tools: Optional list of tool definitions in OpenAI function format.

        Returns:
            The assistant's response as a Message, potentially including tool_calls.

        Raises:
            ProviderError: If the request fails.
        """
        ...


class LocalInferenceBackend(Protocol):
    """Protocol for a locally hosted small language model.

    The backend must be initialized before first use and released at
    shutdown. infer_stream() returns a lazy, finite sequence of text
    fragments that cannot be restarted.
    """

    async def initialize(self) -> None:
        """Warm up the backend (load the model, open connections)."""
        ...

    def infer_stream(
        self,
        prompt: str,
        cancel_token: "CancellationToken | None" = None,
    ) -> AsyncIterator[str]:
        """Stream text fragments generated for prompt.

        Args:
            prompt: The complete, already templated prompt.
            cancel_token: Token checked between fragments; generation stops
                quietly once it is cancelled.

        Yields:
            Text deltas in generation order.
        """
        ...

    async def aclose(self) -> None:
        """Release the backend. Safe to call multiple times."""
        ...


class CredentialStore(Protocol):
    """Protocol for looking up the cloud API key."""

    def load(self) -> str | None:
        """Return the stored secret, or None when absent or unavailable.

        Implementations must not raise; a broken store means "no key".
        """
        ...


class TelemetrySink(Protocol):
    """Protocol for fire-and-forget telemetry emission."""

    def emit(self, event: Any) -> None:
        """Record one telemetry event."""
        ...
