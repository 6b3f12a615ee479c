"""Cancellation support for async operations."""

import threading


class CancellationToken:
    """Token for cooperative cancellation of async operations.

    A token is owned by exactly one request. Streaming loops check
    is_cancelled between deltas and stop quietly.

    Example:
        token = CancellationToken()

        async def long_operation():
            async for chunk in stream:
                if token.is_cancelled:
                    break
                yield chunk

        # When a newer request supersedes this one:
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Safe to call more than once."""
        self._cancelled = True


class CancellationSlot:
    """Holds the token of the single active request.

    install() swaps in a fresh token and cancels the previous one in one
    step under a lock, so two near-simultaneous requests can never both
    believe they own cancellation.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token: CancellationToken | None = None

    @property
    def current(self) -> CancellationToken | None:
        """The token of the active request, or None when idle."""
        return self._token

    def install(self) -> CancellationToken:
        """Cancel the active token (if any) and install a new one."""
        token = CancellationToken()
        with self._lock:
            previous, self._token = self._token, token
        if previous is not None:
            previous.cancel()
        return token

    def release(self, token: CancellationToken) -> bool:
        """Clear the slot if it still holds token.

        Returns:
            True if token was the active one.
        """
        with self._lock:
            if self._token is token:
                self._token = None
                return True
        return False

    def cancel_active(self) -> None:
        """Cancel and clear the active token."""
        with self._lock:
            previous, self._token = self._token, None
        if previous is not None:
            previous.cancel()
