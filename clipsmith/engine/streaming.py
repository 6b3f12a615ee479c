"""One cancellable streaming inference against the local backend.

A StreamingSession is single-use: it runs one prompt through the backend,
reports progress and returns the accumulated text. The engine supersedes it
by cancelling its token when a newer local request starts.

Progress notifications carry the text accumulated *before* the current
delta. For deltas "a", "b", "c" the notifications are "", "a", "ab" and the
result is "abc"; subscribers diff consecutive notifications.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from clipsmith.core.errors import ProviderError

if TYPE_CHECKING:
    from clipsmith.core.cancel import CancellationToken
    from clipsmith.core.interfaces import LocalInferenceBackend

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str], Awaitable[None] | None]

_DONE = object()


class StreamingSession:
    """A single in-flight local streaming completion.

    Attributes:
        token: Cancellation token owned by this session.
        result: Accumulated text (final once run() has returned).
        error: Backend error message if the stream failed, else None.
    """

    def __init__(
        self,
        backend: LocalInferenceBackend | None,
        prompt: str,
        token: CancellationToken,
        on_finish: Callable[[StreamingSession], None] | None = None,
    ) -> None:
        self._backend = backend
        self._prompt = prompt
        self.token = token
        self._on_finish = on_finish
        self._started = False
        self._finished = False
        self.result = ""
        self.error: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.token.is_cancelled

    @property
    def is_finished(self) -> bool:
        return self._finished

    def cancel(self) -> None:
        """Request cooperative cancellation; run() returns the partial text."""
        self.token.cancel()

    async def run(self, on_update: UpdateCallback | None = None) -> str:
        """Stream the completion.

        Never raises on cancellation or backend failure: the accumulated text
        is returned in both cases (backend failures are logged and kept in
        error).

        Args:
            on_update: Called with the pre-delta accumulated text for each
                delta. May be a coroutine function.

        Returns:
            The concatenation of all deltas received before completion or
            cancellation.

        Raises:
            RuntimeError: If the session has already been run.
        """
        if self._started:
            raise RuntimeError("StreamingSession can only be run once")
        self._started = True

        accumulated = ""
        try:
            if self._backend is None:
                raise ProviderError("Local model is disabled")
            stream = self._backend.infer_stream(self._prompt, self.token)
            async with aclosing(stream):
                async for delta in stream:
                    if self.token.is_cancelled:
                        logger.debug("Stream cancelled after %d chars", len(accumulated))
                        break
                    if on_update is not None:
                        outcome = on_update(accumulated)
                        if inspect.isawaitable(outcome):
                            await outcome
                    accumulated += delta
                    self.result = accumulated
                    # Let other tasks (UI, superseding requests) run between deltas
                    await asyncio.sleep(0)
        except Exception as e:
            logger.error("Local streaming failed: %s", e)
            self.error = str(e)
        finally:
            self.result = accumulated
            self._finished = True
            if self._on_finish is not None:
                self._on_finish(self)
        return accumulated

    async def updates(self) -> AsyncIterator[str]:
        """Run the session and yield each notification as it is produced.

        The final text is available as result once iteration ends. Leaving
        the loop early cancels the session.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue()
        task = asyncio.create_task(self.run(queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(_DONE))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                yield item
            await task
        finally:
            if not task.done():
                self.cancel()
                await task
