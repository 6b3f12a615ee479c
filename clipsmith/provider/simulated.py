"""Simulated backend for offline and development use.

Stands in for the chat backend, the one-shot completion backend and the
local model at once. Output is a fixed reply (by default ten "s" fragments),
produced after a configurable delay so UI code can exercise its progress
paths without a network.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from clipsmith.core.types import Message, Role, TextCompletion, Usage

if TYPE_CHECKING:
    from clipsmith.core.cancel import CancellationToken

logger = logging.getLogger(__name__)


class SimulatedProvider:
    """Offline stand-in implementing AsyncProvider and LocalInferenceBackend."""

    def __init__(
        self,
        *,
        delay: float = 0.0,
        fragment: str = "s",
        fragment_count: int = 10,
        reply: str | None = None,
    ) -> None:
        self._delay = delay
        self._fragment = fragment
        self._fragment_count = fragment_count
        self._reply = reply

    @property
    def model(self) -> str:
        return "simulated"

    @property
    def reply(self) -> str:
        if self._reply is not None:
            return self._reply
        return self._fragment * self._fragment_count

    def set_api_key(self, api_key: str | None) -> None:
        pass

    async def initialize(self) -> None:
        logger.debug("Simulated backend ready")

    async def aclose(self) -> None:
        pass

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> Message:
        await asyncio.sleep(self._delay)
        return Message(role=Role.ASSISTANT, content=self.reply)

    async def complete_prompt(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> TextCompletion:
        await asyncio.sleep(self._delay)
        return TextCompletion(
            text=self.reply,
            finish_reason="stop",
            usage=Usage(prompt_tokens=len(prompt.split()), completion_tokens=self._fragment_count),
        )

    async def infer_stream(
        self,
        prompt: str,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        for _ in range(self._fragment_count):
            if cancel_token and cancel_token.is_cancelled:
                return
            yield self._fragment
            await asyncio.sleep(self._delay)
