"""Local streaming inference over an OpenAI-compatible server.

Ollama, llama.cpp's server and vLLM all expose /v1/completions with SSE
streaming, so the local small model is driven through the same provider code
as the cloud, just pointed at localhost without credentials.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import TYPE_CHECKING

from clipsmith.core.errors import ProviderError
from clipsmith.core.types import ContentDelta
from clipsmith.provider.openai_compat import OpenAICompatProvider

if TYPE_CHECKING:
    from clipsmith.config.schema import LocalModelConfig
    from clipsmith.core.cancel import CancellationToken

logger = logging.getLogger(__name__)


class LocalCompletionRunner:
    """LocalInferenceBackend backed by a local completion server.

    Must be initialized before use; initialize() optionally issues a
    one-token request so the server loads the model before the first real
    request arrives.
    """

    def __init__(
        self,
        config: LocalModelConfig,
        provider: OpenAICompatProvider | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Local model settings.
            provider: Provider override (tests inject one with a mock transport).
        """
        self._config = config
        self._provider = provider or OpenAICompatProvider(config.provider, config.model)
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Warm up the local model.

        Raises:
            ProviderError: If the server cannot be reached.
        """
        if self._ready:
            return
        if self._config.warmup:
            logger.debug("Warming up local model %s", self._config.model)
            await self._provider.complete_prompt("", max_tokens=1)
        self._ready = True
        logger.info("Local model %s ready", self._config.model)

    async def infer_stream(
        self,
        prompt: str,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Stream text deltas for prompt.

        Raises:
            ProviderError: If the runner is not initialized or the request fails.
        """
        if not self._ready:
            raise ProviderError("Local model is not initialized")

        events = self._provider.stream_prompt(
            prompt,
            max_tokens=self._config.max_tokens,
            cancel_token=cancel_token,
        )
        async with aclosing(events):
            async for event in events:
                if isinstance(event, ContentDelta):
                    yield event.text

    async def aclose(self) -> None:
        self._ready = False
        await self._provider.aclose()
