"""CompletionEngine: the three completion strategies behind one object.

Strategies:
    LOCAL_STREAMING: role-delimited prompt streamed from the local model,
        latest request wins.
    CLOUD_ONE_SHOT: one legacy completion call returning a CompletionResult.
    AGENT: chat backend plus clipboard tools, answer returned as text.

The one-shot and agent strategies are serialized by an asyncio.Lock because
both may mutate the snapshot; starting either cancels an active stream.
None of the public strategy methods raise: failures are reported through
the CompletionResult status, the session's partial text, or the agent's
answer text.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from clipsmith.clipboard.files import TempFileArea
from clipsmith.core.cancel import CancellationSlot
from clipsmith.core.constants import STATUS_LOCAL_FAILURE, STATUS_OK
from clipsmith.core.errors import ProviderError, ToolError
from clipsmith.engine.agent import AgentLoop
from clipsmith.engine.events import (
    CompletionFailed,
    CompletionSucceeded,
    CompletionTruncated,
    LoggingTelemetrySink,
    TelemetryEvent,
)
from clipsmith.engine.prompts import build_cloud_prompt, build_local_prompt
from clipsmith.engine.results import CompletionResult, EngineState, Strategy
from clipsmith.engine.streaming import StreamingSession, UpdateCallback
from clipsmith.provider import create_local_backend, create_provider
from clipsmith.skill.clipboard_tools import ClipboardTools, register_clipboard_tools
from clipsmith.skill.registry import ToolRegistry

if TYPE_CHECKING:
    from clipsmith.clipboard.snapshot import ClipboardSnapshot
    from clipsmith.config.schema import Config
    from clipsmith.core.types import ToolResult
    from clipsmith.core.interfaces import (
        AsyncProvider,
        CredentialStore,
        LocalInferenceBackend,
        TelemetrySink,
    )

logger = logging.getLogger(__name__)

AI_DISABLED_MESSAGE = "AI is not enabled: no API key is configured"


class CompletionEngine:
    """Orchestrates local streaming, cloud one-shot and agent completions.

    Example:
        snapshot = ClipboardSnapshot()
        await snapshot.reset(MemoryClipboard(text="a,b\\n1,2"))

        async with CompletionEngine(config, snapshot, EnvCredentialStore("OPENAI_API_KEY")) as engine:
            result = await engine.run_cloud_completion("Paste as markdown table", snapshot.get_text())
            if result.ok:
                snapshot.set_text(result.text)
    """

    def __init__(
        self,
        config: Config,
        snapshot: ClipboardSnapshot,
        credentials: CredentialStore,
        *,
        cloud_provider: Any | None = None,
        chat_provider: AsyncProvider | None = None,
        local_backend: LocalInferenceBackend | None = None,
        telemetry: TelemetrySink | None = None,
        file_area: TempFileArea | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Loaded configuration.
            snapshot: Snapshot the tools operate on.
            credentials: Where the cloud API key is read from (once, here).
            cloud_provider: Completion backend override (needs complete_prompt).
            chat_provider: Chat backend override for the agent.
            local_backend: Local inference backend override.
            telemetry: Telemetry sink; defaults to logging.
            file_area: Temp file area for "paste as file".
        """
        self._config = config
        self._snapshot = snapshot
        self._credentials = credentials
        self._telemetry: TelemetrySink = telemetry or LoggingTelemetrySink()

        # Providers passed in are owned by the caller; ours are created lazily
        self._cloud_provider = cloud_provider
        self._chat_provider = chat_provider
        self._owned_providers: list[Any] = []

        if local_backend is None and config.local.enabled:
            local_backend = create_local_backend(config.local)
        self._local_backend = local_backend
        self._local_ready = False

        self._api_key = self._load_api_key()

        self._streams = CancellationSlot()
        self._lock = asyncio.Lock()
        self._active: tuple[object, Strategy] | None = None

        if file_area is None:
            file_area = TempFileArea(Path(config.temp_dir) if config.temp_dir else None)
        self._registry = ToolRegistry()
        register_clipboard_tools(
            self._registry, ClipboardTools(snapshot, self.complete_text, file_area)
        )
        self._agent: AgentLoop | None = None

    # --- Credentials ---

    def _load_api_key(self) -> str | None:
        try:
            key = self._credentials.load()
        except Exception as e:
            logger.error("Could not read API key: %s", e)
            return None
        return key or None

    @property
    def is_ai_enabled(self) -> bool:
        """True when a cloud API key is available."""
        return self._api_key is not None

    def set_api_key(self, api_key: str | None) -> None:
        """Replace the cloud API key (None disables cloud strategies)."""
        self._api_key = api_key or None
        for provider in self._owned_providers:
            provider.set_api_key(self._api_key)

    def reload_api_key(self) -> bool:
        """Re-read the key from the credential store.

        Returns:
            Whether AI is enabled afterwards.
        """
        self.set_api_key(self._load_api_key())
        return self.is_ai_enabled

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Warm up the local backend.

        Failures are logged; the local strategy then reports unavailable.
        """
        if self._local_backend is None:
            logger.info("Local model disabled")
            return
        try:
            await self._local_backend.initialize()
        except Exception as e:
            logger.warning("Local model unavailable: %s", e)
            return
        self._local_ready = True

    async def aclose(self) -> None:
        """Cancel active work and release backends and HTTP clients."""
        self._streams.cancel_active()
        if self._local_backend is not None:
            try:
                await self._local_backend.aclose()
            except Exception as e:
                logger.debug("Error closing local backend: %s", e)
        self._local_ready = False
        for provider in self._owned_providers:
            await provider.aclose()
        self._owned_providers.clear()

    async def __aenter__(self) -> CompletionEngine:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- State ---

    @property
    def state(self) -> EngineState:
        return EngineState.IDLE if self._active is None else EngineState.RUNNING

    @property
    def active_strategy(self) -> Strategy | None:
        return None if self._active is None else self._active[1]

    @property
    def local_available(self) -> bool:
        return self._local_ready

    @property
    def snapshot(self) -> ClipboardSnapshot:
        return self._snapshot

    @property
    def tools(self) -> ToolRegistry:
        """Tool registry bound to this engine's snapshot.

        Executing tools on it directly skips the engine lock; callers outside
        the agent should go through execute_tool().
        """
        return self._registry

    @property
    def agent(self) -> AgentLoop:
        if self._agent is None:
            self._agent = AgentLoop(
                self._get_chat_provider(),
                self._registry,
                max_tool_rounds=self._config.agent.max_tool_rounds,
                emit=self._emit,
            )
        return self._agent

    def _enter(self, owner: object, strategy: Strategy) -> None:
        self._active = (owner, strategy)

    def _leave(self, owner: object) -> None:
        if self._active is not None and self._active[0] is owner:
            self._active = None

    def _emit(self, event: TelemetryEvent) -> None:
        try:
            self._telemetry.emit(event)
        except Exception as e:
            logger.debug("Telemetry sink failed: %s", e)

    # --- Providers ---

    def _get_cloud_provider(self) -> Any:
        if self._cloud_provider is None:
            cloud = self._config.cloud
            self._cloud_provider = create_provider(
                cloud.provider, cloud.completion_model, self._api_key
            )
            self._owned_providers.append(self._cloud_provider)
        return self._cloud_provider

    def _get_chat_provider(self) -> AsyncProvider:
        if self._chat_provider is None:
            cloud = self._config.cloud
            provider = create_provider(cloud.provider, cloud.chat_model, self._api_key)
            self._owned_providers.append(provider)
            self._chat_provider = provider
        return self._chat_provider

    # --- Local streaming ---

    def start_local_streaming(self, instructions: str, text: str) -> StreamingSession:
        """Create a streaming session, superseding any active one.

        The previous session's token is cancelled in the same step that
        installs the new one; its remaining deltas are discarded.
        """
        token = self._streams.install()

        def finished(session: StreamingSession) -> None:
            self._streams.release(session.token)
            self._leave(session)

        session = StreamingSession(
            self._local_backend,
            build_local_prompt(instructions, text),
            token,
            on_finish=finished,
        )
        self._enter(session, Strategy.LOCAL_STREAMING)
        return session

    async def run_local_streaming(
        self,
        instructions: str,
        text: str,
        on_update: UpdateCallback | None = None,
    ) -> str:
        """Start a streaming session and run it to completion.

        Returns:
            The accumulated text (partial if superseded or cancelled).
        """
        return await self.start_local_streaming(instructions, text).run(on_update)

    def cancel_local_streaming(self) -> None:
        self._streams.cancel_active()

    # --- Cloud one-shot ---

    async def run_cloud_completion(
        self,
        instructions: str,
        text: str,
        timeout: float | None = None,
    ) -> CompletionResult:
        """Transform text with one cloud completion.

        Returns:
            status 200 with text and usage on success, the backend's status
            on remote rejection, -1 on anything else.
        """
        self._streams.cancel_active()
        async with self._lock:
            owner = object()
            self._enter(owner, Strategy.CLOUD_ONE_SHOT)
            try:
                return await self._one_shot(instructions, text, timeout)
            finally:
                self._leave(owner)

    async def complete_text(self, instructions: str, text: str) -> str:
        """Cloud one-shot for callers already inside a serialized request.

        Used by the transform_text_with_custom_instructions tool while the
        agent holds the engine lock.

        Raises:
            ToolError: If the completion did not succeed.
        """
        result = await self._one_shot(instructions, text, None)
        if not result.ok or result.text is None:
            if result.status == STATUS_LOCAL_FAILURE and not self.is_ai_enabled:
                raise ToolError(AI_DISABLED_MESSAGE)
            raise ToolError(f"AI transformation failed (status {result.status})")
        return result.text

    async def _one_shot(
        self,
        instructions: str,
        text: str,
        timeout: float | None,
    ) -> CompletionResult:
        if not self.is_ai_enabled:
            logger.warning(AI_DISABLED_MESSAGE)
            return CompletionResult.failure()

        cloud = self._config.cloud
        prompt = build_cloud_prompt(instructions, text)
        try:
            provider = self._get_cloud_provider()
            completion = await asyncio.wait_for(
                provider.complete_prompt(
                    prompt, temperature=cloud.temperature, max_tokens=cloud.max_tokens
                ),
                timeout,
            )
        except ProviderError as e:
            status = e.status if e.is_remote_rejection else STATUS_LOCAL_FAILURE
            logger.error("Cloud completion failed (status %s): %s", status, e.message)
            self._emit(CompletionFailed(error=e.message, status=status))
            return CompletionResult.failure(status)
        except TimeoutError:
            logger.error("Cloud completion timed out after %ss", timeout)
            self._emit(CompletionFailed(error="timed out", status=STATUS_LOCAL_FAILURE))
            return CompletionResult.failure()
        except Exception as e:
            logger.error("Cloud completion failed: %s", e, exc_info=True)
            self._emit(CompletionFailed(error=str(e), status=STATUS_LOCAL_FAILURE))
            return CompletionResult.failure()

        if completion.truncated:
            logger.warning("Completion cut off at max_tokens=%d", cloud.max_tokens)
            self._emit(CompletionTruncated(model=cloud.completion_model, max_tokens=cloud.max_tokens))

        usage = completion.usage
        self._emit(CompletionSucceeded(
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            model=cloud.completion_model,
        ))
        return CompletionResult(
            text=completion.text,
            status=STATUS_OK,
            usage=usage,
            truncated=completion.truncated,
        )

    # --- Agent ---

    async def run_agent_completion(
        self,
        instructions: str,
        timeout: float | None = None,
    ) -> str:
        """Let the chat backend carry out instructions with the clipboard tools.

        Returns:
            The agent's final answer, or an error description.
        """
        self._streams.cancel_active()
        if not self.is_ai_enabled:
            logger.warning(AI_DISABLED_MESSAGE)
            return AI_DISABLED_MESSAGE

        if timeout is None:
            timeout = self._config.agent.request_timeout

        async with self._lock:
            owner = object()
            self._enter(owner, Strategy.AGENT)
            try:
                agent = self.agent
                answer = await asyncio.wait_for(agent.run(instructions), timeout)
            except TimeoutError:
                logger.error("Agent timed out after %ss", timeout)
                self._emit(CompletionFailed(error="timed out", status=STATUS_LOCAL_FAILURE))
                return f"Agent stopped: timed out after {timeout}s"
            except Exception as e:
                logger.error("Agent failed: %s", e, exc_info=True)
                self._emit(CompletionFailed(error=str(e), status=STATUS_LOCAL_FAILURE))
                return str(e) or type(e).__name__
            finally:
                self._leave(owner)

        if agent.error is not None:
            self._emit(self._agent_failure(agent.error))
        else:
            self._emit(CompletionSucceeded(
                prompt_tokens=agent.usage.prompt_tokens,
                completion_tokens=agent.usage.completion_tokens,
                model=self._config.cloud.chat_model,
            ))
        return answer

    @staticmethod
    def _agent_failure(error: Exception) -> CompletionFailed:
        if isinstance(error, ProviderError):
            status = error.status if error.is_remote_rejection else STATUS_LOCAL_FAILURE
            return CompletionFailed(error=error.message, status=status)
        return CompletionFailed(error=str(error) or type(error).__name__, status=STATUS_LOCAL_FAILURE)

    async def execute_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Run one clipboard tool outside the agent.

        Waits for any one-shot or agent run to finish first, so a direct
        call never interleaves with the agent's edits to the snapshot.
        Active local streams are cancelled like for any other request.
        """
        self._streams.cancel_active()
        async with self._lock:
            return await self._registry.execute(name, arguments)

