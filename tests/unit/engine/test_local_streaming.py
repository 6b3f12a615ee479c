"""Tests for StreamingSession and the local streaming strategy."""

import asyncio
from pathlib import Path

import pytest

from clipsmith.clipboard import ClipboardSnapshot, TempFileArea
from clipsmith.config import Config
from clipsmith.core.cancel import CancellationToken
from clipsmith.core.errors import ProviderError
from clipsmith.credentials import StaticCredentialStore
from clipsmith.engine import CompletionEngine, EngineState, Strategy, StreamingSession


class ScriptedBackend:
    """Local backend yielding fixed deltas; optionally pauses before one of them."""

    def __init__(
        self,
        deltas: list[str],
        pause_before: int | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.deltas = deltas
        self.pause_before = pause_before
        self.fail_after = fail_after
        self.gate = asyncio.Event()
        self.prompts: list[str] = []
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True

    async def infer_stream(self, prompt: str, cancel_token: CancellationToken | None = None):
        self.prompts.append(prompt)
        for index, delta in enumerate(self.deltas):
            if index == self.fail_after:
                raise ProviderError("model crashed")
            if index == self.pause_before:
                await self.gate.wait()
            yield delta

    async def aclose(self) -> None:
        self.closed = True


async def _spin(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


def _engine(backend: ScriptedBackend, tmp_path: Path) -> CompletionEngine:
    return CompletionEngine(
        Config(),
        ClipboardSnapshot(),
        StaticCredentialStore(None),
        local_backend=backend,
        file_area=TempFileArea(tmp_path),
    )


class TestStreamingSession:
    """Notification ordering and cancellation for one session."""

    @pytest.mark.asyncio
    async def test_notifications_trail_by_one_delta(self):
        """Deltas a, b, c notify "", "a", "ab" and return "abc"."""
        session = StreamingSession(ScriptedBackend(["a", "b", "c"]), "p", CancellationToken())
        notifications: list[str] = []

        result = await session.run(notifications.append)

        assert notifications == ["", "a", "ab"]
        assert result == "abc"
        assert session.result == "abc"
        assert session.is_finished

    @pytest.mark.asyncio
    async def test_cancel_after_second_delta(self):
        """Cancelling after delta 2 returns "ab" and never reaches delta 3."""
        session = StreamingSession(ScriptedBackend(["a", "b", "c"]), "p", CancellationToken())
        notifications: list[str] = []

        def on_update(accumulated: str) -> None:
            notifications.append(accumulated)
            if accumulated == "a":
                session.cancel()

        result = await session.run(on_update)

        assert result == "ab"
        assert notifications == ["", "a"]

    @pytest.mark.asyncio
    async def test_async_callback(self):
        seen: list[str] = []

        async def on_update(accumulated: str) -> None:
            seen.append(accumulated)

        session = StreamingSession(ScriptedBackend(["x", "y"]), "p", CancellationToken())
        assert await session.run(on_update) == "xy"
        assert seen == ["", "x"]

    @pytest.mark.asyncio
    async def test_updates_iterator(self):
        session = StreamingSession(ScriptedBackend(["a", "b", "c"]), "p", CancellationToken())

        updates = [u async for u in session.updates()]

        assert updates == ["", "a", "ab"]
        assert session.result == "abc"

    @pytest.mark.asyncio
    async def test_single_use(self):
        session = StreamingSession(ScriptedBackend(["a"]), "p", CancellationToken())
        await session.run()
        with pytest.raises(RuntimeError):
            await session.run()

    @pytest.mark.asyncio
    async def test_backend_failure_returns_partial(self, caplog):
        session = StreamingSession(ScriptedBackend(["a", "b", "c"], fail_after=2), "p", CancellationToken())

        assert await session.run() == "ab"
        assert session.error == "model crashed"
        assert "Local streaming failed" in caplog.text

    @pytest.mark.asyncio
    async def test_no_backend(self):
        session = StreamingSession(None, "p", CancellationToken())
        assert await session.run() == ""
        assert session.error == "Local model is disabled"


class TestEngineLocalStreaming:
    """Latest-request-wins behaviour in the engine."""

    @pytest.mark.asyncio
    async def test_prompt_template(self, tmp_path: Path):
        backend = ScriptedBackend(["ok"])
        engine = _engine(backend, tmp_path)

        assert await engine.run_local_streaming("Paste as list", "one two") == "ok"

        prompt = backend.prompts[0]
        assert prompt.startswith("<|system|>\n")
        assert "User instructions:\nPaste as list" in prompt
        assert "Clipboard Content:\none two" in prompt
        assert prompt.endswith("<|assistant|>\nOutput: ")

    @pytest.mark.asyncio
    async def test_second_request_supersedes_first(self, tmp_path: Path):
        backend = ScriptedBackend(["a", "b", "c"], pause_before=1)
        engine = _engine(backend, tmp_path)

        first = engine.start_local_streaming("i", "t")
        first_updates: list[str] = []
        first_task = asyncio.create_task(first.run(first_updates.append))
        await _spin()
        assert first_updates == [""]
        assert engine.active_strategy is Strategy.LOCAL_STREAMING

        second = engine.start_local_streaming("i", "t")
        assert first.is_cancelled
        assert not second.is_cancelled

        backend.gate.set()
        assert await first_task == "a"
        assert first_updates == [""]
        assert engine.active_strategy is Strategy.LOCAL_STREAMING

        second_updates: list[str] = []
        assert await second.run(second_updates.append) == "abc"
        assert second_updates == ["", "a", "ab"]
        assert engine.state is EngineState.IDLE

    @pytest.mark.asyncio
    async def test_lifecycle(self, tmp_path: Path):
        backend = ScriptedBackend([])
        async with _engine(backend, tmp_path) as engine:
            assert backend.initialized
            assert engine.local_available
        assert backend.closed
        assert not engine.local_available

    @pytest.mark.asyncio
    async def test_initialize_failure_is_logged(self, tmp_path: Path, caplog):
        backend = ScriptedBackend([])

        async def broken() -> None:
            raise ProviderError("connection refused")

        backend.initialize = broken  # type: ignore[method-assign]
        engine = _engine(backend, tmp_path)

        await engine.initialize()

        assert not engine.local_available
        assert "Local model unavailable" in caplog.text

    @pytest.mark.asyncio
    async def test_cancel_local_streaming(self, tmp_path: Path):
        backend = ScriptedBackend(["a", "b"], pause_before=1)
        engine = _engine(backend, tmp_path)
        session = engine.start_local_streaming("i", "t")
        task = asyncio.create_task(session.run())
        await _spin()

        engine.cancel_local_streaming()
        backend.gate.set()

        assert await task == "a"
        assert engine.state is EngineState.IDLE
