"""Tests for the cloud one-shot strategy."""

import asyncio
from pathlib import Path

import pytest

from clipsmith.clipboard import ClipboardSnapshot, TempFileArea
from clipsmith.config import Config
from clipsmith.core.errors import ProviderError, ToolError
from clipsmith.core.types import TextCompletion, Usage
from clipsmith.credentials import StaticCredentialStore
from clipsmith.engine import (
    CompletionEngine,
    CompletionFailed,
    CompletionResult,
    CompletionSucceeded,
    CompletionTruncated,
    EngineState,
)


class FakeCloud:
    """Completion backend returning a canned completion or raising."""

    def __init__(
        self,
        completion: TextCompletion | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.completion = completion or TextCompletion("out", "stop", Usage(5, 2))
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []
        self.api_keys: list[str | None] = []

    async def complete_prompt(self, prompt, *, temperature=None, max_tokens=None):
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.completion


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[object] = []

    def emit(self, event: object) -> None:
        self.events.append(event)


class MutableStore:
    def __init__(self, secret: str | None) -> None:
        self.secret = secret

    def load(self) -> str | None:
        return self.secret


def _engine(
    cloud: FakeCloud,
    tmp_path: Path,
    key: str | None = "sk-test",
    sink: object | None = None,
) -> CompletionEngine:
    return CompletionEngine(
        Config(),
        ClipboardSnapshot(),
        StaticCredentialStore(key),
        cloud_provider=cloud,
        local_backend=None,
        telemetry=sink or RecordingSink(),
        file_area=TempFileArea(tmp_path),
    )


class TestSuccess:
    @pytest.mark.asyncio
    async def test_success_result_and_telemetry(self, tmp_path: Path):
        cloud = FakeCloud()
        sink = RecordingSink()
        engine = _engine(cloud, tmp_path, sink=sink)

        result = await engine.run_cloud_completion("Paste as table", "a,b")

        assert result == CompletionResult(text="out", status=200, usage=Usage(5, 2))
        assert result.ok
        assert sink.events == [CompletionSucceeded(5, 2, "gpt-3.5-turbo-instruct")]
        call = cloud.calls[0]
        assert call["temperature"] == 0.01
        assert call["max_tokens"] == 2000
        assert "User instructions:\nPaste as table" in call["prompt"]
        assert "Clipboard Content:\na,b" in call["prompt"]
        assert call["prompt"].endswith("Output:\n")
        assert engine.state is EngineState.IDLE

    @pytest.mark.asyncio
    async def test_length_cut_off_flags_truncation(self, tmp_path: Path, caplog):
        cloud = FakeCloud(TextCompletion("partial", "length", Usage(5, 2000)))
        sink = RecordingSink()
        engine = _engine(cloud, tmp_path, sink=sink)

        result = await engine.run_cloud_completion("i", "t")

        assert result.status == 200
        assert result.text == "partial"
        assert result.truncated is True
        assert CompletionTruncated("gpt-3.5-turbo-instruct", 2000) in sink.events
        assert "cut off" in caplog.text


class TestFailures:
    @pytest.mark.asyncio
    async def test_remote_rejection_keeps_status(self, tmp_path: Path):
        sink = RecordingSink()
        engine = _engine(FakeCloud(error=ProviderError("rate limited", status=429)), tmp_path, sink=sink)

        result = await engine.run_cloud_completion("i", "t")

        assert result == CompletionResult(text=None, status=429)
        assert sink.events == [CompletionFailed("rate limited", 429)]

    @pytest.mark.asyncio
    async def test_local_provider_error_is_minus_one(self, tmp_path: Path):
        engine = _engine(FakeCloud(error=ProviderError("connect failed")), tmp_path)
        assert (await engine.run_cloud_completion("i", "t")).status == -1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_minus_one(self, tmp_path: Path):
        sink = RecordingSink()
        engine = _engine(FakeCloud(error=AttributeError("None has no text")), tmp_path, sink=sink)

        result = await engine.run_cloud_completion("i", "t")

        assert result == CompletionResult(text=None, status=-1)
        assert isinstance(sink.events[0], CompletionFailed)

    @pytest.mark.asyncio
    async def test_timeout_is_minus_one(self, tmp_path: Path):
        engine = _engine(FakeCloud(delay=1.0), tmp_path)
        result = await engine.run_cloud_completion("i", "t", timeout=0.01)
        assert result.status == -1

    @pytest.mark.asyncio
    async def test_no_key_skips_backend(self, tmp_path: Path, caplog):
        cloud = FakeCloud()
        engine = _engine(cloud, tmp_path, key=None)

        assert not engine.is_ai_enabled
        assert (await engine.run_cloud_completion("i", "t")).status == -1
        assert cloud.calls == []
        assert "AI is not enabled" in caplog.text

    @pytest.mark.asyncio
    async def test_telemetry_failure_is_ignored(self, tmp_path: Path):
        class BrokenSink:
            def emit(self, event: object) -> None:
                raise RuntimeError("sink down")

        engine = _engine(FakeCloud(), tmp_path, sink=BrokenSink())
        assert (await engine.run_cloud_completion("i", "t")).ok


class TestApiKey:
    def test_key_read_once_and_reloadable(self, tmp_path: Path):
        store = MutableStore(None)
        engine = CompletionEngine(
            Config(), ClipboardSnapshot(), store,
            cloud_provider=FakeCloud(), local_backend=None, file_area=TempFileArea(tmp_path),
        )
        assert not engine.is_ai_enabled

        store.secret = "sk-new"
        assert not engine.is_ai_enabled
        assert engine.reload_api_key() is True

        engine.set_api_key(None)
        assert not engine.is_ai_enabled

    def test_failing_store_means_no_key(self, tmp_path: Path):
        class BrokenStore:
            def load(self) -> str | None:
                raise OSError("keyring locked")

        engine = CompletionEngine(
            Config(), ClipboardSnapshot(), BrokenStore(),
            cloud_provider=FakeCloud(), local_backend=None, file_area=TempFileArea(tmp_path),
        )
        assert not engine.is_ai_enabled


class TestCompleteText:
    @pytest.mark.asyncio
    async def test_returns_text(self, tmp_path: Path):
        engine = _engine(FakeCloud(), tmp_path)
        assert await engine.complete_text("i", "t") == "out"

    @pytest.mark.asyncio
    async def test_failure_raises_tool_error(self, tmp_path: Path):
        engine = _engine(FakeCloud(error=ProviderError("quota", status=429)), tmp_path)
        with pytest.raises(ToolError, match="status 429"):
            await engine.complete_text("i", "t")


class TestStreamInteraction:
    @pytest.mark.asyncio
    async def test_one_shot_cancels_active_stream(self, tmp_path: Path):
        engine = _engine(FakeCloud(), tmp_path)
        session = engine.start_local_streaming("i", "t")

        await engine.run_cloud_completion("i", "t")

        assert session.is_cancelled
