"""OpenAI-compatible provider for clipsmith.

This module implements the provider for OpenAI-compatible APIs:
- OpenAI (api.openai.com)
- OpenRouter (openrouter.ai)
- Ollama, vLLM and llama.cpp servers (local)

It speaks two endpoints: /chat/completions with function calling (agent
loop) and the legacy /completions endpoint, both one-shot and streamed over
SSE (cloud one-shot and local streaming strategies).
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import httpx

from clipsmith.core.errors import ProviderError
from clipsmith.core.types import (
    ContentDelta,
    Message,
    Role,
    StreamComplete,
    StreamEvent,
    TextCompletion,
    ToolCall,
    Usage,
)
from clipsmith.provider.base import BaseProvider

if TYPE_CHECKING:
    from clipsmith.core.cancel import CancellationToken

logger = logging.getLogger(__name__)


class OpenAICompatProvider(BaseProvider):
    """Provider for OpenAI-compatible APIs.

    Supports:
    - Message format: role/content/tool_calls/tool_call_id
    - Tool format: OpenAI function calling
    - Prompt completions, plain and streamed (SSE with text deltas)

    Example:
        config = ProviderConfig(type="openai")
        provider = OpenAICompatProvider(config, "gpt-3.5-turbo-instruct", api_key)

        completion = await provider.complete_prompt("Say hi", max_tokens=5)
    """

    def _build_endpoint(self, operation: str) -> str:
        """Build the endpoint URL for operation ("chat/completions" or "completions")."""
        return f"{self._base_url}/{operation}"

    def _build_request_body(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        """Build OpenAI-format chat request body."""
        body: dict[str, Any] = {
            "model": self._model,
            "messages": [self._message_to_dict(m) for m in messages],
            "stream": False,
        }

        if tools:
            body["tools"] = tools

        return body

    def _message_to_dict(self, message: Message) -> dict[str, Any]:
        """Convert a Message to OpenAI-format dict."""
        result: dict[str, Any] = {
            "role": message.role.value,
            "content": message.content,
        }

        if message.tool_call_id is not None:
            result["tool_call_id"] = message.tool_call_id

        if message.tool_calls:
            result["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in message.tool_calls
            ]

        return result

    def _parse_tool_calls(
        self, tool_calls_data: list[dict[str, Any]]
    ) -> tuple[ToolCall, ...]:
        """Parse tool calls from API response."""
        result: list[ToolCall] = []
        for tc in tool_calls_data:
            func = tc.get("function", {})
            arguments_str = func.get("arguments") or "{}"
            try:
                arguments = json.loads(arguments_str)
            except json.JSONDecodeError:
                logger.warning("Failed to parse tool arguments JSON: %.100s", arguments_str)
                arguments = {"_raw_arguments": arguments_str}

            result.append(
                ToolCall(
                    id=tc.get("id", ""),
                    name=func.get("name", ""),
                    arguments=arguments if isinstance(arguments, dict) else {},
                )
            )
        return tuple(result)

    def _parse_response(self, data: dict[str, Any]) -> Message:
        """Parse OpenAI-format chat response to Message.

        Raises:
            ProviderError: If response format is invalid.
        """
        try:
            choice = data["choices"][0]
            msg = choice["message"]
            content = msg.get("content") or ""

            tool_calls: tuple[ToolCall, ...] = ()
            if msg.get("tool_calls"):
                tool_calls = self._parse_tool_calls(msg["tool_calls"])

            return Message(
                role=Role.ASSISTANT,
                content=content,
                tool_calls=tool_calls,
                usage=self._parse_usage(data),
            )

        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Failed to parse API response: {e}") from e

    @staticmethod
    def _parse_usage(data: dict[str, Any]) -> Usage | None:
        usage = data.get("usage")
        if not isinstance(usage, dict):
            return None
        return Usage(
            prompt_tokens=int(usage.get("prompt_tokens") or 0),
            completion_tokens=int(usage.get("completion_tokens") or 0),
        )

    # --- Prompt completions ---

    def _build_prompt_body(
        self,
        prompt: str,
        temperature: float | None,
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "stream": stream,
        }
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        return body

    async def complete_prompt(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> TextCompletion:
        """Request a single completion of prompt.

        Returns:
            The completion text, finish reason and usage.

        Raises:
            ProviderError: If the request fails or the response is malformed.
        """
        url = self._build_endpoint("completions")
        body = self._build_prompt_body(prompt, temperature, max_tokens, stream=False)

        data = await self._make_request(url, body)
        try:
            choice = data["choices"][0]
            text = choice["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Failed to parse API response: {e}") from e
        if not isinstance(text, str):
            raise ProviderError("Failed to parse API response: completion text missing")

        return TextCompletion(
            text=text,
            finish_reason=choice.get("finish_reason"),
            usage=self._parse_usage(data),
        )

    async def stream_prompt(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion of prompt.

        Yields:
            ContentDelta for each text fragment, then one StreamComplete.
            Stops quietly (without StreamComplete) once cancel_token is
            cancelled.

        Raises:
            ProviderError: If the request fails.
        """
        url = self._build_endpoint("completions")
        body = self._build_prompt_body(prompt, temperature, max_tokens, stream=True)

        async for response in self._make_streaming_request(url, body):
            async for event in self._parse_stream(response, cancel_token):
                yield event

    async def _parse_stream(
        self,
        response: httpx.Response,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Parse an SSE completion stream to StreamEvents."""
        accumulated = ""
        finish_reason: str | None = None
        event_count = 0
        stream_start = time.monotonic()
        buffer = ""

        async for chunk in response.aiter_text():
            if cancel_token and cancel_token.is_cancelled:
                logger.debug("Stream cancelled after %d events", event_count)
                return
            buffer += chunk

            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                data = self._sse_data(line)
                if data is None:
                    continue
                if data == "[DONE]":
                    self._log_stream_summary(event_count, accumulated, finish_reason, stream_start)
                    yield StreamComplete(text=accumulated, finish_reason=finish_reason)
                    return

                event = self._parse_stream_chunk(data)
                if event is None:
                    continue
                event_count += 1
                text, reason = event
                if reason:
                    finish_reason = reason
                if text:
                    accumulated += text
                    yield ContentDelta(text=text)

        # Trailing data without a newline
        data = self._sse_data(buffer)
        if data is not None and data != "[DONE]":
            event = self._parse_stream_chunk(data)
            if event is not None:
                event_count += 1
                text, reason = event
                finish_reason = reason or finish_reason
                if text:
                    accumulated += text
                    yield ContentDelta(text=text)

        self._log_stream_summary(event_count, accumulated, finish_reason, stream_start)
        yield StreamComplete(text=accumulated, finish_reason=finish_reason)

    @staticmethod
    def _sse_data(line: str) -> str | None:
        """Return the payload of an SSE data line, None for anything else."""
        line = line.strip()
        if not line or line.startswith(":") or not line.startswith("data:"):
            return None
        # SSE spec: space after colon is optional
        return line[5:].removeprefix(" ")

    @staticmethod
    def _parse_stream_chunk(data: str) -> tuple[str, str | None] | None:
        """Extract (text, finish_reason) from one SSE JSON chunk."""
        try:
            event_data = json.loads(data)
        except json.JSONDecodeError:
            return None
        choices = event_data.get("choices") or []
        if not choices:
            return None
        choice = choices[0]
        text = choice.get("text")
        if text is None:
            # Chat-style servers put text in delta.content
            text = (choice.get("delta") or {}).get("content")
        return text or "", choice.get("finish_reason")

    def _log_stream_summary(
        self,
        event_count: int,
        content: str,
        finish_reason: str | None,
        stream_start: float,
    ) -> None:
        duration_ms = round((time.monotonic() - stream_start) * 1000)
        if not content:
            logger.warning(
                "Empty stream response: events=%d, finish_reason=%s, duration=%dms",
                event_count, finish_reason, duration_ms,
            )
        else:
            logger.debug(
                "Stream complete: events=%d, content_len=%d, finish=%s, duration=%dms",
                event_count, len(content), finish_reason, duration_ms,
            )
