"""Tests for the OpenAI-compatible provider over a mock HTTP transport."""

import json
from collections.abc import Callable

import httpx
import pytest

from clipsmith.config.schema import AuthMethod, ProviderConfig
from clipsmith.core.cancel import CancellationToken
from clipsmith.core.errors import ConfigError, ProviderError
from clipsmith.core.types import ContentDelta, Message, Role, StreamComplete, Usage
from clipsmith.provider import create_provider
from clipsmith.provider.azure import AzureOpenAIProvider
from clipsmith.provider.base import validate_base_url
from clipsmith.provider.openai_compat import OpenAICompatProvider

Handler = Callable[[httpx.Request], httpx.Response]


def _provider(
    handler: Handler,
    max_retries: int = 0,
    **config: object,
) -> OpenAICompatProvider:
    provider = OpenAICompatProvider(
        ProviderConfig(max_retries=max_retries, **config), "test-model", "sk-test"
    )
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider._calculate_retry_delay = lambda attempt: 0.0  # type: ignore[method-assign]
    return provider


def _completion_body(text: str, finish_reason: str = "stop") -> dict:
    return {
        "choices": [{"text": text, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3},
    }


def _sse(*chunks: str, done: bool = True) -> bytes:
    lines = [f"data: {json.dumps({'choices': [{'text': c}]})}" for c in chunks]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode()


class TestCompletePrompt:
    """Tests for the legacy completions call."""

    @pytest.mark.asyncio
    async def test_success(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion_body("| a | b |"))

        provider = _provider(handler)
        completion = await provider.complete_prompt("p", temperature=0.01, max_tokens=2000)

        assert completion.text == "| a | b |"
        assert completion.truncated is False
        assert completion.usage.prompt_tokens == 12
        assert completion.usage.completion_tokens == 3

        request = seen[0]
        body = json.loads(request.content)
        assert request.url.path.endswith("/v1/completions")
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert body == {
            "model": "test-model",
            "prompt": "p",
            "stream": False,
            "temperature": 0.01,
            "max_tokens": 2000,
        }

    @pytest.mark.asyncio
    async def test_length_finish_is_truncated(self):
        provider = _provider(lambda r: httpx.Response(200, json=_completion_body("cut", "length")))
        completion = await provider.complete_prompt("p")
        assert completion.truncated is True

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        provider = _provider(lambda r: httpx.Response(200, json={"choices": []}))
        with pytest.raises(ProviderError, match="Failed to parse") as exc_info:
            await provider.complete_prompt("p")
        assert exc_info.value.status is None


class TestRetries:
    """Retry and status handling."""

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_status_with_retries_disabled(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, text="slow down")

        provider = _provider(handler, max_retries=0)
        with pytest.raises(ProviderError) as exc_info:
            await provider.complete_prompt("p")

        assert exc_info.value.status == 429
        assert exc_info.value.is_remote_rejection
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        responses = [httpx.Response(503), httpx.Response(200, json=_completion_body("ok"))]
        provider = _provider(lambda r: responses.pop(0), max_retries=2)

        completion = await provider.complete_prompt("p")

        assert completion.text == "ok"
        assert responses == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 404, 400])
    async def test_client_errors_fail_immediately(self, status: int):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, text="nope")

        provider = _provider(handler, max_retries=3)
        with pytest.raises(ProviderError) as exc_info:
            await provider.complete_prompt("p")

        assert exc_info.value.status == status
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connect_error_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = _provider(handler, max_retries=1)
        with pytest.raises(ProviderError, match="Failed to connect") as exc_info:
            await provider.complete_prompt("p")
        assert exc_info.value.status is None


class TestStreaming:
    """Tests for SSE prompt streaming."""

    @pytest.mark.asyncio
    async def test_deltas_then_complete(self):
        provider = _provider(lambda r: httpx.Response(200, content=_sse("a", "b", "c")))

        events = [e async for e in provider.stream_prompt("p")]

        assert events[:3] == [ContentDelta("a"), ContentDelta("b"), ContentDelta("c")]
        assert events[-1] == StreamComplete(text="abc")

    @pytest.mark.asyncio
    async def test_chat_style_delta_content(self):
        body = b'data: {"choices": [{"delta": {"content": "hi"}, "finish_reason": "stop"}]}\n\n'
        provider = _provider(lambda r: httpx.Response(200, content=body))

        events = [e async for e in provider.stream_prompt("p")]

        assert events == [ContentDelta("hi"), StreamComplete(text="hi", finish_reason="stop")]

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_quietly(self):
        token = CancellationToken()
        token.cancel()
        provider = _provider(lambda r: httpx.Response(200, content=_sse("a", "b")))

        events = [e async for e in provider.stream_prompt("p", cancel_token=token)]

        assert events == []


class TestChat:
    """Tests for chat completions with tools."""

    @pytest.mark.asyncio
    async def test_tool_calls_parsed(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={
                "choices": [{"message": {
                    "content": None,
                    "tool_calls": [{
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "transform_to_json", "arguments": "{}"},
                    }],
                }}],
            })

        tools = [{"type": "function", "function": {"name": "transform_to_json", "parameters": {}}}]
        provider = _provider(handler)
        message = await provider.complete([Message(Role.USER, "Paste as JSON")], tools)

        assert message.content == ""
        assert message.tool_calls[0].name == "transform_to_json"
        assert message.tool_calls[0].arguments == {}
        assert seen[0]["tools"] == tools
        assert seen[0]["messages"] == [{"role": "user", "content": "Paste as JSON"}]
        assert message.usage is None

    @pytest.mark.asyncio
    async def test_usage_attached_to_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "done"}}],
                "usage": {"prompt_tokens": 210, "completion_tokens": 7},
            })

        message = await _provider(handler).complete([Message(Role.USER, "hi")])

        assert message.usage == Usage(prompt_tokens=210, completion_tokens=7)


class TestProviderConfig:
    def test_azure_endpoint_and_header(self):
        config = ProviderConfig(
            type="azure",
            base_url="https://res.openai.azure.com",
            auth_method=AuthMethod.API_KEY,
        )
        provider = create_provider(config, "my-deployment", "azure-key")

        assert isinstance(provider, AzureOpenAIProvider)
        assert provider._build_endpoint("completions") == (
            "https://res.openai.azure.com/openai/deployments/my-deployment"
            "/completions?api-version=2024-02-01"
        )
        assert provider._build_headers()["api-key"] == "azure-key"

    def test_no_auth_sends_no_key(self):
        config = ProviderConfig(type="ollama", base_url="http://localhost:11434/v1", auth_method=AuthMethod.NONE)
        provider = create_provider(config, "phi3", "ignored")
        assert "Authorization" not in provider._build_headers()

    def test_http_only_allowed_for_loopback(self):
        validate_base_url("http://127.0.0.1:8080/v1")
        validate_base_url("http://example.com/v1", allow_insecure=True)
        with pytest.raises(ProviderError):
            validate_base_url("http://example.com/v1")

    def test_set_api_key(self):
        provider = create_provider(ProviderConfig(), "m")
        assert "Authorization" not in provider._build_headers()
        provider.set_api_key("new")
        assert provider._build_headers()["Authorization"] == "Bearer new"


class TestProviderTypeDefaults:
    """Unset fields are filled from the defaults of the provider type."""

    def test_openrouter_uses_its_own_endpoint(self):
        provider = create_provider(ProviderConfig(type="openrouter"), "m", "or-key")

        assert provider._build_endpoint("completions") == "https://openrouter.ai/api/v1/completions"
        assert provider._build_headers()["Authorization"] == "Bearer or-key"
        assert provider._config.api_key_env == "OPENROUTER_API_KEY"

    def test_azure_defaults_to_api_key_header(self):
        config = ProviderConfig(type="azure", base_url="https://res.openai.azure.com")
        provider = create_provider(config, "my-deployment", "azure-key")

        headers = provider._build_headers()
        assert headers["api-key"] == "azure-key"
        assert "Authorization" not in headers
        assert provider._build_endpoint("completions").endswith("?api-version=2024-02-01")
        assert provider._config.api_key_env == "AZURE_OPENAI_KEY"

    @pytest.mark.parametrize(
        ("provider_type", "base_url"),
        [
            ("ollama", "http://localhost:11434/v1"),
            ("vllm", "http://localhost:8000/v1"),
            ("llamacpp", "http://localhost:8080/v1"),
        ],
    )
    def test_local_servers_default_to_loopback_without_auth(self, provider_type, base_url):
        provider = create_provider(ProviderConfig(type=provider_type), "m", "ignored")

        assert provider._build_endpoint("completions") == f"{base_url}/completions"
        assert "Authorization" not in provider._build_headers()

    def test_explicit_fields_win_over_type_defaults(self):
        config = ProviderConfig(
            type="openrouter",
            base_url="https://proxy.example.com/v1",
            auth_method=AuthMethod.BEARER,
        )
        provider = create_provider(config, "m", "k")

        assert provider._build_endpoint("completions") == "https://proxy.example.com/v1/completions"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ConfigError, match="Unknown provider type"):
            create_provider(ProviderConfig.model_construct(type="mystery"), "m")
