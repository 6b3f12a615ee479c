"""Base provider with shared HTTP, retry, and error handling logic.

This module provides the abstract base class for HTTP completion backends.
It handles authentication headers, retries with backoff, and translation of
HTTP failures into ProviderError with the remote status preserved.
"""

from __future__ import annotations

import asyncio
import logging
import random
import ssl
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlparse

import httpx

from clipsmith.config.schema import AuthMethod, ProviderConfig
from clipsmith.core.errors import ProviderError
from clipsmith.core.types import Message

logger = logging.getLogger(__name__)

# Hosts that are considered safe for HTTP (non-HTTPS) connections
_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

# Maximum size kept from error response bodies
MAX_ERROR_BODY_SIZE: int = 10 * 1024  # 10 KB

MAX_RETRY_DELAY = 10.0  # Maximum delay between retries in seconds
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

_STATUS_MESSAGES = {
    401: "Authentication failed. Check your API key.",
    403: "Access forbidden. Check your API permissions.",
    404: "API endpoint not found. Check your configuration.",
}


def validate_base_url(url: str, allow_insecure: bool = False) -> None:
    """Validate a provider base_url.

    Rules:
    - HTTPS URLs are always allowed
    - HTTP URLs are only allowed for loopback addresses (localhost, 127.0.0.1, ::1)
    - Other schemes (file://, ftp://, etc.) and missing schemes are rejected

    Args:
        url: The base URL to validate.
        allow_insecure: If True, allow HTTP for any host (for development only).

    Raises:
        ProviderError: If the URL fails validation.
    """
    if not url:
        raise ProviderError("Provider base_url cannot be empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""

    if scheme == "https":
        return

    if scheme == "http":
        if allow_insecure or host.lower() in _LOOPBACK_HOSTS:
            return
        raise ProviderError(
            f"HTTP base_url '{url}' is not allowed. "
            f"Use HTTPS, or http://localhost for local servers. "
            f"Set allow_insecure_http=true in provider config to override."
        )

    if not scheme:
        raise ProviderError(
            f"Provider base_url '{url}' must include a scheme (https:// or http://)"
        )

    raise ProviderError(
        f"Provider base_url scheme '{scheme}' is not allowed. Use https:// or http://localhost."
    )


class BaseProvider(ABC):
    """Abstract base class for HTTP completion backends.

    Provides shared functionality:
    - HTTP header building based on auth_method
    - Request retry logic with exponential backoff
    - HTTP client lifecycle

    The API key is injected by the owner (see CompletionEngine) and can be
    replaced at any time with set_api_key().

    Subclasses implement:
    - _build_endpoint(): API endpoint URL
    - _build_request_body(): Convert messages to provider format
    - _parse_response(): Convert response to Message
    """

    def __init__(
        self,
        config: ProviderConfig,
        model_id: str,
        api_key: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Provider configuration.
            model_id: The model ID to use for API requests.
            api_key: Secret sent according to config.auth_method.

        Raises:
            ProviderError: If base_url fails validation.
        """
        self._config = config

        validate_base_url(config.base_url, allow_insecure=config.allow_insecure_http)

        self._api_key = api_key
        self._base_url = config.base_url.rstrip("/")
        self._model = model_id

        self._timeout = config.request_timeout
        self._max_retries = config.max_retries
        self._retry_backoff = config.retry_backoff

        self._verify_ssl = config.verify_ssl
        self._ssl_ca_cert = config.ssl_ca_cert

        # Lazily created, instance-owned
        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self._model

    def set_api_key(self, api_key: str | None) -> None:
        """Replace the API key used for subsequent requests."""
        self._api_key = api_key

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        The client is lazily created on first request and reused for subsequent
        requests.
        """
        if self._client is None:
            if self._ssl_ca_cert:
                verify: bool | str | ssl.SSLContext = self._ssl_ca_cert
            else:
                verify = self._verify_ssl

            try:
                self._client = httpx.AsyncClient(timeout=self._timeout, verify=verify)
            except FileNotFoundError:
                # certifi installed but cert bundle missing/corrupted
                logger.warning(
                    "SSL certificate bundle not found (certifi issue?), "
                    "falling back to system certificates"
                )
                ssl_context = ssl.create_default_context()
                self._client = httpx.AsyncClient(timeout=self._timeout, verify=ssl_context)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        """Build HTTP headers based on auth_method and config."""
        headers: dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self._config.extra_headers)

        if self._api_key:
            match self._config.auth_method:
                case AuthMethod.BEARER:
                    headers["Authorization"] = f"Bearer {self._api_key}"
                case AuthMethod.API_KEY:
                    headers["api-key"] = self._api_key
                case AuthMethod.NONE:
                    pass

        return headers

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with random jitter (0-1s), capped."""
        delay = (self._retry_backoff ** attempt) + random.uniform(0, 1)
        return min(delay, MAX_RETRY_DELAY)

    def _is_retryable_error(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUS_CODES

    def _status_error(self, status_code: int, body: bytes) -> ProviderError:
        """Build the ProviderError for an HTTP error response."""
        if status_code in _STATUS_MESSAGES:
            return ProviderError(_STATUS_MESSAGES[status_code], status=status_code)
        detail = body[:MAX_ERROR_BODY_SIZE].decode(errors="replace")
        return ProviderError(
            f"API request failed with status {status_code}: {detail}",
            status=status_code,
        )

    async def _make_request(
        self,
        url: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Make a non-streaming HTTP request with retries.

        Args:
            url: Full API endpoint URL.
            body: Request body dict.

        Returns:
            Parsed JSON response.

        Raises:
            ProviderError: On failure after all retries. status is set when
                the server answered with an error code.
        """
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                client = await self._ensure_client()
                response = await client.post(
                    url,
                    headers=self._build_headers(),
                    json=body,
                )

                if self._is_retryable_error(response.status_code):
                    last_error = self._status_error(response.status_code, response.content)
                    if attempt < self._max_retries:
                        delay = self._calculate_retry_delay(attempt)
                        logger.debug(
                            "Retrying after status %d (attempt %d, %.1fs)",
                            response.status_code, attempt + 1, delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise last_error

                if response.status_code >= 400:
                    raise self._status_error(response.status_code, response.content)

                try:
                    return response.json()
                except ValueError as e:
                    raise ProviderError(f"Invalid JSON in API response: {e}") from e

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_error = e
                if attempt < self._max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    await asyncio.sleep(delay)
                    continue
                if isinstance(e, httpx.ConnectError):
                    raise ProviderError(
                        f"Failed to connect to API after {self._max_retries + 1} attempts: {e}"
                    ) from e
                raise ProviderError(
                    f"API request timed out after {self._max_retries + 1} attempts: {e}"
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"HTTP error occurred: {e}") from e

        # Shouldn't reach here, but handle it
        if last_error:
            msg = f"Request failed after {self._max_retries + 1} attempts"
            raise ProviderError(msg) from last_error
        raise ProviderError("Request failed unexpectedly")

    async def _make_streaming_request(
        self,
        url: str,
        body: dict[str, Any],
    ) -> AsyncIterator[httpx.Response]:
        """Make a streaming HTTP request with retries.

        Retries only happen before the first byte is handed to the caller.

        Yields:
            The httpx Response object for streaming.

        Raises:
            ProviderError: On failure after all retries.
        """
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                client = await self._ensure_client()
                async with client.stream(
                    "POST",
                    url,
                    headers=self._build_headers(),
                    json=body,
                ) as response:
                    if self._is_retryable_error(response.status_code):
                        error_body = await response.aread()
                        last_error = self._status_error(response.status_code, error_body)
                        if attempt < self._max_retries:
                            delay = self._calculate_retry_delay(attempt)
                            await asyncio.sleep(delay)
                            continue
                        raise last_error

                    if response.status_code >= 400:
                        error_body = await response.aread()
                        raise self._status_error(response.status_code, error_body)

                    yield response
                    return

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_error = e
                if attempt < self._max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    await asyncio.sleep(delay)
                    continue
                if isinstance(e, httpx.ConnectError):
                    raise ProviderError(
                        f"Failed to connect to API after {self._max_retries + 1} attempts: {e}"
                    ) from e
                raise ProviderError(
                    f"API request timed out after {self._max_retries + 1} attempts: {e}"
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"HTTP error occurred: {e}") from e

        if last_error:
            msg = f"Request failed after {self._max_retries + 1} attempts"
            raise ProviderError(msg) from last_error

    # Abstract methods for subclasses to implement

    @abstractmethod
    def _build_endpoint(self, operation: str) -> str:
        """Build the API endpoint URL.

        Args:
            operation: "chat/completions" or "completions".

        Returns:
            Full URL for the API endpoint.
        """
        ...

    @abstractmethod
    def _build_request_body(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        """Build the chat request body in provider-specific format."""
        ...

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> Message:
        """Parse a chat response to Message."""
        ...

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
            The assistant's response as a Message.

        Raises:
            ProviderError: If the API request fails.
        """
        url = self._build_endpoint("chat/completions")
        body = self._build_request_body(messages, tools)

        data = await self._make_request(url, body)
        return self._parse_response(data)
