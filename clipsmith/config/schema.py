"""Pydantic models for clipsmith configuration validation."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Supported provider types
ProviderType = Literal["openai", "azure", "openrouter", "ollama", "vllm", "llamacpp"]

CredentialSource = Literal["env", "file"]


class AuthMethod(str, Enum):
    """Authentication method for API requests."""

    BEARER = "bearer"  # Authorization: Bearer <key>
    API_KEY = "api-key"  # api-key: <key> header (Azure)
    NONE = "none"  # No auth (local servers)


class ProviderConfig(BaseModel):
    """Connection settings for an OpenAI-compatible endpoint.

    Provider types:
        - openai: Direct OpenAI API
        - azure: Azure OpenAI Service
        - openrouter: OpenRouter.ai
        - ollama / vllm / llamacpp: Local OpenAI-compatible servers
    """

    model_config = ConfigDict(extra="forbid")

    type: ProviderType = "openai"
    """Provider type: openai, azure, openrouter, ollama, vllm, llamacpp."""

    base_url: str = "https://api.openai.com/v1"
    """Base URL for API requests."""

    auth_method: AuthMethod = AuthMethod.BEARER
    """How to send the API key (bearer, api-key, none)."""

    api_key_env: str = "OPENAI_API_KEY"
    """Environment variable read by the env credential store."""

    extra_headers: dict[str, str] = {}
    """Additional headers to include in API requests."""

    api_version: str | None = None
    """API version string (for Azure: e.g., '2024-02-01')."""

    request_timeout: float = Field(default=120.0, gt=0)
    """Timeout in seconds for API requests."""

    max_retries: int = Field(default=3, ge=0, le=10)
    """Maximum number of retry attempts for failed requests."""

    retry_backoff: float = Field(default=1.5, ge=1.0, le=5.0)
    """Exponential backoff multiplier between retries."""

    allow_insecure_http: bool = False
    """Allow HTTP (non-HTTPS) for non-localhost URLs. Development only."""

    verify_ssl: bool = True
    """Verify SSL certificates."""

    ssl_ca_cert: str | None = None
    """Path to CA certificate file for SSL verification."""


class CloudConfig(BaseModel):
    """Cloud one-shot and agent chat settings."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig = ProviderConfig()

    completion_model: str = "gpt-3.5-turbo-instruct"
    """Model used by the one-shot prompt completion."""

    chat_model: str = "gpt-4o"
    """Model used by the tool-calling agent."""

    temperature: float = Field(default=0.01, ge=0.0, le=2.0)
    """Sampling temperature, pinned near zero for deterministic output."""

    max_tokens: int = Field(default=2000, gt=0)
    """Hard output-token ceiling for one-shot completions."""


def _local_provider() -> ProviderConfig:
    return ProviderConfig(
        type="ollama",
        base_url="http://localhost:11434/v1",
        auth_method=AuthMethod.NONE,
        api_key_env="",
        max_retries=0,
    )


class LocalModelConfig(BaseModel):
    """Locally hosted streaming model settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    """Whether the local streaming strategy is available."""

    provider: ProviderConfig = Field(default_factory=_local_provider)

    model: str = "phi3"
    """Model name on the local server."""

    max_tokens: int = Field(default=1024, gt=0)

    warmup: bool = True
    """Issue a one-token request during initialize() so the model is loaded."""


class AgentConfig(BaseModel):
    """Tool-calling agent loop settings."""

    model_config = ConfigDict(extra="forbid")

    max_tool_rounds: int = Field(default=10, ge=1, le=50)
    """Maximum number of tool-call rounds before the loop gives up."""

    request_timeout: float | None = Field(default=None, gt=0)
    """Optional deadline in seconds for a whole agent invocation."""


class Config(BaseModel):
    """Root configuration model.

    Example config.json:
        {
            "cloud": {
                "provider": {"type": "openai", "api_key_env": "OPENAI_API_KEY"},
                "completion_model": "gpt-3.5-turbo-instruct"
            },
            "local": {"model": "phi3"},
            "agent": {"max_tool_rounds": 8},
            "credentials": "env"
        }
    """

    model_config = ConfigDict(extra="forbid")

    cloud: CloudConfig = CloudConfig()
    local: LocalModelConfig = LocalModelConfig()
    agent: AgentConfig = AgentConfig()

    credentials: CredentialSource = "env"
    """Where the cloud API key is read from."""

    temp_dir: str | None = None
    """Directory for "paste as file" output. None uses the system temp dir."""
