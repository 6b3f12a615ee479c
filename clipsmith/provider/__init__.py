"""Completion backends for clipsmith.

This module provides the factory functions for creating backends from
configuration, plus defaults for each supported provider type.

Supported providers:
- openai: Direct OpenAI API (default)
- azure: Azure OpenAI Service
- openrouter: OpenRouter.ai
- ollama / vllm / llamacpp: Local OpenAI-compatible servers

Example:
    from clipsmith.provider import create_provider
    from clipsmith.config.schema import ProviderConfig

    provider = create_provider(ProviderConfig(type="openai"), "gpt-4o", api_key)
"""

from typing import TYPE_CHECKING

from clipsmith.config.schema import AuthMethod
from clipsmith.core.errors import ConfigError
from clipsmith.provider.local import LocalCompletionRunner
from clipsmith.provider.openai_compat import OpenAICompatProvider
from clipsmith.provider.simulated import SimulatedProvider

if TYPE_CHECKING:
    from clipsmith.config.schema import LocalModelConfig, ProviderConfig


# Provider type defaults - used by create_provider and for documentation
PROVIDER_DEFAULTS: dict[str, dict[str, str | AuthMethod]] = {
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
        "auth_method": AuthMethod.BEARER,
    },
    "azure": {
        "api_key_env": "AZURE_OPENAI_KEY",
        "auth_method": AuthMethod.API_KEY,
        "api_version": "2024-02-01",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "api_key_env": "OPENROUTER_API_KEY",
        "auth_method": AuthMethod.BEARER,
    },
    "ollama": {
        "base_url": "http://localhost:11434/v1",
        "auth_method": AuthMethod.NONE,
        "api_key_env": "",
    },
    "vllm": {
        "base_url": "http://localhost:8000/v1",
        "auth_method": AuthMethod.NONE,
        "api_key_env": "",
    },
    "llamacpp": {
        "base_url": "http://localhost:8080/v1",
        "auth_method": AuthMethod.NONE,
        "api_key_env": "",
    },
}


def apply_provider_defaults(config: "ProviderConfig") -> "ProviderConfig":
    """Fill fields the user left unset from the defaults of config.type.

    Explicitly configured fields always win, even when they equal the
    schema default.
    """
    defaults = PROVIDER_DEFAULTS.get(config.type.lower(), {})
    update = {k: v for k, v in defaults.items() if k not in config.model_fields_set}
    if not update:
        return config
    return config.model_copy(update=update)


def create_provider(
    config: "ProviderConfig",
    model_id: str,
    api_key: str | None = None,
) -> OpenAICompatProvider:
    """Create a provider instance based on config.type.

    Args:
        config: Provider configuration.
        model_id: The model ID (or Azure deployment) to use.
        api_key: Secret for authenticated endpoints.

    Returns:
        Provider implementing AsyncProvider plus prompt completions.

    Raises:
        ConfigError: If provider type is unknown.
    """
    provider_type = config.type.lower()
    if provider_type not in PROVIDER_DEFAULTS:
        supported = ", ".join(PROVIDER_DEFAULTS.keys())
        raise ConfigError(f"Unknown provider type: '{provider_type}'. Supported: {supported}")

    config = apply_provider_defaults(config)

    if provider_type == "azure":
        from clipsmith.provider.azure import AzureOpenAIProvider

        return AzureOpenAIProvider(config, model_id, api_key)

    return OpenAICompatProvider(config, model_id, api_key)


def create_local_backend(config: "LocalModelConfig") -> LocalCompletionRunner:
    """Create the local streaming backend."""
    return LocalCompletionRunner(config, create_provider(config.provider, config.model))


__all__ = [
    "apply_provider_defaults",
    "create_local_backend",
    "create_provider",
    "LocalCompletionRunner",
    "OpenAICompatProvider",
    "PROVIDER_DEFAULTS",
    "SimulatedProvider",
]
