"""Configuration loading and validation."""

from clipsmith.config.loader import load_config
from clipsmith.config.schema import (
    AgentConfig,
    AuthMethod,
    CloudConfig,
    Config,
    LocalModelConfig,
    ProviderConfig,
)

__all__ = [
    "AgentConfig",
    "AuthMethod",
    "CloudConfig",
    "Config",
    "LocalModelConfig",
    "ProviderConfig",
    "load_config",
]
