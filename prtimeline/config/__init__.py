"""Configuration models and loading."""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .loader import ConfigurationLoader, load_config
from .models import (
    CacheConfig,
    Config,
    FetchConfig,
    GitHubConfig,
    LogLevel,
    RetryConfig,
    SystemConfig,
)

__all__ = [
    "CacheConfig",
    "Config",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "FetchConfig",
    "GitHubConfig",
    "LogLevel",
    "RetryConfig",
    "SystemConfig",
    "load_config",
]
