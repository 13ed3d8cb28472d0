"""Configuration module for overlaymon.

This module provides:
- Pydantic models for configuration validation
- YAML config file loading and discovery
- Default configuration values
- Environment variable expansion
- Clear error messages for config issues
"""

from overlaymon.config.defaults import DEFAULT_CONFIG
from overlaymon.config.loader import (
    CollectionConfig,
    Config,
    ConfigError,
    ConfigKeyError,
    ConfigSyntaxError,
    ConfigValidationError,
    LoggingConfig,
    OverlayConfig,
    SentryConfig,
    deep_merge,
    expand_env_vars,
    get_config_path,
    load_config,
)

__all__ = [
    "Config",
    "CollectionConfig",
    "OverlayConfig",
    "LoggingConfig",
    "SentryConfig",
    "ConfigError",
    "ConfigKeyError",
    "ConfigSyntaxError",
    "ConfigValidationError",
    "DEFAULT_CONFIG",
    "deep_merge",
    "expand_env_vars",
    "get_config_path",
    "load_config",
]
