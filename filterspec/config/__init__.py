"""
Configuration module for filterspec.

This module provides configuration management including
loading settings from YAML files and environment variables.

Example:
    >>> from filterspec.config import Settings, load_config
    >>>
    >>> # Load default config
    >>> settings = load_config()
    >>>
    >>> # Access settings
    >>> print(settings.log_level)
    >>> print(settings.strict_config)
"""

from .settings import (
    Settings,
    SerializationConfig,
    load_config,
    get_default_config_path,
    get_settings,
    set_settings,
    configure_logging,
)

__all__ = [
    "Settings",
    "SerializationConfig",
    "load_config",
    "get_default_config_path",
    "get_settings",
    "set_settings",
    "configure_logging",
]
