"""
Configuration management for filterspec.

Provides dataclasses for configuration and utilities
for loading settings from YAML files.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from ..core.exceptions import ConfigurationError
from ..utils.logging import setup_logger


@dataclass
class SerializationConfig:
    """msgpack extension type codes used for persisted filter values."""
    datetime_ext_code: int = 1
    date_ext_code: int = 2
    regex_ext_code: int = 3

    def __post_init__(self):
        codes = [self.datetime_ext_code, self.date_ext_code, self.regex_ext_code]
        if len(set(codes)) != len(codes):
            raise ConfigurationError(f"Extension type codes must be distinct: {codes}")
        for code in codes:
            if not 0 <= code <= 127:
                raise ConfigurationError(f"Extension type code out of range: {code}")


@dataclass
class Settings:
    """
    Main settings container for filterspec.

    Attributes:
        log_level: Logging level for the ``filterspec`` logger
        log_format: Custom log format string
        log_file: Optional file to log to
        strict_config: Reject unknown keys in filter descriptor configs
            (when False they are logged and ignored)
        serialization: Persistence settings
    """
    log_level: str = "WARNING"
    log_format: Optional[str] = None
    log_file: Optional[str] = None
    strict_config: bool = True

    serialization: SerializationConfig = field(default_factory=SerializationConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create Settings from dictionary."""
        data = dict(data)
        serialization_data = data.pop("serialization", None) or {}

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {sorted(unknown)}")

        try:
            return cls(
                serialization=SerializationConfig(**serialization_data),
                **data
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def to_dict(self) -> dict:
        """Convert Settings to dictionary."""
        return asdict(self)


_active_settings: Optional[Settings] = None


def get_default_config_path() -> Path:
    """Get path to default configuration file."""
    # Environment variable wins
    env_config = os.environ.get("FILTERSPEC_CONFIG")
    if env_config:
        return Path(env_config)

    # Check for config in current directory
    local_config = Path("./filterspec.yaml")
    if local_config.exists():
        return local_config

    # Fall back to the file shipped next to this module
    return Path(__file__).parent / "default_config.yaml"


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default.

    Returns:
        Settings object with loaded configuration

    Example:
        >>> settings = load_config()
        >>> settings = load_config("./my_config.yaml")
    """
    if config_path is None:
        path = get_default_config_path()
    else:
        path = Path(config_path)

    if not path.exists():
        # Return default settings if no config file
        return Settings()

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    return Settings.from_dict(data)


def get_settings() -> Settings:
    """Return the active settings, loading them on first use."""
    global _active_settings
    if _active_settings is None:
        _active_settings = load_config()
    return _active_settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the active settings. ``None`` reloads from disk on next use."""
    global _active_settings
    _active_settings = settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the logging part of the settings to the ``filterspec`` logger."""
    settings = settings or get_settings()
    setup_logger(
        "filterspec",
        level=settings.log_level,
        format_string=settings.log_format,
        log_file=settings.log_file,
    )
