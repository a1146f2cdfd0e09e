"""
Configuration management for the rotator.

Provides the config agent that holds the live rotation declaration,
the sources it loads declarations from, and process settings.
"""

from rotator.config.agent import ConfigAgent
from rotator.config.settings import (
    RotatorSettings,
    load_settings_from_env,
)
from rotator.config.source import (
    ConfigSource,
    FileConfigSource,
    load_config_file,
    parse_config,
)

__all__ = [
    "ConfigAgent",
    "ConfigSource",
    "FileConfigSource",
    "RotatorSettings",
    "load_config_file",
    "load_settings_from_env",
    "parse_config",
]
