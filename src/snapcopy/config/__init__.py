"""Configuration system for snapcopy.

This module provides TOML-based configuration loading, validation,
and schema definitions for backup runs.
"""

from .loader import (
    ConfigError,
    find_config_file,
    generate_example_config,
    load_config,
    parse_config,
)
from .schema import (
    BackupMode,
    Config,
    GlobalConfig,
    RetentionConfig,
    SourceConfig,
)

__all__ = [
    "BackupMode",
    "Config",
    "GlobalConfig",
    "RetentionConfig",
    "SourceConfig",
    "load_config",
    "parse_config",
    "find_config_file",
    "generate_example_config",
    "ConfigError",
]
