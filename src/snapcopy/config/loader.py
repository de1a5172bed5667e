"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
Only keys that are absent take their default: ``days = 0`` or
``use_snapshots = false`` are honoured as written.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from .schema import BackupMode, Config, GlobalConfig, RetentionConfig, SourceConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


def _system_config_path() -> Path:
    if os.name == "nt":
        program_data = os.environ.get("ProgramData", r"C:\ProgramData")
        return Path(program_data) / "snapcopy" / "config.toml"
    return Path("/etc/snapcopy/config.toml")


def config_search_paths() -> list[Path]:
    """Config file search paths in priority order."""
    return [
        Path.home() / ".config" / "snapcopy" / "config.toml",
        _system_config_path(),
    ]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in config_search_paths():
        if path.exists():
            return path

    return None


def _non_negative(data: dict[str, Any], key: str, default, section: str):
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{section}.{key}' must be a number, got {value!r}")
    if value < 0:
        raise ConfigError(f"'{section}.{key}' must not be negative")
    return value


def _parse_retention(data: dict[str, Any]) -> RetentionConfig:
    """Parse retention configuration from dict."""
    defaults = RetentionConfig()
    return RetentionConfig(
        days=_non_negative(data, "days", defaults.days, "retention"),
        log_days=_non_negative(data, "log_days", defaults.log_days, "retention"),
    )


def _parse_source(data: dict[str, Any]) -> SourceConfig:
    """Parse source configuration from dict."""
    path = data.get("path")
    if not path or not str(path).strip():
        raise ConfigError("Source missing required 'path' field")

    try:
        mode = BackupMode.parse(data.get("mode", BackupMode.WHOLE_FOLDER))
    except ValueError as e:
        raise ConfigError(f"Source '{path}': {e}")

    return SourceConfig(
        path=str(path).strip(),
        mode=mode,
        enabled=data.get("enabled", True),
    )


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    defaults = GlobalConfig()

    destination = data.get("destination")
    if not destination or not str(destination).strip():
        raise ConfigError("Missing required 'global.destination' setting")

    retention = RetentionConfig()
    if "retention" in data:
        retention = _parse_retention(data["retention"])

    return GlobalConfig(
        destination=str(destination).strip(),
        logs_dir=data.get("logs_dir"),
        history_file=data.get("history_file"),
        use_snapshots=data.get("use_snapshots", defaults.use_snapshots),
        rate_limit_ms=int(
            _non_negative(data, "rate_limit_ms", defaults.rate_limit_ms, "global")
        ),
        copy_options=data.get("copy_options", defaults.copy_options),
        copy_tool=data.get("copy_tool", defaults.copy_tool),
        mount_dir=data.get("mount_dir"),
        settle_seconds=float(
            _non_negative(data, "settle_seconds", defaults.settle_seconds, "global")
        ),
        retention=retention,
        log_file=data.get("log_file"),
    )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if not config.sources:
        warnings.append("No sources configured")

    for source in config.sources:
        if not source.enabled:
            warnings.append(f"Source '{source.path}' is disabled")

    source_paths = [s.path.rstrip("\\/").lower() for s in config.sources]
    if len(source_paths) != len(set(source_paths)):
        warnings.append("Duplicate source paths detected")

    if not config.global_config.use_snapshots:
        warnings.append("Snapshots are disabled, files in use may be skipped")

    return warnings


def parse_config(data: dict[str, Any]) -> tuple[Config, list[str]]:
    """Build and validate a Config from already parsed TOML data."""
    global_config = _parse_global(data.get("global", {}))
    sources = [_parse_source(s) for s in data.get("sources", [])]

    config = Config(global_config=global_config, sources=sources)
    return config, _validate_config(config)


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    return parse_config(data)


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return r"""# snapcopy configuration

[global]
destination = 'E:\Backups'
# logs_dir = 'E:\Backups\_logs'
# history_file = 'E:\Backups\_logs\backup_history.log'
use_snapshots = true      # copy from a volume shadow copy
rate_limit_ms = 0         # inter-packet gap in ms, 0 = unthrottled
copy_options = "/MIR /NP /XD \"System Volume Information\""
# copy_tool = "robocopy"
# mount_dir = 'C:\ProgramData\snapcopy\mnt'
# log_file = 'C:\ProgramData\snapcopy\snapcopy.log'

[global.retention]
days = 30                 # delete backup folders older than this
log_days = 30             # delete detail logs older than this

# Copy a whole folder as one backup unit
[[sources]]
path = 'D:\Shares\CriticalApp'
mode = "WholeFolder"

# Back up every immediate subfolder on its own
[[sources]]
path = 'D:\Shares\Users'
mode = "PerSubfolder"
"""
