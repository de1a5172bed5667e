"""Config command: Configuration management."""

import argparse
import logging
from pathlib import Path

from ..__logger__ import create_logger
from ..config import ConfigError, find_config_file, generate_example_config, load_config
from ..config.loader import config_search_paths
from .common import get_log_level

logger = logging.getLogger(__name__)


def execute_config(args: argparse.Namespace) -> int:
    """Execute the config command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    create_logger(get_log_level(args))

    action = getattr(args, "config_action", None)

    if action == "validate":
        return _validate_config(args)
    elif action == "init":
        return _init_config(args)
    else:
        print("Usage: snapcopy config <validate|init>")
        return 1


def _validate_config(args: argparse.Namespace) -> int:
    """Validate configuration file."""
    try:
        config_path = find_config_file(getattr(args, "config", None))
        if config_path is None:
            print("No configuration file found.")
            print("Searched locations:")
            for path in config_search_paths():
                print(f"  {path}")
            return 1

        print(f"Validating: {config_path}")
        config, warnings = load_config(config_path)

        if warnings:
            print("")
            print("Warnings:")
            for warning in warnings:
                print(f"  - {warning}")

        print("")
        print("Configuration is valid.")
        print(f"  Destination: {config.global_config.destination}")
        print(f"  Sources: {len(config.sources)}")
        print(f"  Enabled: {len(config.get_enabled_sources())}")

        return 0

    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1


def _init_config(args: argparse.Namespace) -> int:
    """Generate example configuration."""
    content = generate_example_config()
    output = getattr(args, "output", None)

    if not output:
        print(content)
        return 0

    path = Path(output)
    if path.exists():
        print(f"Refusing to overwrite existing file: {path}")
        return 1

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error("Cannot write %s: %s", path, e)
        return 1

    print(f"Example configuration written to {path}")
    return 0
