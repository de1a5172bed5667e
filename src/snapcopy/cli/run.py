"""Run command: Back up all configured sources."""

import argparse
import logging

from .. import __util__
from ..__logger__ import create_logger
from ..config import Config
from ..core import Orchestrator, RunContext, SourceOutcome
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)

EXIT_FATAL = 2


def apply_overrides(config: Config, args: argparse.Namespace) -> None:
    """Apply command line overrides on top of the loaded configuration."""
    settings = config.global_config
    if getattr(args, "no_snapshot", False):
        settings.use_snapshots = False
    if getattr(args, "rate_limit", None) is not None:
        if args.rate_limit < 0:
            raise ValueError("--rate-limit must not be negative")
        settings.rate_limit_ms = args.rate_limit
    if getattr(args, "destination", None):
        settings.destination = args.destination
    if getattr(args, "options", None) is not None:
        settings.copy_options = args.options


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 if any source failed, 2 if the run aborted)
    """
    log_level = get_log_level(args)
    create_logger(log_level)

    config = load_cli_config(args)
    if config is None:
        return 1

    try:
        apply_overrides(config, args)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    if config.global_config.log_file:
        create_logger(log_level, config.global_config.log_file)

    if not config.get_enabled_sources():
        logger.error("No sources configured")
        return 1

    if getattr(args, "dry_run", False):
        return _dry_run(config)

    orchestrator = Orchestrator(RunContext.from_config(config))
    try:
        summary = orchestrator.run()
    except (__util__.PrerequisiteFailure, __util__.InfrastructureFailure) as e:
        logger.error("Run aborted: %s", e)
        return EXIT_FATAL

    if summary.ok:
        logger.info("All %d source(s) completed successfully", len(summary.sources))
        return 0

    failed = sum(1 for s in summary.sources if s.outcome is not SourceOutcome.COMPLETED)
    logger.warning(
        "Completed with errors: %d succeeded, %d failed",
        len(summary.sources) - failed,
        failed,
    )
    return 1


def _dry_run(config: Config) -> int:
    """Show what would be done without making changes."""
    settings = config.global_config
    print("Dry run mode - showing what would be done:")
    print("")
    print(f"Destination: {settings.destination}")
    print(f"Logs: {settings.get_logs_dir()}")
    print(f"History: {settings.get_history_file()}")
    print(f"Snapshots: {'enabled' if settings.use_snapshots else 'disabled'}")
    print(f"Copy tool: {settings.copy_tool} {settings.copy_options}")
    if settings.rate_limit_ms:
        print(f"Rate limit: {settings.rate_limit_ms} ms inter-packet gap")
    print(
        f"Retention: {settings.retention.days} day(s), "
        f"logs {settings.retention.log_days} day(s)"
    )
    print("")

    for source in config.get_enabled_sources():
        print(f"Source: {source.path}")
        print(f"  Mode: {source.mode.value}")
    return 0
