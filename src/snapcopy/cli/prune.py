"""Prune command: Apply retention policies."""

import argparse
import logging
import time

from .. import __util__
from ..__logger__ import create_logger
from ..core.retention import reap
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)


def execute_prune(args: argparse.Namespace) -> int:
    """Execute the prune command.

    Deletes timestamped backup folders and detail logs older than the
    configured retention windows.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    create_logger(get_log_level(args))

    config = load_cli_config(args)
    if config is None:
        return 1

    settings = config.global_config
    dry_run = getattr(args, "dry_run", False)
    if dry_run:
        logger.info("Dry run mode - showing what would be deleted")

    logger.info(__util__.log_heading(f"Pruning backups at {time.ctime()}"))
    logger.info(
        "Retention: %d day(s) for backups, %d day(s) for logs",
        settings.retention.days,
        settings.retention.log_days,
    )

    report = reap(
        settings.destination,
        settings.retention.days,
        settings.get_logs_dir(),
        settings.retention.log_days,
        dry_run=dry_run,
        keep=(settings.get_history_file(),),
    )

    logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))

    if report.errors:
        logger.warning("Encountered %d error(s)", len(report.errors))
        return 1
    return 0
