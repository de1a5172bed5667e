"""History command: Show recent backup records."""

import argparse
import json
import logging

from rich.console import Console
from rich.table import Table

from ..__logger__ import create_logger
from ..core.history import read_history
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)


def execute_history(args: argparse.Namespace) -> int:
    """Execute the history command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    create_logger(get_log_level(args))

    config = load_cli_config(args)
    if config is None:
        return 1

    history_file = config.global_config.get_history_file()
    records = read_history(history_file, limit=getattr(args, "limit", 20))

    if getattr(args, "json", False):
        print(json.dumps([dict(record, logged_at=ts) for ts, record in records], indent=2))
        return 0

    if not records:
        print(f"No backup records in {history_file}")
        return 0

    table = Table(title=f"Backup history ({history_file})")
    table.add_column("Logged")
    table.add_column("Source")
    table.add_column("Item")
    table.add_column("Status")
    table.add_column("Exit", justify="right")
    table.add_column("Snapshot")
    table.add_column("Destination")

    for logged_at, record in records:
        status = record.get("status", "?")
        style = "green" if status == "Success" else "red"
        table.add_row(
            logged_at,
            str(record.get("source_path", "")),
            str(record.get("item_name", "")),
            f"[{style}]{status}[/{style}]",
            str(record.get("exit_code", "")),
            str(record.get("snapshot_id", "")),
            str(record.get("destination_path", "")),
        )

    Console().print(table)
    return 0
