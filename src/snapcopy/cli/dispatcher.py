"""CLI dispatcher routing subcommands to their handlers."""

import argparse
import sys
from typing import Callable

from .common import add_verbosity_args


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="snapcopy",
        description="Snapshot-consistent backups of live directory trees",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Back up all configured sources",
        description="Snapshot, copy and apply retention according to configuration",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )
    run_parser.add_argument(
        "--no-snapshot",
        action="store_true",
        help="Copy live data instead of a volume snapshot (overrides config)",
    )
    run_parser.add_argument(
        "--rate-limit",
        type=int,
        metavar="MS",
        help="Inter-packet gap in milliseconds (overrides config)",
    )
    run_parser.add_argument(
        "--destination",
        metavar="DIR",
        help="Backup destination root (overrides config)",
    )
    run_parser.add_argument(
        "--options",
        metavar="STR",
        help="Copy tool options, e.g. '/MIR /XD temp' (overrides config)",
    )

    # prune command
    prune_parser = subparsers.add_parser(
        "prune",
        help="Apply retention policies",
        description="Delete expired backup folders and detail logs",
    )
    prune_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without making changes",
    )

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="Show recent backup records",
        description="Display the most recent entries of the audit log",
    )
    history_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=20,
        metavar="N",
        help="Number of records to show (default: 20)",
    )
    history_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"snapcopy {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    handlers: dict[str, Callable] = {
        "run": cmd_run,
        "prune": cmd_prune,
        "history": cmd_history,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_prune(args: argparse.Namespace) -> int:
    """Execute prune command."""
    from .prune import execute_prune

    return execute_prune(args)


def cmd_history(args: argparse.Namespace) -> int:
    """Execute history command."""
    from .history_cmd import execute_history

    return execute_history(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for snapcopy CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
