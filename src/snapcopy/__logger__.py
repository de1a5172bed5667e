# pyright: standard

"""snapcopy: snapcopy/__logger__.py
A common logger writing to a rich console and, optionally, a run log file.
"""

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Log output goes to stderr so command output on stdout stays parseable
cons = Console(stderr=True)


def create_logger(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Set up process-wide logging for the CLI.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives a plain-text copy of the output
    """
    handlers: list[logging.Handler] = [RichHandler(console=cons, show_path=False)]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
