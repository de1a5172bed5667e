# pyright: standard

"""snapcopy: snapcopy/__util__.py
Error taxonomy and small helpers shared across modules.
"""

import time
from datetime import datetime

DATE_FORMAT = "%Y%m%d_%H%M%S"
HISTORY_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SnapcopyError(Exception):
    """Base class of all snapcopy errors."""


class PrerequisiteFailure(SnapcopyError):
    """A tool or privilege required by the run is missing. Fatal."""


class InfrastructureFailure(SnapcopyError):
    """Logs directory or audit file cannot be created. Fatal."""


class PathResolutionError(SnapcopyError):
    """A source path cannot be resolved to an existing filesystem entry."""


class SourceMissing(PathResolutionError):
    """A configured source does not exist."""


class SnapshotCreationFailure(SnapcopyError):
    """The snapshot service rejected a create request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SnapshotDeletionError(SnapcopyError):
    """The snapshot service failed to delete a snapshot."""


class LinkMountFailure(SnapcopyError):
    """A link to a snapshot device path could not be created."""


def backup_timestamp(when: datetime | None = None) -> str:
    """Return a millisecond resolution timestamp, e.g. 20260101_120000_123."""
    when = when or datetime.now()
    return f"{when.strftime(DATE_FORMAT)}_{when.microsecond // 1000:03d}"


def history_timestamp(when: datetime | None = None) -> str:
    return (when or datetime.now()).strftime(HISTORY_DATE_FORMAT)


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS."""
    return time.strftime("%H:%M:%S", time.gmtime(max(seconds, 0)))


def log_heading(caption: str) -> str:
    """Format a log heading."""
    return f"--[ {caption} ]--"
