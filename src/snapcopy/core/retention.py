"""Delete expired backup folders and detail logs.

Only folders whose name ends in a backup timestamp are candidates, anything
else is left alone no matter how old it is.
"""

import logging
import os
import re
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = re.compile(r"_\d{8}_\d{6}(_\d{3})?$")
LOG_EXTENSION = ".log"
DAY = 86400


@dataclass
class ReapReport:
    """Result of a retention pass."""

    deleted_folders: list[Path] = field(default_factory=list)
    deleted_logs: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.deleted_folders) + len(self.deleted_logs)


def is_backup_folder(name: str) -> bool:
    return BACKUP_SUFFIX.search(name) is not None


def creation_time(path: Path) -> float:
    """Creation time where the platform reports it, modification time otherwise."""
    st = path.stat()
    if os.name == "nt":
        return getattr(st, "st_birthtime", st.st_ctime)
    return st.st_mtime


def _find_backup_folders(root: Path) -> list[Path]:
    found = []
    for dirpath, dirnames, _ in os.walk(root):
        for name in list(dirnames):
            if is_backup_folder(name):
                found.append(Path(dirpath) / name)
                # backup contents are never candidates themselves
                dirnames.remove(name)
    return sorted(found)


def reap_backups(
    destination_root: str | os.PathLike,
    retention_days: float,
    *,
    dry_run: bool = False,
    now: float | None = None,
    report: ReapReport | None = None,
) -> ReapReport:
    """Delete backup folders created before ``now - retention_days``."""
    report = report or ReapReport()
    root = Path(destination_root)
    if not root.is_dir():
        logger.info("Destination %s does not exist, skipping folder cleanup", root)
        return report

    cutoff = (now if now is not None else time.time()) - retention_days * DAY
    for folder in _find_backup_folders(root):
        try:
            if creation_time(folder) >= cutoff:
                continue
            if dry_run:
                logger.info("Would delete: %s", folder)
            else:
                shutil.rmtree(folder)
                logger.info("Deleted expired backup %s", folder)
            report.deleted_folders.append(folder)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", folder, e)
            report.errors.append(f"{folder}: {e}")
    return report


def reap_logs(
    logs_dir: str | os.PathLike,
    retention_days: float,
    *,
    dry_run: bool = False,
    now: float | None = None,
    keep: tuple[Path, ...] = (),
    report: ReapReport | None = None,
) -> ReapReport:
    """Delete ``*.log`` files directly in ``logs_dir`` last written before the cutoff."""
    report = report or ReapReport()
    directory = Path(logs_dir)
    if not directory.is_dir():
        logger.info("Logs directory %s does not exist, skipping log cleanup", directory)
        return report

    cutoff = (now if now is not None else time.time()) - retention_days * DAY
    protected = {p.resolve() for p in keep}
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() != LOG_EXTENSION or not path.is_file():
            continue
        if path.resolve() in protected:
            continue
        try:
            if path.stat().st_mtime >= cutoff:
                continue
            if dry_run:
                logger.info("Would delete: %s", path)
            else:
                path.unlink()
                logger.debug("Deleted expired log %s", path)
            report.deleted_logs.append(path)
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)
            report.errors.append(f"{path}: {e}")
    return report


def reap(
    destination_root: str | os.PathLike,
    retention_days: float,
    logs_dir: str | os.PathLike,
    log_retention_days: float,
    *,
    dry_run: bool = False,
    now: float | None = None,
    keep: tuple[Path, ...] = (),
) -> ReapReport:
    """Apply both retention windows.

    Args:
        destination_root: Backup root scanned recursively for timestamped folders
        retention_days: Maximum age of backup folders
        logs_dir: Directory holding detail logs
        log_retention_days: Maximum age of detail logs
        dry_run: Only report what would be deleted
        now: Reference time (epoch seconds), defaults to the current time
        keep: Log files never to delete, e.g. the audit history

    Returns:
        ReapReport listing deleted entries and errors
    """
    report = ReapReport()
    reap_backups(destination_root, retention_days, dry_run=dry_run, now=now, report=report)
    reap_logs(logs_dir, log_retention_days, dry_run=dry_run, now=now, keep=keep, report=report)
    logger.info(
        "Retention: %d folder(s), %d log(s) %s",
        len(report.deleted_folders),
        len(report.deleted_logs),
        "would be deleted" if dry_run else "deleted",
    )
    return report
