"""Append-only audit log with one JSON record per backup item.

Each line reads ``[YYYY-MM-DD HH:MM:SS] {...}``.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from filelock import FileLock

from .. import __util__

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\] (\{.*\})\s*$")


@dataclass
class HistoryEntry:
    """Outcome of one backup item."""

    timestamp: str
    source_path: str
    item_name: str
    mode: str
    destination_path: str
    status: str
    exit_code: int
    snapshot_id: str
    detail_log_path: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


def _lock_for(path: Path) -> FileLock:
    return FileLock(str(path) + ".lock")


def append_entry(log_file: str | Path, entry: HistoryEntry, when: datetime | None = None) -> None:
    """Append ``entry`` as a new line, never rewriting earlier lines."""
    path = Path(log_file)
    line = f"[{__util__.history_timestamp(when)}] {entry.to_json()}\n"
    with _lock_for(path):
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
    logger.debug("Recorded %s/%s as %s", entry.source_path, entry.item_name, entry.status)


def parse_line(line: str) -> tuple[str, dict[str, Any]] | None:
    """Split a history line into its timestamp and record."""
    match = LINE_PATTERN.match(line)
    if not match:
        return None
    try:
        return match.group(1), json.loads(match.group(2))
    except json.JSONDecodeError:
        return None


def read_history(log_file: str | Path, limit: int | None = None) -> list[tuple[str, dict[str, Any]]]:
    """Read history records, oldest first.

    Args:
        log_file: Audit log path
        limit: Only return the last N records

    Returns:
        List of ``(timestamp, record)``; empty if the file does not exist
    """
    path = Path(log_file)
    if not path.exists():
        return []

    records = []
    with open(path, encoding="utf-8") as f:
        for number, line in enumerate(f, 1):
            if not line.strip():
                continue
            parsed = parse_line(line)
            if parsed is None:
                logger.debug("Skipping malformed history line %d", number)
                continue
            records.append(parsed)

    if limit is not None and limit >= 0:
        records = records[-limit:] if limit else []
    return records
