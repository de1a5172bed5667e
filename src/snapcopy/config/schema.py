"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class BackupMode(Enum):
    """How a source directory is split into backup items."""

    WHOLE_FOLDER = "WholeFolder"  # the source is one unit
    PER_SUBFOLDER = "PerSubfolder"  # every immediate child directory is a unit

    @classmethod
    def parse(cls, value: "str | BackupMode") -> "BackupMode":
        """Parse a mode name, accepting a few common spellings."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        for mode, aliases in _MODE_ALIASES.items():
            if key in aliases:
                return mode
        raise ValueError(f"Unknown backup mode: {value!r}")


_MODE_ALIASES = {
    BackupMode.WHOLE_FOLDER: {"wholefolder", "whole", "root", "folder"},
    BackupMode.PER_SUBFOLDER: {"persubfolder", "subfolders", "subfolder"},
}


@dataclass
class RetentionConfig:
    """Retention policy configuration.

    Attributes:
        days: Age in days after which backup folders are deleted
        log_days: Age in days after which detail logs are deleted
    """

    days: int = 30
    log_days: int = 30


@dataclass(frozen=True)
class SourceConfig:
    """A directory to back up.

    Attributes:
        path: Absolute path of the source directory
        mode: Whether to copy the folder as one unit or per subfolder
        enabled: Whether this source takes part in runs
    """

    path: str
    mode: BackupMode = BackupMode.WHOLE_FOLDER
    enabled: bool = True


def default_data_dir() -> Path:
    """Directory holding logs and history when none is configured."""
    if os.name == "nt":
        return Path(os.environ.get("ProgramData", r"C:\ProgramData")) / "snapcopy"
    return Path.home() / ".local" / "state" / "snapcopy"


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        destination: Root directory receiving backup folders
        logs_dir: Directory for per-item copy logs
        history_file: Audit log receiving one record per item
        use_snapshots: Copy out of a volume snapshot instead of the live tree
        rate_limit_ms: Inter-packet gap for the copy tool (0 disables)
        copy_options: Extra options handed to the copy tool
        copy_tool: Copy tool executable name or path
        mount_dir: Directory where snapshot links are created
        settle_seconds: Wait after snapshot creation before first access
        retention: Retention policy
        log_file: Path to a run log file (None for console only)
    """

    destination: str = ""
    logs_dir: Optional[str] = None
    history_file: Optional[str] = None
    use_snapshots: bool = True
    rate_limit_ms: int = 0
    copy_options: str = "/MIR /NP"
    copy_tool: str = "robocopy"
    mount_dir: Optional[str] = None
    settle_seconds: float = 2.0
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    log_file: Optional[str] = None

    def get_logs_dir(self) -> Path:
        if self.logs_dir:
            return Path(self.logs_dir)
        return default_data_dir() / "logs"

    def get_history_file(self) -> Path:
        if self.history_file:
            return Path(self.history_file)
        return self.get_logs_dir() / "backup_history.log"


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings that apply to all sources
        sources: List of source configurations
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    sources: list[SourceConfig] = field(default_factory=list)

    def get_enabled_sources(self) -> list[SourceConfig]:
        """Get list of enabled sources."""
        return [s for s in self.sources if s.enabled]
