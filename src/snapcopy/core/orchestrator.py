# pyright: standard

"""snapcopy: snapcopy/core/orchestrator.py
Sequence snapshot, bridge, copy and history for every configured source.

Sources are processed one at a time. A failing source is recorded and the
run moves on; only missing prerequisites and an unusable logs directory
abort the whole run.
"""

import ctypes
import logging
import os
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .. import __util__, folder_name, join_path, strip_trailing_sep
from ..config import Config, SourceConfig
from .bridge import MountedSnapshot, SnapshotBridge
from .copy import FATAL_EXIT_CODE, CopyExecutor, CopyResult, CopyStatus, RobocopyRunner
from .history import HistoryEntry, append_entry
from .items import BackupItem, enumerate_items
from .retention import ReapReport, reap
from .snapshot import NO_SNAPSHOT_ID, Snapshot, SnapshotManager, VssSnapshotProvider
from .volume import resolve_volume

logger = logging.getLogger(__name__)


class SourceOutcome(Enum):
    COMPLETED = "Completed"  # every item copied
    FAILED = "Failed"  # at least one item failed
    SKIPPED = "Skipped"  # source could not be prepared


@dataclass
class SourceResult:
    """What happened to one source."""

    source: SourceConfig
    outcome: SourceOutcome = SourceOutcome.COMPLETED
    items: list[tuple[BackupItem, CopyResult]] = field(default_factory=list)
    message: str = ""
    snapshot_id: str = NO_SNAPSHOT_ID
    degraded_mount: bool = False

    @property
    def failed_items(self) -> int:
        return sum(1 for _, result in self.items if not result.ok)


@dataclass
class RunSummary:
    started_at: datetime
    finished_at: datetime | None = None
    sources: list[SourceResult] = field(default_factory=list)
    retention: ReapReport | None = None

    @property
    def duration(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    @property
    def ok(self) -> bool:
        return all(s.outcome is SourceOutcome.COMPLETED for s in self.sources)


@dataclass
class RunContext:
    """Everything one run needs, built once and passed to each step."""

    config: Config
    snapshots: SnapshotManager
    bridge: SnapshotBridge
    executor: CopyExecutor
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def logs_dir(self) -> Path:
        return self.config.global_config.get_logs_dir()

    @property
    def history_file(self) -> Path:
        return self.config.global_config.get_history_file()

    @classmethod
    def from_config(cls, config: Config) -> "RunContext":
        """Wire the production collaborators."""
        settings = config.global_config
        return cls(
            config=config,
            snapshots=SnapshotManager(VssSnapshotProvider(), settings.settle_seconds),
            bridge=SnapshotBridge(mount_dir=settings.mount_dir),
            executor=CopyExecutor(RobocopyRunner(settings.copy_tool)),
        )


def is_admin() -> bool:
    """Check for the privilege needed to create snapshots."""
    if os.name == "nt":
        try:
            return ctypes.windll.shell32.IsUserAnAdmin() != 0  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def check_prerequisites(context: RunContext) -> None:
    """Raise PrerequisiteFailure before any source is touched."""
    settings = context.config.global_config
    tool = settings.copy_tool
    if not (shutil.which(tool) or Path(tool).is_file()):
        raise __util__.PrerequisiteFailure(f"Copy tool not found: {tool}")
    if settings.use_snapshots and not is_admin():
        raise __util__.PrerequisiteFailure(
            "Creating snapshots requires administrative privileges "
            "(run elevated or disable use_snapshots)"
        )


def prepare_infrastructure(context: RunContext) -> None:
    """Create the logs directory and audit file or raise InfrastructureFailure."""
    try:
        context.logs_dir.mkdir(parents=True, exist_ok=True)
        context.history_file.parent.mkdir(parents=True, exist_ok=True)
        context.history_file.touch(exist_ok=True)
    except OSError as e:
        raise __util__.InfrastructureFailure(
            f"Cannot prepare logs in {context.logs_dir}: {e}"
        ) from e


class Orchestrator:
    """Run all configured sources and apply retention afterwards."""

    def __init__(self, context: RunContext) -> None:
        self.context = context

    @property
    def settings(self):
        return self.context.config.global_config

    def run(self, check: bool = True) -> RunSummary:
        """Execute a full backup run.

        Raises:
            PrerequisiteFailure: copy tool or privileges missing
            InfrastructureFailure: logs directory or audit file unusable
        """
        if check:
            check_prerequisites(self.context)
        prepare_infrastructure(self.context)

        summary = RunSummary(started_at=datetime.now())
        logger.info(__util__.log_heading(f"Started at {time.ctime()}"))

        sources = self.context.config.get_enabled_sources()
        logger.info("Processing %d source(s)", len(sources))
        for source in sources:
            summary.sources.append(self.process_source(source))

        logger.info(__util__.log_heading("Retention"))
        try:
            summary.retention = reap(
                self.settings.destination,
                self.settings.retention.days,
                self.context.logs_dir,
                self.settings.retention.log_days,
                keep=(self.context.history_file,),
            )
        except OSError as e:
            logger.warning("Retention cleanup failed: %s", e)

        summary.finished_at = datetime.now()
        self._log_summary(summary)
        return summary

    def process_source(self, source: SourceConfig) -> SourceResult:
        """Back up one source. Never raises for per-source failures."""
        logger.info(__util__.log_heading(f"Source: {source.path} ({source.mode.value})"))
        result = SourceResult(source=source)

        try:
            location = resolve_volume(source.path)
        except __util__.PathResolutionError as e:
            logger.error("Skipping %s: %s", source.path, e)
            result.outcome = SourceOutcome.SKIPPED
            result.message = str(e)
            return result

        if not self.settings.use_snapshots:
            logger.warning("Snapshots disabled, copying live data from %s", source.path)
            try:
                self._copy_items(source, strip_trailing_sep(source.path), result)
            except Exception as e:
                logger.error("Unexpected error while processing %s: %s", source.path, e)
                result.outcome = SourceOutcome.FAILED
                result.message = str(e)
            return result

        try:
            snapshot = self.context.snapshots.create(location.volume_root)
        except __util__.SnapshotCreationFailure as e:
            logger.error("Skipping %s, snapshot failed: %s", source.path, e)
            result.outcome = SourceOutcome.SKIPPED
            result.message = str(e)
            return result

        result.snapshot_id = snapshot.id
        mounted: MountedSnapshot | None = None
        try:
            mounted = self.context.bridge.mount(snapshot)
            if mounted.degraded:
                result.degraded_mount = True
                logger.warning(
                    "Reading %s through raw device path %s", source.path, mounted.root
                )
            self._copy_items(source, mounted.resolve(location.offset), result, snapshot)
        except Exception as e:
            logger.error("Unexpected error while processing %s: %s", source.path, e)
            result.outcome = SourceOutcome.FAILED
            result.message = str(e)
        finally:
            if mounted is not None:
                self.context.bridge.unmount(mounted)
            self.context.snapshots.delete(snapshot)

        return result

    def _copy_items(
        self,
        source: SourceConfig,
        resolved_root: str,
        result: SourceResult,
        snapshot: Snapshot | None = None,
    ) -> None:
        try:
            items = enumerate_items(source.path, resolved_root, source.mode)
        except OSError as e:
            logger.error("Cannot list %s: %s", source.path, e)
            result.outcome = SourceOutcome.FAILED
            result.message = str(e)
            return

        logger.info("%d item(s) to copy from %s", len(items), source.path)
        for item in items:
            copy_result = self.copy_item(source, item, snapshot)
            result.items.append((item, copy_result))
            if not copy_result.ok:
                result.outcome = SourceOutcome.FAILED

    def copy_item(
        self, source: SourceConfig, item: BackupItem, snapshot: Snapshot | None
    ) -> CopyResult:
        """Copy a single item and record it in the history."""
        stamp = __util__.backup_timestamp()
        source_name = folder_name(source.path)
        destination = join_path(
            join_path(self.settings.destination, source_name), f"{item.name}_{stamp}"
        )
        log_file = self.context.logs_dir / f"{stamp}_{source_name}_{item.name}.log"

        try:
            copy_result = self.context.executor.run(
                item.source_path,
                destination,
                self.settings.copy_options,
                self.settings.rate_limit_ms,
                log_file,
            )
        except Exception as e:
            logger.error("Copy of %s failed: %s", item.name, e)
            copy_result = CopyResult(CopyStatus.FAILED, FATAL_EXIT_CODE, str(log_file))

        entry = HistoryEntry(
            timestamp=datetime.now().isoformat(timespec="seconds"),
            source_path=source.path,
            item_name=item.name,
            mode=source.mode.value,
            destination_path=destination,
            status=copy_result.status.value,
            exit_code=copy_result.exit_code,
            snapshot_id=snapshot.id if snapshot else NO_SNAPSHOT_ID,
            detail_log_path=str(log_file),
        )
        try:
            append_entry(self.context.history_file, entry)
        except OSError as e:
            logger.error("Cannot write history for %s: %s", item.name, e)
        return copy_result

    def _log_summary(self, summary: RunSummary) -> None:
        logger.info(
            __util__.log_heading(f"Finished at {summary.finished_at:%Y-%m-%d %H:%M:%S}")
        )
        logger.info("Total duration: %s", __util__.format_duration(summary.duration))
        for result in summary.sources:
            copied = len(result.items) - result.failed_items
            if result.outcome is SourceOutcome.SKIPPED:
                logger.warning("%s: skipped (%s)", result.source.path, result.message)
            elif result.outcome is SourceOutcome.FAILED and not result.items:
                logger.warning("%s: failed (%s)", result.source.path, result.message)
            elif result.outcome is SourceOutcome.FAILED:
                logger.warning(
                    "%s: %d of %d item(s) failed",
                    result.source.path,
                    result.failed_items,
                    len(result.items),
                )
            else:
                logger.info("%s: %d item(s) copied", result.source.path, copied)
            if result.degraded_mount:
                logger.warning("%s: copied through raw device path", result.source.path)
