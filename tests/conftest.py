"""Pytest configuration and shared fixtures."""

import itertools
from pathlib import Path

import pytest

from snapcopy import __util__
from snapcopy.config import BackupMode, Config, GlobalConfig, RetentionConfig, SourceConfig
from snapcopy.core import RunContext
from snapcopy.core.bridge import SnapshotBridge
from snapcopy.core.copy import CopyExecutor
from snapcopy.core.snapshot import SnapshotManager


class FakeSnapshotProvider:
    """In-memory snapshot service backed by plain directories."""

    def __init__(self, device_root: Path, events: list | None = None) -> None:
        self.device_root = device_root
        self.events = events if events is not None else []
        self.fail_on_calls: set[int] = set()
        self.fail_delete = False
        self.created: list[str] = []
        self.deleted: list[str] = []
        self._counter = itertools.count(1)

    def create(self, volume_root: str) -> tuple[str, str]:
        number = next(self._counter)
        if number in self.fail_on_calls:
            self.events.append(f"create-failed:{number}")
            raise __util__.SnapshotCreationFailure("insufficient storage", 6)
        snapshot_id = f"{{0000000{number}-aaaa-bbbb-cccc-dddddddddddd}}"
        device = self.device_root / f"HarddiskVolumeShadowCopy{number}"
        device.mkdir(parents=True)
        self.created.append(snapshot_id)
        self.events.append(f"create:{snapshot_id}")
        return snapshot_id, str(device)

    def delete(self, snapshot_id: str) -> None:
        self.events.append(f"delete:{snapshot_id}")
        if self.fail_delete:
            raise __util__.SnapshotDeletionError("provider busy")
        if snapshot_id not in self.created or snapshot_id in self.deleted:
            raise __util__.SnapshotDeletionError(f"unknown snapshot {snapshot_id}")
        self.deleted.append(snapshot_id)


class FakeLinkMounter:
    """Records link operations; links are plain directories."""

    def __init__(self, events: list | None = None, fail: bool = False) -> None:
        self.events = events if events is not None else []
        self.fail = fail
        self.targets: dict[str, str] = {}

    def create(self, link: str, target: str) -> None:
        if self.fail:
            raise OSError("A required privilege is not held by the client")
        Path(link).mkdir()
        self.targets[link] = target
        self.events.append(f"link:{link}")

    def remove(self, link: str) -> None:
        Path(link).rmdir()
        self.events.append(f"unlink:{link}")


class FakeCopyRunner:
    """Returns scripted exit codes without touching the filesystem."""

    def __init__(self, exit_codes=None, default: int = 1) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.default = default
        self.calls: list[list[str]] = []
        self.raise_error: Exception | None = None

    def run(self, args: list[str]) -> int:
        self.calls.append(list(args))
        if self.raise_error is not None:
            raise self.raise_error
        name = Path(args[0].replace("\\", "/")).name
        return self.exit_codes.get(name, self.default)


@pytest.fixture
def events():
    return []


@pytest.fixture
def provider(tmp_path, events):
    return FakeSnapshotProvider(tmp_path / "devices", events)


@pytest.fixture
def mounter(events):
    return FakeLinkMounter(events)


@pytest.fixture
def runner():
    return FakeCopyRunner()


@pytest.fixture
def make_source(tmp_path):
    """Create a source directory with the given subfolders."""

    def _make(name: str, subfolders=(), mode=BackupMode.WHOLE_FOLDER) -> SourceConfig:
        path = tmp_path / "data" / name
        path.mkdir(parents=True)
        for sub in subfolders:
            (path / sub).mkdir()
            (path / sub / "file.txt").write_text(sub)
        (path / "top.txt").write_text(name)
        return SourceConfig(path=str(path), mode=mode)

    return _make


@pytest.fixture
def make_context(tmp_path, provider, mounter, runner):
    """Build a RunContext wired to the fakes."""

    def _make(sources, **settings) -> RunContext:
        global_config = GlobalConfig(
            destination=str(tmp_path / "backup"),
            logs_dir=str(tmp_path / "logs"),
            mount_dir=str(tmp_path / "mnt"),
            settle_seconds=0,
            retention=RetentionConfig(days=30, log_days=30),
        )
        for key, value in settings.items():
            setattr(global_config, key, value)
        config = Config(global_config=global_config, sources=list(sources))
        return RunContext(
            config=config,
            snapshots=SnapshotManager(provider, settle_seconds=0),
            bridge=SnapshotBridge(mounter, tmp_path / "mnt"),
            executor=CopyExecutor(runner),
        )

    return _make


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return r"""
[global]
destination = 'E:\Backups'
logs_dir = 'E:\Backups\_logs'
use_snapshots = true
rate_limit_ms = 25
copy_options = '/MIR /NP /XD "System Volume Information"'

[global.retention]
days = 14
log_days = 60

[[sources]]
path = 'D:\Shares\CriticalApp'
mode = "WholeFolder"

[[sources]]
path = 'D:\Shares\Users'
mode = "PerSubfolder"

[[sources]]
path = 'D:\Shares\Archive'
mode = "subfolders"
enabled = false
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[global]
destination = "/mnt/backup"

[[sources]]
path = "/srv/share"
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path
