# pyright: standard

"""snapcopy: snapcopy/core/snapshot.py
Point-in-time volume snapshots.

The snapshot service is reached through a small provider interface so the
Windows Volume Shadow Copy Service can be swapped for an in-memory fake.
"""

import json
import logging
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from .. import __util__

logger = logging.getLogger(__name__)

NO_SNAPSHOT_ID = "N/A"

# Win32_ShadowCopy.Create return values
VSS_CREATE_ERRORS = {
    1: "access denied",
    2: "invalid argument",
    3: "specified volume not found",
    4: "specified volume not supported",
    5: "unsupported shadow copy context",
    6: "insufficient storage",
    7: "volume is in use",
    8: "maximum number of shadow copies reached",
    9: "another shadow copy operation is already in progress",
    10: "shadow copy provider vetoed the operation",
    11: "shadow copy provider not registered",
    12: "shadow copy provider failure",
    13: "unknown error",
}


@dataclass
class Snapshot:
    """A snapshot owned by the current run."""

    id: str
    device_path: str
    volume_root: str
    created_at: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.id} ({self.volume_root})"


class SnapshotProvider(Protocol):
    """Operating system snapshot service."""

    def create(self, volume_root: str) -> tuple[str, str]:
        """Create a snapshot and return ``(id, device path)``."""
        ...

    def delete(self, snapshot_id: str) -> None: ...


class VssSnapshotProvider:
    """Volume Shadow Copy Service driven through PowerShell and WMI."""

    POWERSHELL = "powershell.exe"

    def __init__(self, powershell: str = POWERSHELL, timeout: int = 300) -> None:
        self.powershell = powershell
        self.timeout = timeout

    def _run_powershell(self, script: str) -> subprocess.CompletedProcess:
        cmd = [
            self.powershell,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            script,
        ]
        logger.debug("Executing: %s", script)
        return subprocess.run(
            cmd, capture_output=True, text=True, timeout=self.timeout, check=False
        )

    def create(self, volume_root: str) -> tuple[str, str]:
        volume = volume_root if volume_root.endswith("\\") else volume_root + "\\"
        script = (
            f"$r = (Get-WmiObject -List Win32_ShadowCopy).Create('{volume}', "
            "'ClientAccessible'); "
            "$s = if ($r.ReturnValue -eq 0) { Get-WmiObject Win32_ShadowCopy | "
            "Where-Object { $_.ID -eq $r.ShadowID } }; "
            "@{ReturnValue=$r.ReturnValue; ShadowID=$r.ShadowID; "
            "DeviceObject=$s.DeviceObject} | ConvertTo-Json -Compress"
        )
        try:
            result = self._run_powershell(script)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise __util__.SnapshotCreationFailure(
                f"Cannot reach the shadow copy service: {e}"
            ) from e

        if result.returncode != 0:
            raise __util__.SnapshotCreationFailure(
                f"PowerShell exited with {result.returncode}: {result.stderr.strip()}",
                result.returncode,
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise __util__.SnapshotCreationFailure(
                f"Unexpected shadow copy service output: {result.stdout!r}"
            ) from e

        code = int(data.get("ReturnValue") or 0)
        if code != 0:
            reason = VSS_CREATE_ERRORS.get(code, "unknown error")
            raise __util__.SnapshotCreationFailure(
                f"Shadow copy of {volume} rejected: {reason} (code {code})", code
            )
        if not data.get("ShadowID") or not data.get("DeviceObject"):
            raise __util__.SnapshotCreationFailure(
                f"Shadow copy of {volume} returned no device object"
            )
        return data["ShadowID"], data["DeviceObject"]

    def delete(self, snapshot_id: str) -> None:
        script = (
            "$s = Get-WmiObject Win32_ShadowCopy | "
            f"Where-Object {{ $_.ID -eq '{snapshot_id}' }}; "
            "if ($s) { $s.Delete(); 'deleted' } else { 'missing' }"
        )
        try:
            result = self._run_powershell(script)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise __util__.SnapshotDeletionError(str(e)) from e
        if result.returncode != 0:
            raise __util__.SnapshotDeletionError(result.stderr.strip())
        if result.stdout.strip() == "missing":
            raise __util__.SnapshotDeletionError(f"No shadow copy with id {snapshot_id}")


class SnapshotManager:
    """Create and delete snapshots, never letting cleanup abort a run."""

    def __init__(self, provider: SnapshotProvider, settle_seconds: float = 2.0) -> None:
        self.provider = provider
        self.settle_seconds = settle_seconds
        self._deleted: set[str] = set()

    def create(self, volume_root: str) -> Snapshot:
        """Create a snapshot of ``volume_root``.

        Raises:
            SnapshotCreationFailure: if the service rejects the request
        """
        logger.info("Creating snapshot of %s ...", volume_root)
        try:
            snapshot_id, device_path = self.provider.create(volume_root)
        except __util__.SnapshotCreationFailure:
            raise
        except Exception as e:
            raise __util__.SnapshotCreationFailure(str(e)) from e

        snapshot = Snapshot(
            id=snapshot_id, device_path=device_path, volume_root=volume_root
        )
        logger.info("Created snapshot %s -> %s", snapshot_id, device_path)

        # The device object materializes asynchronously
        if self.settle_seconds > 0:
            time.sleep(self.settle_seconds)
        return snapshot

    def delete(self, snapshot: Snapshot) -> bool:
        """Delete ``snapshot``. Failures are logged, never raised.

        Returns:
            True if the provider confirmed the deletion
        """
        if snapshot.id in self._deleted:
            logger.warning("Snapshot %s was already deleted", snapshot.id)
            return False
        try:
            self.provider.delete(snapshot.id)
        except Exception as e:
            logger.warning("Failed to delete snapshot %s: %s", snapshot.id, e)
            return False
        finally:
            self._deleted.add(snapshot.id)
        logger.info("Deleted snapshot %s", snapshot.id)
        return True
