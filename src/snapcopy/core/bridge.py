# pyright: standard

"""snapcopy: snapcopy/core/bridge.py
Expose a snapshot device path through a conventional local directory link.

Raw device paths (``\\\\?\\GLOBALROOT\\Device\\HarddiskVolumeShadowCopyN``) are
rejected by many copy tools and shells, a local link is not.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .. import __util__, join_path, strip_trailing_sep
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

LINK_PREFIX = "snapcopy_"


class LinkMounter(Protocol):
    """Filesystem primitive creating and removing directory links."""

    def create(self, link: str, target: str) -> None: ...

    def remove(self, link: str) -> None: ...


class SymlinkMounter:
    """Directory symbolic links via ``os.symlink``."""

    def create(self, link: str, target: str) -> None:
        os.symlink(target, link, target_is_directory=True)

    def remove(self, link: str) -> None:
        # Neither call follows the link into its target
        if os.name == "nt":
            os.rmdir(link)
        else:
            os.unlink(link)


@dataclass(frozen=True)
class MountedSnapshot:
    """Local access path of a snapshot.

    Attributes:
        root: Path to read the snapshot through, without trailing separator
        link: The created link, None when the raw device path is used
    """

    root: str
    link: str | None = None

    @property
    def degraded(self) -> bool:
        return self.link is None

    def resolve(self, offset: str) -> str:
        """Compose the snapshot path of a location ``offset`` below the volume root."""
        return join_path(self.root, offset)


def link_name(snapshot_id: str) -> str:
    """Derive a unique, path safe link name from a snapshot id."""
    return LINK_PREFIX + re.sub(r"[^A-Za-z0-9]", "", snapshot_id)


class SnapshotBridge:
    """Mount snapshots below ``mount_dir`` and remove the links again."""

    def __init__(
        self, mounter: LinkMounter | None = None, mount_dir: str | os.PathLike | None = None
    ) -> None:
        self.mounter = mounter or SymlinkMounter()
        self.mount_dir = Path(mount_dir) if mount_dir else Path(tempfile.gettempdir())

    def mount(self, snapshot: Snapshot) -> MountedSnapshot:
        """Link the snapshot's device path to a local directory.

        Falls back to the raw device path when the link cannot be created.
        """
        link = strip_trailing_sep(str(self.mount_dir / link_name(snapshot.id)))
        target = snapshot.device_path
        if not target.endswith(("\\", "/")):
            target += "\\" if "\\" in target else os.sep

        try:
            self._create_link(link, target)
        except __util__.LinkMountFailure as e:
            fallback = strip_trailing_sep(snapshot.device_path)
            logger.warning("%s, using device path %s", e, fallback)
            return MountedSnapshot(root=fallback)

        logger.info("Mounted snapshot %s at %s", snapshot.id, link)
        return MountedSnapshot(root=link, link=link)

    def _create_link(self, link: str, target: str) -> None:
        try:
            self.mount_dir.mkdir(parents=True, exist_ok=True)
            self.mounter.create(link, target)
        except OSError as e:
            raise __util__.LinkMountFailure(f"Cannot link {link} -> {target}: {e}") from e
        if not os.path.lexists(link):
            raise __util__.LinkMountFailure(f"Snapshot link {link} was not created")

    def unmount(self, mounted: MountedSnapshot) -> None:
        """Remove the link without touching the snapshot contents.

        Safe to call when no link was created or it is already gone.
        """
        if mounted.link is None:
            return
        if not os.path.lexists(mounted.link):
            logger.debug("Snapshot link %s already removed", mounted.link)
            return
        try:
            self.mounter.remove(mounted.link)
            logger.info("Removed snapshot link %s", mounted.link)
        except OSError as e:
            logger.warning("Failed to remove snapshot link %s: %s", mounted.link, e)
