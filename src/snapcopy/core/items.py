"""Split a source into backup items."""

import logging
import os
from dataclasses import dataclass

from .. import folder_name, join_path
from ..config.schema import BackupMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupItem:
    """One unit handed to the copy tool.

    Attributes:
        name: Item name, used for destination folder and log naming
        source_path: Path the copy tool reads from (snapshot or live)
        is_root_mode: True when the whole source folder is the item
    """

    name: str
    source_path: str
    is_root_mode: bool


def enumerate_items(
    source_path: str, resolved_root: str, mode: BackupMode
) -> list[BackupItem]:
    """Produce the backup items of a source.

    Args:
        source_path: Configured (live) source directory
        resolved_root: Where the copy tool reads the source from
        mode: Backup mode of the source

    Returns:
        Always a list, possibly empty
    """
    if mode is BackupMode.WHOLE_FOLDER:
        return [
            BackupItem(
                name=folder_name(source_path),
                source_path=resolved_root,
                is_root_mode=True,
            )
        ]

    with os.scandir(source_path) as entries:
        names = sorted(
            entry.name for entry in entries if entry.is_dir(follow_symlinks=False)
        )

    if not names:
        logger.info("No subfolders found in %s", source_path)

    return [
        BackupItem(name=name, source_path=join_path(resolved_root, name), is_root_mode=False)
        for name in names
    ]
