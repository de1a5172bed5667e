"""Map a source path to its volume root and the offset below that root."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .. import __util__

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VolumeLocation:
    """Where a path lives.

    Attributes:
        volume_root: Mount point of the volume, e.g. ``D:\\`` or ``/srv``
        offset: Path below the root without leading/trailing separators,
            empty when the path is the root itself
    """

    volume_root: str
    offset: str


def find_volume_root(path: Path) -> Path:
    """Walk up from ``path`` until a mount point is reached."""
    candidate = path
    while not os.path.ismount(candidate):
        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent
    return candidate


def resolve_volume(path: str | os.PathLike) -> VolumeLocation:
    """Resolve ``path`` to ``(volume root, relative offset)``.

    Raises:
        SourceMissing: if the path does not exist
        PathResolutionError: if the path cannot be resolved
    """
    raw = Path(path)
    if not os.path.lexists(raw):
        raise __util__.SourceMissing(f"Source does not exist: {path}")

    try:
        resolved = raw.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise __util__.PathResolutionError(f"Cannot resolve {path}: {e}") from e

    root = find_volume_root(resolved)
    offset = resolved.relative_to(root).as_posix()
    if offset == ".":
        offset = ""
    offset = offset.replace("/", os.sep).strip("\\/")

    logger.debug("Resolved %s -> volume %s, offset %r", path, root, offset)
    return VolumeLocation(volume_root=str(root), offset=offset)
