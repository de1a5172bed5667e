"""snapcopy: snapcopy/__init__.py."""

import os
import re

__version__ = "0.3.0"

_SEPARATORS = "\\/"


def strip_trailing_sep(path: str) -> str:
    """Remove trailing path separators.

    A bare separator ("/") is returned unchanged since stripping it would
    leave nothing to address.
    """
    stripped = path.rstrip(_SEPARATORS)
    return stripped or path[:1]


def join_path(base: str, offset: str) -> str:
    """Join a resolved root with a relative offset, never ending in a separator."""
    base = strip_trailing_sep(base)
    offset = offset.strip(_SEPARATORS)
    if not offset:
        return base
    sep = "\\" if "\\" in base and "/" not in base else os.sep
    return f"{base}{sep}{offset}"


def folder_name(path: str) -> str:
    """Return the last component of path, ignoring trailing separators.

    Volume roots have no last component, so the root is encoded instead
    (``D:\\`` -> ``D``, ``/`` -> ``root``).
    """
    stripped = path.rstrip(_SEPARATORS)
    name = re.split(r"[\\/]", stripped)[-1] if stripped else ""
    if ":" in name:
        name = name.replace(":", "")
    return name or "root"
