"""Command line interface for snapcopy."""

from .dispatcher import main

__all__ = ["main"]
