"""Core backup engine: snapshots, copying, history and retention."""

from .orchestrator import (
    Orchestrator,
    RunContext,
    RunSummary,
    SourceOutcome,
    SourceResult,
    check_prerequisites,
    prepare_infrastructure,
)

__all__ = [
    "Orchestrator",
    "RunContext",
    "RunSummary",
    "SourceOutcome",
    "SourceResult",
    "check_prerequisites",
    "prepare_infrastructure",
]
