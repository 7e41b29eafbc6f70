"""Controller layer for decoupling UI state management from widgets."""

from .session import MergeSession, MergeStatus, StatusKind

__all__ = [
    "MergeSession",
    "MergeStatus",
    "StatusKind",
]
