"""Polling, change detection and scheduling for mirrored workflow runs."""

from __future__ import annotations

from .cycle import SyncCycle
from .fetcher import FetchOutcome, WorkflowRunFetcher, placeholder_state
from .observability import (
    CycleSummary,
    ErrorCategory,
    SyncEventLogger,
    SyncEventType,
    categorize_error,
)
from .scheduler import SyncScheduler

__all__ = [
    "CycleSummary",
    "ErrorCategory",
    "FetchOutcome",
    "SyncCycle",
    "SyncEventLogger",
    "SyncEventType",
    "SyncScheduler",
    "WorkflowRunFetcher",
    "categorize_error",
    "placeholder_state",
]
