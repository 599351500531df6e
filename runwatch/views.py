"""Read-only projections over the state store.

These views never trigger a sync; they report whatever the last successful
cycle persisted.
"""

from __future__ import annotations

import typing as typ

from runwatch.models import ActiveRun, is_active

if typ.TYPE_CHECKING:
    from runwatch.models import SourceState
    from runwatch.store import StateStore


class WorkflowRunViews:
    """Snapshot and active-run projections for HTTP readers."""

    def __init__(self, state_store: StateStore) -> None:
        """Bind the views to the state store."""
        self._state_store = state_store

    async def snapshot(self) -> list[SourceState]:
        """Return the stored state of every tracked source, verbatim."""
        return await self._state_store.list_all()

    async def active_runs(self) -> list[ActiveRun]:
        """Return queued and in-progress runs across all sources."""
        return [
            ActiveRun.from_run(state.repo, run)
            for state in await self._state_store.list_all()
            for run in state.runs
            if is_active(run)
        ]
