"""Concurrent sync of every tracked source followed by change fan-out."""

from __future__ import annotations

import asyncio
import collections
import typing as typ

from runwatch.common.slug import normalise_repo_slugs
from runwatch.common.time import utcnow
from runwatch.errors import NoSourcesConfiguredError

from .observability import CycleSummary, SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from runwatch.broadcast import Broadcaster
    from runwatch.models import SourceState

    from .fetcher import FetchOutcome, WorkflowRunFetcher


class SyncCycle:
    """Run the fetcher for a batch of sources and publish what changed.

    Sources are synced concurrently and the cycle waits for all of them to
    settle. Overlapping cycles for the same source are serialized by a
    per-source lock, so the read-then-write diff never races with itself.
    """

    def __init__(
        self,
        fetcher: WorkflowRunFetcher,
        broadcaster: Broadcaster,
        *,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Bind the cycle to a fetcher and the broadcaster it publishes to."""
        self._fetcher = fetcher
        self._broadcaster = broadcaster
        self._event_logger = event_logger or SyncEventLogger()
        self._locks: collections.defaultdict[str, asyncio.Lock] = (
            collections.defaultdict(asyncio.Lock)
        )

    async def run_cycle(self, sources: cabc.Iterable[str]) -> list[SourceState]:
        """Sync ``sources`` and return one state per distinct source.

        Upstream faults degrade only the affected entry to an empty
        placeholder. Change events are published after every source has
        settled.

        Raises
        ------
        NoSourcesConfiguredError
            If ``sources`` is empty after normalisation.
        PersistenceError
            If a store was unreachable for any source. No events are
            published in that case.

        """
        targets = normalise_repo_slugs(sources)
        if not targets:
            raise NoSourcesConfiguredError()

        started_at = utcnow()
        self._event_logger.log_cycle_started(len(targets))
        settled = await asyncio.gather(
            *(self._sync_locked(source) for source in targets),
            return_exceptions=True,
        )

        outcomes: list[FetchOutcome] = []
        for result in settled:
            if isinstance(result, BaseException):
                self._event_logger.log_cycle_failed(result, utcnow() - started_at)
                raise result
            outcomes.append(result)

        for outcome in outcomes:
            if outcome.event is not None:
                self._broadcaster.publish(outcome.event)

        self._event_logger.log_cycle_completed(
            CycleSummary(
                sources=len(outcomes),
                changed=sum(1 for outcome in outcomes if outcome.changed),
                failed=sum(1 for outcome in outcomes if outcome.failed),
            ),
            utcnow() - started_at,
        )
        return [outcome.state for outcome in outcomes]

    async def _sync_locked(self, source: str) -> FetchOutcome:
        async with self._locks[source]:
            return await self._fetcher.sync_one(source)
