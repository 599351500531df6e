"""Interval and on-demand triggering of sync cycles."""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from runwatch.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from runwatch.models import SourceState

    from .cycle import SyncCycle

__all__ = ["SyncScheduler"]

logger = get_logger(__name__)


class SyncScheduler:
    """Run a sync cycle immediately, then on a fixed interval.

    The scheduler owns the background timer task. Manual triggers run outside
    the timer and may overlap a scheduled cycle; the sync cycle serializes
    work per source.
    """

    def __init__(
        self,
        cycle: SyncCycle,
        sources: cabc.Callable[[], cabc.Iterable[str]],
    ) -> None:
        """Bind the scheduler to a cycle and a provider of tracked sources.

        ``sources`` is called on every run so configuration reloads are
        picked up without restarting the timer.
        """
        self._cycle = cycle
        self._sources = sources
        self._task: asyncio.Task[None] | None = None
        self._in_flight = 0

    @property
    def running(self) -> bool:
        """Return True while the timer task is active."""
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> int:
        """Number of cycles currently executing."""
        return self._in_flight

    def start(self, interval: float) -> None:
        """Start the timer; the first cycle runs immediately.

        Raises
        ------
        ValueError
            If ``interval`` is not positive.
        RuntimeError
            If the scheduler is already running.

        """
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        if self.running:
            msg = "scheduler is already running"
            raise RuntimeError(msg)
        self._task = asyncio.create_task(self._loop(interval))
        log_info(logger, "Sync scheduler started (interval %.1fs)", interval)

    async def stop(self) -> None:
        """Cancel the timer task and wait for it to unwind."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log_info(logger, "Sync scheduler stopped")

    async def trigger_now(self) -> list[SourceState]:
        """Run one cycle outside the timer and return its results."""
        return await self._run()

    async def _run(self) -> list[SourceState]:
        self._in_flight += 1
        try:
            return await self._cycle.run_cycle(self._sources())
        finally:
            self._in_flight -= 1

    async def _loop(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self._run()
            except Exception as exc:  # noqa: BLE001
                # Keep the timer alive; the next tick retries from scratch.
                log_exception(logger, f"Scheduled sync cycle failed: {exc}", exc)
            elapsed = loop.time() - started
            await asyncio.sleep(max(interval - elapsed, 0.0))
