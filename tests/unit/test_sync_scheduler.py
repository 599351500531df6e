"""Unit tests for the interval and on-demand sync scheduler."""

from __future__ import annotations

import asyncio
import typing as typ

import httpx
import pytest

from runwatch.errors import PersistenceError
from runwatch.models import SourceState
from runwatch.sync import SyncScheduler

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from runwatch.sync import SyncCycle


class _FakeCycle:
    """Cycle stand-in recording calls and their overlap."""

    def __init__(
        self,
        *,
        duration: float = 0.0,
        failures: int = 0,
        error: Exception | None = None,
    ) -> None:
        self.duration = duration
        self.failures = failures
        self.error = error
        self.calls: list[tuple[str, ...]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def run_cycle(self, sources: cabc.Iterable[str]) -> list[SourceState]:
        targets = tuple(sources)
        self.calls.append(targets)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.duration)
            if self.failures:
                self.failures -= 1
                raise self.error or PersistenceError("state.get", targets[0])
            return [
                SourceState(repo=repo, runs=[], last_updated="2099-01-01T00:00:00.000Z")
                for repo in targets
            ]
        finally:
            self.in_flight -= 1


def _scheduler(cycle: _FakeCycle) -> SyncScheduler:
    return SyncScheduler(typ.cast("SyncCycle", cycle), lambda: ("octo/reef",))


async def _wait_for_calls(cycle: _FakeCycle, count: int) -> None:
    async def _poll() -> None:
        while len(cycle.calls) < count:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), 1.0)


class TestStart:
    """Timer lifecycle."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interval", [0, -1.0])
    async def test_rejects_non_positive_interval(self, interval: float) -> None:
        """The interval must be positive."""
        with pytest.raises(ValueError, match="interval"):
            _scheduler(_FakeCycle()).start(interval)

    @pytest.mark.asyncio
    async def test_rejects_double_start(self) -> None:
        """A running scheduler cannot be started again."""
        scheduler = _scheduler(_FakeCycle())
        scheduler.start(60)
        try:
            with pytest.raises(RuntimeError, match="already running"):
                scheduler.start(60)
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_first_cycle_runs_immediately_then_repeats(self) -> None:
        """The timer fires at once and then on every interval."""
        cycle = _FakeCycle()
        scheduler = _scheduler(cycle)

        scheduler.start(0.01)
        try:
            await _wait_for_calls(cycle, 3)
        finally:
            await scheduler.stop()

        assert cycle.calls[0] == ("octo/reef",)
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_scheduled_cycles_never_overlap(self) -> None:
        """A slow cycle delays the next tick instead of overlapping it."""
        cycle = _FakeCycle(duration=0.02)
        scheduler = _scheduler(cycle)

        scheduler.start(0.005)
        try:
            await _wait_for_calls(cycle, 3)
        finally:
            await scheduler.stop()

        assert cycle.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_stop_timer(self) -> None:
        """A faulted scheduled cycle is logged and the next tick still runs."""
        cycle = _FakeCycle(failures=1)
        scheduler = _scheduler(cycle)

        scheduler.start(0.01)
        try:
            await _wait_for_calls(cycle, 2)
            assert scheduler.running is True
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_unexpected_cycle_error_does_not_stop_timer(self) -> None:
        """Errors outside the runwatch taxonomy are logged and ticking goes on."""
        cycle = _FakeCycle(failures=2, error=httpx.InvalidURL("bad character"))
        scheduler = _scheduler(cycle)

        scheduler.start(0.01)
        try:
            await _wait_for_calls(cycle, 3)
            assert scheduler.running is True
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_a_no_op(self) -> None:
        """Stopping an idle scheduler returns quietly."""
        await _scheduler(_FakeCycle()).stop()


class TestTriggerNow:
    """Manual triggers."""

    @pytest.mark.asyncio
    async def test_returns_cycle_results(self) -> None:
        """trigger_now runs a cycle over the current sources."""
        cycle = _FakeCycle()

        states = await _scheduler(cycle).trigger_now()

        assert [state.repo for state in states] == ["octo/reef"]
        assert cycle.calls == [("octo/reef",)]

    @pytest.mark.asyncio
    async def test_propagates_cycle_faults(self) -> None:
        """Manual callers see persistence faults."""
        with pytest.raises(PersistenceError):
            await _scheduler(_FakeCycle(failures=1)).trigger_now()

    @pytest.mark.asyncio
    async def test_reads_sources_on_every_run(self) -> None:
        """The source provider is consulted per run."""
        cycle = _FakeCycle()
        sources = [("octo/reef",), ("octo/reef", "octo/kelp")]
        scheduler = SyncScheduler(typ.cast("SyncCycle", cycle), lambda: sources.pop(0))

        await scheduler.trigger_now()
        await scheduler.trigger_now()

        assert cycle.calls == [("octo/reef",), ("octo/reef", "octo/kelp")]

    @pytest.mark.asyncio
    async def test_tracks_in_flight_cycles(self) -> None:
        """Concurrent manual triggers are counted while they run."""
        cycle = _FakeCycle(duration=0.02)
        scheduler = _scheduler(cycle)

        task = asyncio.gather(scheduler.trigger_now(), scheduler.trigger_now())
        await _wait_for_calls(cycle, 2)
        assert scheduler.in_flight == 2
        await task

        assert scheduler.in_flight == 0
