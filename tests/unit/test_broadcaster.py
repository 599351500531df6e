"""Unit tests for the SSE broadcaster and its subscriptions."""

from __future__ import annotations

import asyncio
import typing as typ

import msgspec
import pytest

from runwatch.broadcast import CONNECTED, KEEP_ALIVE, Broadcaster, Frame, FrameKind
from runwatch.errors import DeliveryFault
from runwatch.models import ChangeEvent
from tests.unit.sync_test_helpers import make_run

if typ.TYPE_CHECKING:
    from runwatch.broadcast import Subscription


def _event(repo: str = "octo/reef") -> ChangeEvent:
    return ChangeEvent(
        repo=repo, runs=[make_run(1)], last_updated="2099-01-01T00:00:00.000Z"
    )


async def _take(subscription: Subscription, count: int) -> list[Frame]:
    frames = subscription.frames()
    try:
        return [await asyncio.wait_for(anext(frames), 1.0) for _ in range(count)]
    finally:
        await frames.aclose()


class TestFrames:
    """SSE framing."""

    def test_comment_frames(self) -> None:
        """Connected and keep-alive frames are SSE comments."""
        assert CONNECTED.encode() == ": connected\n\n"
        assert KEEP_ALIVE.encode() == ": keep-alive\n\n"

    def test_data_frame_carries_tagged_event(self) -> None:
        """Change events serialize with their type tag and camelCase timestamp."""
        frame = Frame.data(_event())

        assert frame.kind is FrameKind.DATA
        assert frame.encode().startswith("data: {")
        assert frame.encode().endswith("}\n\n")
        payload = msgspec.json.decode(frame.body)
        assert payload["type"] == "repo-update"
        assert payload["repo"] == "octo/reef"
        assert payload["lastUpdated"] == "2099-01-01T00:00:00.000Z"
        assert payload["runs"][0]["id"] == 1


class TestSubscription:
    """Bounded per-subscriber queue."""

    @pytest.mark.asyncio
    async def test_write_after_close_faults(self) -> None:
        """A closed subscription refuses frames."""
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()
        subscription.close()

        with pytest.raises(DeliveryFault, match="closed"):
            subscription.write(KEEP_ALIVE)

    @pytest.mark.asyncio
    async def test_full_backlog_faults(self) -> None:
        """A subscription whose queue is full refuses further frames."""
        subscription = Broadcaster(queue_size=1).subscribe()

        with pytest.raises(DeliveryFault, match="backlog"):
            subscription.write(KEEP_ALIVE)

    @pytest.mark.asyncio
    async def test_frames_ends_after_close(self) -> None:
        """The reader stops once the subscription is closed."""
        subscription = Broadcaster().subscribe()
        subscription.close()

        assert [frame async for frame in subscription.frames()] == []


class TestBroadcaster:
    """Registration and fan-out."""

    @pytest.mark.asyncio
    async def test_subscribe_primes_connected_frame(self) -> None:
        """New subscriptions receive the connected comment first."""
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()

        assert broadcaster.subscriber_count == 1
        assert await _take(subscription, 1) == [CONNECTED]

    @pytest.mark.asyncio
    async def test_publish_fans_out_identical_frame(self) -> None:
        """Every registered subscription receives the same serialized event."""
        broadcaster = Broadcaster()
        subscriptions = [broadcaster.subscribe() for _ in range(3)]

        delivered = broadcaster.publish(_event())

        assert delivered == 3
        received = [(await _take(sub, 2))[1] for sub in subscriptions]
        assert received[0].kind is FrameKind.DATA
        assert received == [received[0]] * 3

    @pytest.mark.asyncio
    async def test_publish_without_subscribers_is_a_no_op(self) -> None:
        """Publishing to nobody succeeds and delivers nothing."""
        assert Broadcaster().publish(_event()) == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self) -> None:
        """Removing a subscription twice leaves the registry consistent."""
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.unsubscribe(subscription)
        broadcaster.unsubscribe(subscription)

        assert broadcaster.subscriber_count == 0
        assert subscription.closed is True
        assert broadcaster.publish(_event()) == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_during_publish_is_safe(self) -> None:
        """Removing a peer mid-delivery neither raises nor skips others."""
        broadcaster = Broadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()
        third = broadcaster.subscribe()
        original_write = first.write

        def _write_then_drop(frame: Frame) -> None:
            original_write(frame)
            broadcaster.unsubscribe(second)

        first.write = _write_then_drop  # type: ignore[method-assign]

        delivered = broadcaster.publish(_event())

        assert delivered == 2
        assert broadcaster.dropped == 1
        assert broadcaster.subscriber_count == 2
        assert (await _take(third, 2))[1].kind is FrameKind.DATA

    @pytest.mark.asyncio
    async def test_failing_subscription_is_kept_without_threshold(self) -> None:
        """Delivery faults are counted but do not evict by default."""
        broadcaster = Broadcaster(queue_size=1)
        subscription = broadcaster.subscribe()

        assert broadcaster.publish(_event()) == 0
        assert broadcaster.publish(_event()) == 0

        assert broadcaster.dropped == 2
        assert subscription.consecutive_failures == 2
        assert broadcaster.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_eviction_after_consecutive_failures(self) -> None:
        """A threshold evicts subscriptions that keep failing."""
        broadcaster = Broadcaster(queue_size=1, max_consecutive_failures=2)
        subscription = broadcaster.subscribe()

        broadcaster.publish(_event())
        assert broadcaster.subscriber_count == 1
        broadcaster.publish(_event())

        assert broadcaster.subscriber_count == 0
        assert subscription.closed is True

    @pytest.mark.asyncio
    async def test_successful_write_resets_failure_streak(self) -> None:
        """Only consecutive failures count towards eviction."""
        broadcaster = Broadcaster(queue_size=2, max_consecutive_failures=2)
        subscription = broadcaster.subscribe()
        broadcaster.publish(_event())
        broadcaster.publish(_event())
        assert subscription.consecutive_failures == 1

        await _take(subscription, 2)
        broadcaster.publish(_event())

        assert subscription.consecutive_failures == 0
        assert broadcaster.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_heartbeat_writes_keep_alive(self) -> None:
        """Heartbeats are comment frames delivered to every subscription."""
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()

        assert broadcaster.heartbeat() == 1
        assert await _take(subscription, 2) == [CONNECTED, KEEP_ALIVE]


class TestLifecycle:
    """Background keep-alive task."""

    @pytest.mark.asyncio
    async def test_start_emits_periodic_keep_alives(self) -> None:
        """The heartbeat task writes keep-alive frames on its interval."""
        broadcaster = Broadcaster(heartbeat_interval=0.01)
        subscription = broadcaster.subscribe()
        broadcaster.start()
        try:
            frames = await _take(subscription, 3)
        finally:
            await broadcaster.stop()

        assert frames == [CONNECTED, KEEP_ALIVE, KEEP_ALIVE]

    @pytest.mark.asyncio
    async def test_stop_closes_every_subscription(self) -> None:
        """Stopping ends every stream and clears the registry."""
        broadcaster = Broadcaster(heartbeat_interval=60)
        subscriptions = [broadcaster.subscribe() for _ in range(2)]
        broadcaster.start()
        broadcaster.start()
        assert broadcaster.running is True

        await broadcaster.stop()

        assert broadcaster.running is False
        assert broadcaster.subscriber_count == 0
        assert all(subscription.closed for subscription in subscriptions)
