"""In-process fan-out of change events to live SSE subscriptions.

Each subscriber gets a bounded frame queue. ``publish`` serializes an event
once and offers the same frame to every registered subscription; a
subscription that cannot accept it counts a delivery fault and keeps its
registration unless the broadcaster was built with an eviction threshold.

Usage
-----
Wire one broadcaster per process and hand it to the sync cycle and the SSE
resource::

    broadcaster = Broadcaster(heartbeat_interval=15.0)
    broadcaster.start()
    subscription = broadcaster.subscribe()
    ...
    broadcaster.unsubscribe(subscription)
    await broadcaster.stop()

"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import typing as typ

from runwatch.errors import DeliveryFault
from runwatch.logging import get_logger, log_debug, log_info, log_warning

from .frames import CONNECTED, KEEP_ALIVE, Frame

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from runwatch.models import ChangeEvent

__all__ = ["Broadcaster", "Subscription"]

logger = get_logger(__name__)

_DEFAULT_HEARTBEAT_INTERVAL_S = 15.0
_DEFAULT_QUEUE_SIZE = 100

_ids = itertools.count(1)


class Subscription:
    """Handle for one live subscriber's pending frames.

    The transport owns the subscription's lifetime; the broadcaster only
    writes to it while it is registered.
    """

    def __init__(self, *, queue_size: int = _DEFAULT_QUEUE_SIZE) -> None:
        """Create an open subscription with a bounded frame queue."""
        self.id = next(_ids)
        self.consecutive_failures = 0
        self._queue: asyncio.Queue[Frame | None] = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        """Return True once :meth:`close` has been called."""
        return self._closed

    def write(self, frame: Frame) -> None:
        """Queue ``frame`` for delivery.

        Raises
        ------
        DeliveryFault
            If the subscription is closed or its backlog is full.

        """
        if self._closed:
            raise DeliveryFault.closed(self.id)
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as exc:
            raise DeliveryFault.backlog_full(self.id) from exc

    def close(self) -> None:
        """Stop accepting frames and wake the reader; pending frames are dropped."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def frames(self) -> cabc.AsyncIterator[Frame]:
        """Yield frames as they arrive until the subscription is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class Broadcaster:
    """Registry of live subscriptions with publish and keep-alive fan-out."""

    def __init__(
        self,
        *,
        heartbeat_interval: float = _DEFAULT_HEARTBEAT_INTERVAL_S,
        queue_size: int = _DEFAULT_QUEUE_SIZE,
        max_consecutive_failures: int | None = None,
    ) -> None:
        """Configure the broadcaster.

        Parameters
        ----------
        heartbeat_interval
            Seconds between keep-alive frames once :meth:`start` is called.
        queue_size
            Per-subscription frame backlog.
        max_consecutive_failures
            Evict a subscription after this many failed writes in a row.
            ``None`` keeps failing subscriptions registered until the
            transport unsubscribes them.

        """
        self._heartbeat_interval = heartbeat_interval
        self._queue_size = queue_size
        self._max_failures = max_consecutive_failures
        self._subscriptions: dict[int, Subscription] = {}
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._dropped = 0

    @property
    def subscriber_count(self) -> int:
        """Number of registered subscriptions."""
        return len(self._subscriptions)

    @property
    def dropped(self) -> int:
        """Total frames that could not be delivered."""
        return self._dropped

    @property
    def running(self) -> bool:
        """Return True while the heartbeat task is active."""
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def subscribe(self) -> Subscription:
        """Register a new subscription primed with the connected frame."""
        subscription = Subscription(queue_size=self._queue_size)
        subscription.write(CONNECTED)
        self._subscriptions[subscription.id] = subscription
        log_debug(
            logger,
            "Subscription %d registered (%d active)",
            subscription.id,
            self.subscriber_count,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove ``subscription``; removing twice is a no-op."""
        removed = self._subscriptions.pop(subscription.id, None)
        subscription.close()
        if removed is not None:
            log_debug(
                logger,
                "Subscription %d removed (%d active)",
                subscription.id,
                self.subscriber_count,
            )

    def publish(self, event: ChangeEvent) -> int:
        """Send ``event`` to every subscription and return the delivery count."""
        return self._deliver(Frame.data(event))

    def heartbeat(self) -> int:
        """Send a keep-alive comment frame to every subscription."""
        return self._deliver(KEEP_ALIVE)

    def _deliver(self, frame: Frame) -> int:
        delivered = 0
        for subscription in tuple(self._subscriptions.values()):
            try:
                subscription.write(frame)
            except DeliveryFault as fault:
                self._record_failure(subscription, fault)
                continue
            subscription.consecutive_failures = 0
            delivered += 1
        return delivered

    def _record_failure(self, subscription: Subscription, fault: DeliveryFault) -> None:
        self._dropped += 1
        subscription.consecutive_failures += 1
        log_debug(logger, "Dropped frame: %s", fault)
        if (
            self._max_failures is not None
            and subscription.consecutive_failures >= self._max_failures
        ):
            log_warning(
                logger,
                "Evicting subscription %d after %d failed writes",
                subscription.id,
                subscription.consecutive_failures,
            )
            self.unsubscribe(subscription)

    def start(self) -> None:
        """Start the periodic keep-alive task; calling twice is a no-op."""
        if self.running:
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        log_info(
            logger,
            "Broadcaster started (heartbeat every %.1fs)",
            self._heartbeat_interval,
        )

    async def stop(self) -> None:
        """Stop the keep-alive task and close every registered subscription."""
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for subscription in tuple(self._subscriptions.values()):
            self.unsubscribe(subscription)
        log_info(logger, "Broadcaster stopped")

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            self.heartbeat()
