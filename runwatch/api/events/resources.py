"""Server-Sent-Events resource streaming change events to browsers.

Each connection is registered with the broadcaster when the server starts
pulling the stream and unregistered when the stream ends, whether the client
went away or the broadcaster shut down. A response that never starts
streaming never registers.
"""

from __future__ import annotations

import typing as typ

from falcon.asgi import SSEvent

from runwatch.broadcast import FrameKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon.asgi import Request, Response

    from runwatch.broadcast import Broadcaster, Frame

__all__ = ["EventStreamResource", "to_sse_event"]

_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}


def to_sse_event(frame: Frame) -> SSEvent:
    """Translate a broadcaster frame into a Falcon SSE event."""
    if frame.kind is FrameKind.DATA:
        return SSEvent(data=frame.body.encode("utf-8"))
    return SSEvent(comment=frame.body)


class EventStreamResource:
    """``GET /api/events``: long-lived stream of change events."""

    def __init__(self, broadcaster: Broadcaster) -> None:
        """Bind the resource to the broadcaster it subscribes to."""
        self._broadcaster = broadcaster

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Stream the frames of a subscription opened on first pull."""
        resp.set_headers(_STREAM_HEADERS)
        resp.sse = self._emit()

    async def _emit(self) -> cabc.AsyncIterator[SSEvent]:
        subscription = self._broadcaster.subscribe()
        try:
            async for frame in subscription.frames():
                yield to_sse_event(frame)
        finally:
            self._broadcaster.unsubscribe(subscription)
