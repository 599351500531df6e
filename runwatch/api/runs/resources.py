"""Read-only views over the mirrored workflow runs.

None of these resources trigger a sync; they report the state persisted by
the last successful cycle.
"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from runwatch.views import WorkflowRunViews

__all__ = ["InitialDataResource", "OngoingRunsResource", "WorkflowRunsResource"]

_NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class WorkflowRunsResource:
    """``GET /api/workflow-runs``: every stored source state."""

    def __init__(self, views: WorkflowRunViews) -> None:
        """Bind the resource to the read views."""
        self._views = views

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Return the full snapshot."""
        resp.media = msgspec.to_builtins(await self._views.snapshot())
        resp.status = falcon.HTTP_200


class InitialDataResource(WorkflowRunsResource):
    """``GET /api/initial-data``: the snapshot, never cached by intermediaries."""

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return the full snapshot with no-store cache headers."""
        resp.set_headers(_NO_STORE_HEADERS)
        await super().on_get(req, resp)


class OngoingRunsResource:
    """``GET /api/ongoing-runs``: queued and in-progress runs, tagged by repo."""

    def __init__(self, views: WorkflowRunViews) -> None:
        """Bind the resource to the read views."""
        self._views = views

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Return the flattened active-run list."""
        resp.media = msgspec.to_builtins(await self._views.active_runs())
        resp.status = falcon.HTTP_200
