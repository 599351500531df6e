"""Trigger resources that run a sync cycle and return its results.

``POST /api/refresh-data`` and ``POST /api/update-workflow-runs`` are manual
triggers. ``POST /api/cron/update-workflows`` is the scheduled trigger and
requires the shared cron secret as a bearer credential.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/api/refresh-data", RefreshResource(scheduler))
    app.add_route("/api/cron/update-workflows", CronTriggerResource(scheduler, secret))

"""

from __future__ import annotations

import secrets
import typing as typ

import falcon
import msgspec

from runwatch.common.time import isoformat_utc, utcnow
from runwatch.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from runwatch.sync import SyncScheduler

__all__ = ["CronTriggerResource", "RefreshResource", "UpdateRunsResource"]

logger = get_logger(__name__)


class RefreshResource:
    """Manual refresh returning ``{message, data, timestamp}``."""

    def __init__(self, scheduler: SyncScheduler) -> None:
        """Bind the resource to the scheduler it triggers."""
        self._scheduler = scheduler

    async def on_post(self, _req: Request, resp: Response) -> None:
        """Run a cycle now and return every source's state."""
        states = await self._scheduler.trigger_now()
        resp.media = {
            "message": "Data refreshed successfully",
            "data": msgspec.to_builtins(states),
            "timestamp": isoformat_utc(utcnow()),
        }
        resp.status = falcon.HTTP_200


class UpdateRunsResource:
    """Manual trigger returning the bare result list."""

    def __init__(self, scheduler: SyncScheduler) -> None:
        """Bind the resource to the scheduler it triggers."""
        self._scheduler = scheduler

    async def on_post(self, _req: Request, resp: Response) -> None:
        """Run a cycle now and return the list of source states."""
        states = await self._scheduler.trigger_now()
        resp.media = msgspec.to_builtins(states)
        resp.status = falcon.HTTP_200


class CronTriggerResource:
    """Scheduled trigger guarded by a shared bearer secret.

    With no secret configured every request is rejected.
    """

    def __init__(self, scheduler: SyncScheduler, secret: str | None) -> None:
        """Bind the resource to the scheduler and the expected secret."""
        self._scheduler = scheduler
        self._secret = secret

    def _authorized(self, req: Request) -> bool:
        if self._secret is None:
            return False
        supplied = req.get_header("Authorization") or ""
        return secrets.compare_digest(supplied, f"Bearer {self._secret}")

    async def on_post(self, req: Request, resp: Response) -> None:
        """Run a cycle when the bearer credential matches."""
        if not self._authorized(req):
            log_warning(logger, "Unauthorized scheduled trigger attempt")
            resp.status = falcon.HTTP_401
            resp.media = {"message": "Unauthorized"}
            return

        states = await self._scheduler.trigger_now()
        refreshed = sum(1 for state in states if state.runs)
        log_info(
            logger,
            "Scheduled sync completed: %d/%d sources with runs",
            refreshed,
            len(states),
        )
        resp.media = {
            "message": "GitHub data fetch completed",
            "results": msgspec.to_builtins(states),
            "timestamp": isoformat_utc(utcnow()),
        }
        resp.status = falcon.HTTP_200
