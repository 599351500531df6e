"""Health probe resources for liveness and readiness checks.

``/health`` is stateless and always registered. ``/ready`` checks the
workflow-run store and whether a GitHub credential is configured, reporting
``degraded`` with HTTP 207 when either is unavailable.

Usage
-----
Register health endpoints on the Falcon app::

    from runwatch.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(session_factory, github_configured=True))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from runwatch.common.time import isoformat_utc, utcnow
from runwatch.errors import PersistenceError
from runwatch.logging import get_logger, log_warning
from runwatch.store import ping

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["HealthResource", "ReadyResource"]

logger = get_logger(__name__)


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``.

    Always responds with HTTP 200 to indicate the process is alive.
    No parameters or request body are expected.

    """

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with liveness status.

        """
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting the state of the store and GitHub access.

    Parameters
    ----------
    session_factory
        Session factory for the workflow-run store. ``None`` reports the
        database as ``unconfigured``.
    github_configured
        Whether a GitHub token was supplied to the runtime.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        github_configured: bool = False,
    ) -> None:
        """Bind the probe to the services it checks."""
        self._session_factory = session_factory
        self._github_configured = github_configured

    async def _database_status(self) -> str:
        if self._session_factory is None:
            return "unconfigured"
        try:
            await ping(self._session_factory)
        except PersistenceError as exc:
            log_warning(logger, "Readiness database check failed: %s", exc)
            return "disconnected"
        return "connected"

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with per-service readiness.

        """
        database = await self._database_status()
        github = "configured" if self._github_configured else "missing"
        healthy = database == "connected" and self._github_configured
        resp.media = {
            "status": "ok" if healthy else "degraded",
            "timestamp": isoformat_utc(utcnow()),
            "services": {"database": database, "github": github},
        }
        resp.status = HTTPStatus.OK if healthy else HTTPStatus.MULTI_STATUS
