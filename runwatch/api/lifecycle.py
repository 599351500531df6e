"""ASGI lifespan middleware owning the sync engine's background tasks.

The heartbeat and scheduler tasks must run on the server's event loop, so
they are started from ``process_startup`` rather than when the app is built.

Usage
-----
Register the middleware when creating the Falcon app::

    lifecycle = LifecycleMiddleware(components, engine=engine, client=client)
    app = falcon.asgi.App(middleware=[lifecycle])

"""

from __future__ import annotations

import typing as typ

from runwatch.logging import get_logger, log_info, log_warning
from runwatch.store import init_storage

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from runwatch.factory import SyncComponents
    from runwatch.github import GitHubRestClient, UnconfiguredGitHubClient

__all__ = ["LifecycleMiddleware"]

logger = get_logger(__name__)


class LifecycleMiddleware:
    """Start and stop the broadcaster and scheduler with the ASGI server.

    Parameters
    ----------
    components
        Engine services built for this process.
    engine
        Database engine to initialise on startup and dispose on shutdown.
        ``None`` leaves schema management to the caller.
    client
        GitHub client closed on shutdown when owned by the runtime.

    """

    def __init__(
        self,
        components: SyncComponents,
        *,
        engine: AsyncEngine | None = None,
        client: GitHubRestClient | UnconfiguredGitHubClient | None = None,
    ) -> None:
        """Bind the middleware to the resources it manages."""
        self._components = components
        self._engine = engine
        self._client = client

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Initialise storage, then start the heartbeat and the timer."""
        if self._engine is not None:
            await init_storage(self._engine)
        self._components.broadcaster.start()

        config = self._components.config
        if not config.scheduler_enabled:
            log_info(logger, "Scheduled sync disabled; manual triggers only")
            return
        if not config.repositories:
            log_warning(
                logger, "No repositories configured; scheduled sync not started"
            )
            return
        self._components.scheduler.start(config.sync_interval_s)

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop background tasks and release network and database resources."""
        await self._components.scheduler.stop()
        await self._components.broadcaster.stop()
        if self._client is not None:
            await self._client.aclose()
        if self._engine is not None:
            await self._engine.dispose()
