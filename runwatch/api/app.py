"""Application factory for the Runwatch Falcon ASGI application.

This module provides ``create_app()`` which builds and configures the
Falcon ASGI application with health endpoints and, when the sync engine is
available, the trigger, read-view and live-event endpoints.

Usage
-----
Create a health-only app (no sync engine)::

    app = create_app()

Create a full app with domain endpoints::

    from runwatch.api.app import AppDependencies, create_app

    deps = AppDependencies(components=components, github_configured=True)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from runwatch.api.errors import register_error_handlers
from runwatch.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from runwatch.factory import SyncComponents

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    components
        Sync engine services. When ``None`` only health endpoints are
        registered.
    github_configured
        Whether a GitHub token is available, reported by ``/ready``.
    middleware
        Extra Falcon middleware, typically the lifecycle middleware that
        starts background tasks.

    """

    components: SyncComponents | None = None
    github_configured: bool = False
    middleware: tuple[object, ...] = ()


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies.  When ``None`` or without
        components, only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    app = falcon.asgi.App(middleware=list(deps.middleware))  # type: ignore[no-matching-overload]  # Falcon stubs

    components = deps.components
    session_factory = components.session_factory if components is not None else None

    # Health endpoints are always available
    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready",
        ReadyResource(session_factory, github_configured=deps.github_configured),
    )

    if components is not None:
        _add_domain_routes(app, components)

    register_error_handlers(app)
    return app


def _add_domain_routes(app: falcon.asgi.App, components: SyncComponents) -> None:
    from runwatch.api.events.resources import EventStreamResource
    from runwatch.api.runs.resources import (
        InitialDataResource,
        OngoingRunsResource,
        WorkflowRunsResource,
    )
    from runwatch.api.sync.resources import (
        CronTriggerResource,
        RefreshResource,
        UpdateRunsResource,
    )

    scheduler = components.scheduler
    app.add_route("/api/refresh-data", RefreshResource(scheduler))
    app.add_route("/api/update-workflow-runs", UpdateRunsResource(scheduler))
    app.add_route(
        "/api/cron/update-workflows",
        CronTriggerResource(scheduler, components.config.cron_secret),
    )
    app.add_route("/api/events", EventStreamResource(components.broadcaster))
    app.add_route("/api/workflow-runs", WorkflowRunsResource(components.views))
    app.add_route("/api/initial-data", InitialDataResource(components.views))
    app.add_route("/api/ongoing-runs", OngoingRunsResource(components.views))
