"""Runtime entrypoint for the Runwatch ASGI service.

This module delegates app construction to ``runwatch.api.app.create_app``
while keeping the ``runwatch.runtime:create_app`` Granian entrypoint stable.

The runtime always builds the sync engine (storage, GitHub client,
broadcaster, cycle, scheduler) so the app exposes the trigger, view and
live-event endpoints. Without ``RUNWATCH_GITHUB_TOKEN`` the stored runs are
still served, the scheduler stays off, triggers fail with a configuration
error and ``/ready`` reports the missing credential.

Configuration is driven by environment variables:

- ``RUNWATCH_HOST``: Bind address (default ``0.0.0.0``)
- ``RUNWATCH_PORT``: Listen port (default ``8080``)
- ``RUNWATCH_LOG_LEVEL``: Log level (default ``INFO``)
- ``RUNWATCH_DATABASE_URL``: Database connection URL (default
  ``sqlite+aiosqlite:///runwatch.db``)

Sync settings (``RUNWATCH_GITHUB_*``, ``RUNWATCH_BUILD_LIMIT`` and friends)
are read by :class:`runwatch.config.RunwatchConfig`.

Run the service directly with ``python -m runwatch.runtime``.
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from runwatch.errors import ConfigurationError
from runwatch.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

T = typ.TypeVar("T")

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///runwatch.db"

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        # Use error() not exception() - validation failures need no traceback
        log_error(
            logger,
            "Invalid RUNWATCH_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _load_or_exit(loader: cabc.Callable[[], T]) -> T:
    """Run a configuration loader, exiting on invalid settings."""
    try:
        return loader()
    except ConfigurationError as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application. Background tasks start when the
        ASGI server sends the lifespan startup event.

    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from runwatch.api.app import AppDependencies
    from runwatch.api.app import create_app as _create_api_app
    from runwatch.api.lifecycle import LifecycleMiddleware
    from runwatch.config import RunwatchConfig
    from runwatch.factory import build_sync_components
    from runwatch.github import (
        GitHubRestClient,
        GitHubRestConfig,
        UnconfiguredGitHubClient,
    )

    config = _load_or_exit(RunwatchConfig.from_env)

    github_configured = bool(os.environ.get("RUNWATCH_GITHUB_TOKEN", "").strip())
    client: GitHubRestClient | UnconfiguredGitHubClient
    if github_configured:
        client = GitHubRestClient(_load_or_exit(GitHubRestConfig.from_env))
    else:
        log_warning(
            logger,
            "RUNWATCH_GITHUB_TOKEN is not set; serving stored runs only and "
            "failing sync triggers",
        )
        client = UnconfiguredGitHubClient()
        config = dc.replace(config, scheduler_enabled=False)

    database_url = os.environ.get("RUNWATCH_DATABASE_URL", _DEFAULT_DATABASE_URL)
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    components = build_sync_components(session_factory, config, client)

    deps = AppDependencies(
        components=components,
        github_configured=github_configured,
        middleware=(LifecycleMiddleware(components, engine=engine, client=client),),
    )
    log_info(
        logger,
        "Tracking %d repositories (build limit %d)",
        len(config.repositories),
        config.build_limit,
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the Runwatch runtime server using Granian.

    Reads ``RUNWATCH_HOST``, ``RUNWATCH_PORT``, and ``RUNWATCH_LOG_LEVEL``
    from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("RUNWATCH_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port_str = os.environ.get("RUNWATCH_PORT", "8080")
    port = _parse_port(port_str)
    log_level_str = os.environ.get("RUNWATCH_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid RUNWATCH_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Runwatch runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "runwatch.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
