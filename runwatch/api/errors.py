"""Falcon error handlers for sync-engine failures.

Configuration and persistence faults are the only failures a trigger caller
ever sees; upstream faults are contained per source and never reach here.

Usage
-----
Register error handlers on the Falcon app::

    from runwatch.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from runwatch.common.time import isoformat_utc, utcnow
from runwatch.errors import (
    ConfigurationError,
    NoSourcesConfiguredError,
    PersistenceError,
)
from runwatch.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    import falcon.asgi
    from falcon.asgi import Request, Response

__all__ = [
    "handle_configuration_error",
    "handle_persistence_error",
    "register_error_handlers",
]

logger = get_logger(__name__)


def _error_media(message: str, ex: Exception) -> dict[str, str]:
    return {
        "message": message,
        "error": str(ex),
        "timestamp": isoformat_utc(utcnow()),
    }


async def handle_configuration_error(
    _req: Request,
    resp: Response,
    ex: ConfigurationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ConfigurationError`` to HTTP 400 for missing sources, else 500.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The configuration fault.
    _params
        URI template parameters (unused).

    """
    log_exception(logger, f"Configuration error: {ex}", ex)
    if isinstance(ex, NoSourcesConfiguredError):
        resp.status = falcon.HTTP_400
    else:
        resp.status = falcon.HTTP_500
    resp.media = _error_media("Sync is not configured", ex)


async def handle_persistence_error(
    _req: Request,
    resp: Response,
    ex: PersistenceError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``PersistenceError`` to an HTTP 500 JSON response."""
    log_exception(logger, f"Persistence error: {ex}", ex)
    resp.status = falcon.HTTP_500
    resp.media = _error_media("Workflow run store unavailable", ex)


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Attach the sync-engine error handlers to ``app``."""
    app.add_error_handler(ConfigurationError, handle_configuration_error)
    app.add_error_handler(PersistenceError, handle_persistence_error)
