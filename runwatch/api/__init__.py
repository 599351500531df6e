"""Runwatch HTTP API layer.

This package provides the Falcon ASGI application for the sync triggers,
the read-only workflow-run views, the live event stream and the health
probes.

Usage
-----
Create and run the application::

    from runwatch.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full mode with sync endpoints

"""

from runwatch.api.app import create_app

__all__ = ["create_app"]
