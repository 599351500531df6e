"""Fake sync components for Falcon route tests."""

from __future__ import annotations

import typing as typ
from unittest import mock

from runwatch.broadcast import Broadcaster
from runwatch.config import RunwatchConfig
from runwatch.factory import SyncComponents
from runwatch.models import ActiveRun, SourceState
from tests.unit.sync_test_helpers import make_run

LAST_UPDATED = "2099-01-01T00:00:00.000Z"


def sample_states() -> list[SourceState]:
    """Return two stored states, one with an in-progress run."""
    return [
        SourceState(
            repo="acme/app",
            runs=[make_run(9, status="in_progress", conclusion=None)],
            last_updated=LAST_UPDATED,
        ),
        SourceState(repo="octo/reef", runs=[], last_updated=LAST_UPDATED),
    ]


def session_factory_mock(*, execute_error: Exception | None = None) -> mock.MagicMock:
    """Build a session factory whose sessions answer (or fail) ``SELECT 1``."""
    session = mock.MagicMock()
    session.execute = mock.AsyncMock(side_effect=execute_error)
    factory = mock.MagicMock()
    factory.return_value.__aenter__ = mock.AsyncMock(return_value=session)
    factory.return_value.__aexit__ = mock.AsyncMock(return_value=False)
    return factory


def fake_components(
    *,
    cron_secret: str | None = None,
    trigger_error: Exception | None = None,
    session_factory: mock.MagicMock | None = None,
) -> SyncComponents:
    """Build components whose scheduler and views return canned states."""
    states = sample_states()
    scheduler = mock.MagicMock()
    scheduler.trigger_now = mock.AsyncMock(
        return_value=states, side_effect=trigger_error
    )
    views = mock.MagicMock()
    views.snapshot = mock.AsyncMock(return_value=states)
    views.active_runs = mock.AsyncMock(
        return_value=[ActiveRun.from_run("acme/app", states[0].runs[0])]
    )
    return SyncComponents(
        config=RunwatchConfig(
            repositories=("acme/app", "octo/reef"), cron_secret=cron_secret
        ),
        session_factory=typ.cast("typ.Any", session_factory or session_factory_mock()),
        broadcaster=Broadcaster(),
        cycle=mock.MagicMock(),
        scheduler=scheduler,
        views=views,
    )
