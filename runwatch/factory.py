"""Assemble the sync engine from a session factory and configuration.

Usage
-----
Build the components once per process::

    from runwatch.factory import build_sync_components

    components = build_sync_components(session_factory, config, client)
    await components.scheduler.trigger_now()

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from runwatch.broadcast import Broadcaster
from runwatch.store import CacheMetadataStore, StateStore
from runwatch.sync import SyncCycle, SyncEventLogger, SyncScheduler, WorkflowRunFetcher
from runwatch.views import WorkflowRunViews

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from runwatch.config import RunwatchConfig
    from runwatch.github import WorkflowRunsClient

__all__ = ["SyncComponents", "build_sync_components"]


@dc.dataclass(frozen=True, slots=True)
class SyncComponents:
    """Singly-owned engine services shared by the runtime, API and CLI."""

    config: RunwatchConfig
    session_factory: async_sessionmaker[AsyncSession]
    broadcaster: Broadcaster
    cycle: SyncCycle
    scheduler: SyncScheduler
    views: WorkflowRunViews


def build_sync_components(
    session_factory: async_sessionmaker[AsyncSession],
    config: RunwatchConfig,
    client: WorkflowRunsClient,
    *,
    broadcaster: Broadcaster | None = None,
) -> SyncComponents:
    """Build stores, fetcher, cycle, scheduler and views around ``client``.

    Parameters
    ----------
    session_factory
        Async session factory for both stores.
    config
        Runtime configuration supplying the build limit, heartbeat period and
        tracked sources.
    client
        GitHub client used for conditional run retrieval.
    broadcaster
        Optional pre-built broadcaster; one is created from ``config`` when
        omitted.

    """
    state_store = StateStore(session_factory)
    event_logger = SyncEventLogger()
    fetcher = WorkflowRunFetcher(
        client,
        state_store,
        CacheMetadataStore(session_factory),
        build_limit=config.build_limit,
        event_logger=event_logger,
    )
    resolved_broadcaster = broadcaster or Broadcaster(
        heartbeat_interval=config.heartbeat_interval_s
    )
    cycle = SyncCycle(fetcher, resolved_broadcaster, event_logger=event_logger)
    return SyncComponents(
        config=config,
        session_factory=session_factory,
        broadcaster=resolved_broadcaster,
        cycle=cycle,
        scheduler=SyncScheduler(cycle, config.require_repositories),
        views=WorkflowRunViews(state_store),
    )
