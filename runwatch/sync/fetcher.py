"""Conditional fetch, diff and persist for a single tracked source.

The fetcher sends the stored ETag as a precondition, short-circuits on
``304 Not Modified``, and otherwise compares a canonical signature of the new
run list against the stored one. Only a differing signature replaces the
stored state and yields a :class:`~runwatch.models.ChangeEvent`.

Upstream faults never reach the stores: the caller receives an empty
placeholder state while the last-known-good history stays visible to every
other reader.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from runwatch.common.time import isoformat_utc, utcnow
from runwatch.github.errors import GitHubTransportError
from runwatch.models import ChangeEvent, SourceState, runs_signature

from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    from runwatch.github.client import WorkflowRunsClient
    from runwatch.store import CacheMetadataStore, StateStore

_DEFAULT_BUILD_LIMIT = 5


@dataclasses.dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of syncing one source.

    ``event`` is set only when the stored state was replaced. ``failed``
    marks a placeholder returned after an upstream fault.
    """

    state: SourceState
    event: ChangeEvent | None = None
    failed: bool = False

    @property
    def changed(self) -> bool:
        """Return True when this outcome carries a change event."""
        return self.event is not None


def placeholder_state(source: str) -> SourceState:
    """Return the transient empty state handed back after an upstream fault."""
    return SourceState(repo=source, runs=[], last_updated=isoformat_utc(utcnow()))


class WorkflowRunFetcher:
    """Fetch recent runs for a source and persist genuine changes."""

    def __init__(
        self,
        client: WorkflowRunsClient,
        state_store: StateStore,
        cache_store: CacheMetadataStore,
        *,
        build_limit: int = _DEFAULT_BUILD_LIMIT,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Bind the fetcher to its client, stores and build limit."""
        if build_limit < 1:
            msg = f"build_limit must be positive, got {build_limit}"
            raise ValueError(msg)
        self._client = client
        self._state_store = state_store
        self._cache_store = cache_store
        self._build_limit = build_limit
        self._event_logger = event_logger or SyncEventLogger()

    @property
    def build_limit(self) -> int:
        """Number of most recent runs mirrored per source."""
        return self._build_limit

    async def sync_one(self, source: str) -> FetchOutcome:
        """Sync ``source`` once.

        Raises
        ------
        PersistenceError
            If either store is unreachable.
        ConfigurationError
            If the client has no usable credential, as with
            :class:`~runwatch.github.UnconfiguredGitHubClient`.

        """
        cached = await self._cache_store.get(source)
        etag = cached.validator if cached is not None else None

        try:
            response = await self._client.fetch_runs(
                source, limit=self._build_limit, etag=etag
            )
            stored = await self._state_store.get(source)
            if response.not_modified and stored is None and etag is not None:
                # The validator outlived its state row; fetch unconditionally.
                response = await self._client.fetch_runs(
                    source, limit=self._build_limit
                )
        except GitHubTransportError as exc:
            self._event_logger.log_source_failed(source, exc)
            return FetchOutcome(state=placeholder_state(source), failed=True)

        if response.not_modified:
            await self._remember_validator(source, response.etag)
            self._event_logger.log_source_not_modified(source)
            state = stored.state if stored is not None else placeholder_state(source)
            return FetchOutcome(state=state)

        runs = list(response.runs[: self._build_limit])
        signature = runs_signature(runs)

        if stored is not None and stored.signature == signature:
            await self._remember_validator(source, response.etag)
            self._event_logger.log_source_unchanged(source)
            return FetchOutcome(state=stored.state)

        state = await self._state_store.replace(source, runs, signature=signature)
        await self._remember_validator(source, response.etag)
        self._event_logger.log_source_changed(source, len(runs))
        return FetchOutcome(state=state, event=ChangeEvent.from_state(state))

    async def _remember_validator(self, source: str, etag: str | None) -> None:
        """Persist the upstream validator when one was supplied.

        An echoed, unchanged validator is still written so ``checked_at``
        reflects the latest successful check.
        """
        if etag is not None:
            await self._cache_store.put(source, etag)
