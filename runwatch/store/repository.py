"""Keyed access to the state and cache-metadata stores.

Both stores are keyed by the tracked-source identifier. Every SQLAlchemy
failure is re-raised as :class:`runwatch.errors.PersistenceError` so callers
can tell store outages apart from upstream faults.
"""

from __future__ import annotations

import contextlib
import dataclasses
import typing as typ

import msgspec
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from runwatch.common.time import isoformat_utc, utcnow
from runwatch.errors import PersistenceError
from runwatch.github.models import RunRecord
from runwatch.models import SourceState

from .storage import CacheMetadataRecord, WorkflowStateRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]


@contextlib.contextmanager
def _store_errors(operation: str, source: str | None = None) -> cabc.Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(operation, source) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class StoredState:
    """A persisted source state together with its change signature."""

    state: SourceState
    signature: str


@dataclasses.dataclass(frozen=True, slots=True)
class CacheMetadata:
    """Cache validator recorded for a source."""

    source: str
    validator: str
    checked_at: dt.datetime


def _state_from_record(record: WorkflowStateRecord) -> SourceState:
    return SourceState(
        repo=record.source,
        runs=msgspec.convert(record.runs, list[RunRecord]),
        last_updated=isoformat_utc(record.last_updated),
    )


class StateStore:
    """Read and replace mirrored run histories."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the store to an async session factory."""
        self._session_factory = session_factory

    async def get(self, source: str) -> StoredState | None:
        """Return the stored state for ``source``, or None if never synced."""
        with _store_errors("state.get", source):
            async with self._session_factory() as session:
                record = await session.scalar(
                    select(WorkflowStateRecord).where(
                        WorkflowStateRecord.source == source
                    )
                )
                if record is None:
                    return None
                return StoredState(
                    state=_state_from_record(record), signature=record.signature
                )

    async def replace(
        self, source: str, runs: cabc.Sequence[RunRecord], *, signature: str
    ) -> SourceState:
        """Replace the whole run list for ``source`` and return the new state."""
        now = utcnow()
        payload = msgspec.to_builtins(list(runs))
        with _store_errors("state.replace", source):
            try:
                await self._upsert(source, payload, signature, now)
            except IntegrityError:
                # A concurrent first write for the same source won the insert.
                await self._upsert(source, payload, signature, now)
        return SourceState(
            repo=source, runs=list(runs), last_updated=isoformat_utc(now)
        )

    async def _upsert(
        self,
        source: str,
        payload: list[dict[str, typ.Any]],
        signature: str,
        now: dt.datetime,
    ) -> None:
        async with self._session_factory() as session, session.begin():
            record = await session.scalar(
                select(WorkflowStateRecord).where(WorkflowStateRecord.source == source)
            )
            if record is None:
                session.add(
                    WorkflowStateRecord(
                        source=source,
                        runs=payload,
                        signature=signature,
                        last_updated=now,
                    )
                )
                return
            record.runs = payload
            record.signature = signature
            record.last_updated = now

    async def list_all(self) -> list[SourceState]:
        """Return every stored state ordered by source."""
        with _store_errors("state.list_all"):
            async with self._session_factory() as session:
                records = (
                    await session.scalars(
                        select(WorkflowStateRecord).order_by(WorkflowStateRecord.source)
                    )
                ).all()
                return [_state_from_record(record) for record in records]


class CacheMetadataStore:
    """Read and write per-source cache validators."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the store to an async session factory."""
        self._session_factory = session_factory

    async def get(self, source: str) -> CacheMetadata | None:
        """Return the recorded validator for ``source``, if any."""
        with _store_errors("cache.get", source):
            async with self._session_factory() as session:
                record = await session.scalar(
                    select(CacheMetadataRecord).where(
                        CacheMetadataRecord.source == source
                    )
                )
                if record is None:
                    return None
                return CacheMetadata(
                    source=record.source,
                    validator=record.validator,
                    checked_at=record.checked_at,
                )

    async def put(self, source: str, validator: str) -> None:
        """Record ``validator`` for ``source`` and stamp the check time."""
        with _store_errors("cache.put", source):
            try:
                await self._upsert(source, validator)
            except IntegrityError:
                await self._upsert(source, validator)

    async def _upsert(self, source: str, validator: str) -> None:
        async with self._session_factory() as session, session.begin():
            record = await session.scalar(
                select(CacheMetadataRecord).where(CacheMetadataRecord.source == source)
            )
            if record is None:
                session.add(
                    CacheMetadataRecord(
                        source=source, validator=validator, checked_at=utcnow()
                    )
                )
                return
            record.validator = validator
            record.checked_at = utcnow()


async def ping(session_factory: SessionFactory) -> None:
    """Run a trivial query to confirm the store is reachable."""
    with _store_errors("ping"):
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
