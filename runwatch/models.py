"""Wire and domain structures shared by the sync engine and its readers."""

from __future__ import annotations

import hashlib
import typing as typ

import msgspec

from runwatch.github.models import RunRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_ACTIVE_STATUSES = frozenset({"in_progress", "queued"})


class SourceState(msgspec.Struct, kw_only=True):
    """Mirrored run history for one tracked source.

    Attributes
    ----------
    repo : str
        Tracked source identifier (``owner/name``).
    runs : list[RunRecord]
        Most-recent-first runs, never longer than the configured build limit.
    last_updated : str
        ISO-8601 UTC timestamp of the last persisted change, serialized as
        ``lastUpdated``.

    """

    repo: str
    runs: list[RunRecord] = msgspec.field(default_factory=list)
    last_updated: str = msgspec.field(name="lastUpdated")


class ChangeEvent(msgspec.Struct, kw_only=True, tag_field="type", tag="repo-update"):
    """Notification that a source's run history was replaced."""

    repo: str
    runs: list[RunRecord]
    last_updated: str = msgspec.field(name="lastUpdated")

    @classmethod
    def from_state(cls, state: SourceState) -> ChangeEvent:
        """Build the event carrying ``state``'s runs verbatim."""
        return cls(repo=state.repo, runs=state.runs, last_updated=state.last_updated)


class ActiveRun(RunRecord, kw_only=True, frozen=True):
    """A queued or in-progress run tagged with its source."""

    repo: str

    @classmethod
    def from_run(cls, repo: str, run: RunRecord) -> ActiveRun:
        """Tag ``run`` with ``repo``."""
        return cls(repo=repo, **msgspec.structs.asdict(run))


def is_active(run: RunRecord) -> bool:
    """Return True when ``run`` has not finished yet."""
    return run.status in _ACTIVE_STATUSES


def runs_signature(runs: cabc.Sequence[RunRecord]) -> str:
    """Return a stable structural signature for a run sequence.

    Struct encoding is field-ordered and deterministic, so equal sequences
    always hash equally.

    >>> runs_signature([]) == runs_signature([])
    True

    """
    return hashlib.sha256(msgspec.json.encode(list(runs))).hexdigest()
