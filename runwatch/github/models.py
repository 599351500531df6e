"""Typed domain models for mirrored workflow runs."""

from __future__ import annotations

import dataclasses
import typing as typ

import msgspec


class RunRecord(msgspec.Struct, kw_only=True, frozen=True):
    """One workflow run as reported by GitHub.

    Field order is part of the canonical encoding used for change detection,
    so new fields must be appended rather than inserted.

    Attributes
    ----------
    id : int
        GitHub-assigned run identifier, unique within a repository.
    name : str | None
        Workflow name.
    status : str | None
        ``queued``, ``in_progress`` or ``completed`` (passed through as-is).
    conclusion : str | None
        Outcome once ``status`` is ``completed``.
    html_url : str | None
        Link to the run in the GitHub UI.
    created_at : str | None
        Upstream creation timestamp.
    updated_at : str | None
        Upstream last-update timestamp.

    """

    id: int
    name: str | None = None
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WorkflowRunsPayload(msgspec.Struct, kw_only=True):
    """Subset of the ``GET /repos/{owner}/{repo}/actions/runs`` body we read."""

    workflow_runs: list[RunRecord]
    total_count: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class WorkflowRunsResponse:
    """Outcome of a conditional workflow-run request.

    ``not_modified`` responses carry no runs; ``etag`` holds the validator
    returned by GitHub, if any.
    """

    not_modified: bool
    runs: tuple[RunRecord, ...] = ()
    etag: str | None = None

    @classmethod
    def unchanged(cls, etag: str | None) -> WorkflowRunsResponse:
        """Build a response for a ``304 Not Modified`` reply."""
        return cls(not_modified=True, etag=etag)

    @classmethod
    def changed(
        cls, runs: typ.Iterable[RunRecord], etag: str | None
    ) -> WorkflowRunsResponse:
        """Build a response carrying a fresh run list."""
        return cls(not_modified=False, runs=tuple(runs), etag=etag)
