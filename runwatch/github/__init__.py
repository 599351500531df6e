"""GitHub workflow-run client primitives."""

from __future__ import annotations

from .client import (
    GitHubRestClient,
    GitHubRestConfig,
    UnconfiguredGitHubClient,
    WorkflowRunsClient,
)
from .errors import GitHubConfigError, GitHubResponseShapeError, GitHubTransportError
from .models import RunRecord, WorkflowRunsPayload, WorkflowRunsResponse

__all__ = [
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "GitHubTransportError",
    "RunRecord",
    "UnconfiguredGitHubClient",
    "WorkflowRunsClient",
    "WorkflowRunsPayload",
    "WorkflowRunsResponse",
]
