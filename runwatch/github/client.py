"""GitHub REST client used by the workflow-run fetcher."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from http import HTTPStatus

import httpx
import msgspec

from .errors import GitHubConfigError, GitHubResponseShapeError, GitHubTransportError
from .models import WorkflowRunsPayload, WorkflowRunsResponse

_DEFAULT_API_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 20.0


class WorkflowRunsClient(typ.Protocol):
    """Interface for conditional retrieval of recent workflow runs."""

    async def fetch_runs(
        self, source: str, *, limit: int, etag: str | None = None
    ) -> WorkflowRunsResponse:
        """Return the ``limit`` most recent runs for ``source``.

        Implementations send ``etag`` as an ``If-None-Match`` precondition and
        raise :class:`GitHubTransportError` for anything other than a 200 or
        304 reply.
        """
        ...


class UnconfiguredGitHubClient:
    """Client used when no GitHub token is configured.

    Every fetch fails with :class:`GitHubConfigError` before any request is
    sent, so triggers surface the missing credential instead of an empty
    result.
    """

    async def fetch_runs(
        self, source: str, *, limit: int, etag: str | None = None
    ) -> WorkflowRunsResponse:
        """Raise the missing-token configuration error."""
        raise GitHubConfigError.missing_token()

    async def aclose(self) -> None:
        """Nothing to release."""


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST API client."""

    token: str
    api_url: str = _DEFAULT_API_URL
    timeout_s: float = _DEFAULT_TIMEOUT_S
    user_agent: str = "runwatch/0.1"

    @classmethod
    def from_env(cls) -> GitHubRestConfig:
        """Build configuration from ``RUNWATCH_GITHUB_*`` variables.

        Raises
        ------
        GitHubConfigError
            If ``RUNWATCH_GITHUB_TOKEN`` is unset or blank, or the timeout is
            not a positive number.

        """
        token = os.environ.get("RUNWATCH_GITHUB_TOKEN", "").strip()
        if not token:
            raise GitHubConfigError.missing_token()
        api_url = os.environ.get("RUNWATCH_GITHUB_API_URL", "").strip()
        raw_timeout = os.environ.get("RUNWATCH_GITHUB_TIMEOUT_S", "").strip()
        timeout_s = _DEFAULT_TIMEOUT_S
        if raw_timeout:
            try:
                timeout_s = float(raw_timeout)
            except ValueError as exc:
                raise GitHubConfigError.invalid_env(
                    "RUNWATCH_GITHUB_TIMEOUT_S", raw_timeout, "a number"
                ) from exc
            if timeout_s <= 0:
                raise GitHubConfigError.invalid_env(
                    "RUNWATCH_GITHUB_TIMEOUT_S", raw_timeout, "positive"
                )
        return cls(
            token=token,
            api_url=api_url or _DEFAULT_API_URL,
            timeout_s=timeout_s,
        )


def _runs_path(source: str) -> str:
    return f"/repos/{source}/actions/runs"


def _decode_runs(source: str, content: bytes) -> WorkflowRunsPayload:
    try:
        return msgspec.json.decode(content, type=WorkflowRunsPayload)
    except msgspec.ValidationError as exc:
        raise GitHubResponseShapeError.invalid(source, str(exc)) from exc
    except msgspec.DecodeError as exc:
        raise GitHubResponseShapeError.invalid(source, "body is not JSON") from exc


class GitHubRestClient:
    """GitHub REST implementation of :class:`WorkflowRunsClient`."""

    def __init__(
        self,
        config: GitHubRestConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_runs(
        self, source: str, *, limit: int, etag: str | None = None
    ) -> WorkflowRunsResponse:
        """Fetch the most recent runs for ``source`` with an optional validator."""
        headers = dict(self._headers)
        if etag is not None:
            headers["If-None-Match"] = etag

        url = f"{self._config.api_url.rstrip('/')}{_runs_path(source)}"
        try:
            response = await self._client.get(
                url, params={"per_page": limit}, headers=headers
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GitHubTransportError.request_failed(source, str(exc)) from exc

        returned_etag = response.headers.get("ETag")
        if response.status_code == HTTPStatus.NOT_MODIFIED:
            return WorkflowRunsResponse.unchanged(returned_etag or etag)
        if response.status_code != HTTPStatus.OK:
            raise GitHubTransportError.http_error(source, response.status_code)

        payload = _decode_runs(source, response.content)
        runs = payload.workflow_runs[:limit]
        return WorkflowRunsResponse.changed(runs, returned_etag)
