"""GitHub client errors."""

from __future__ import annotations

from runwatch.errors import ConfigurationError, RunwatchError


class GitHubTransportError(RunwatchError):
    """Raised when a workflow-run request fails or returns an unusable status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, source: str, status_code: int) -> GitHubTransportError:
        """Return an error for a status that is neither 200 nor 304."""
        return cls(
            f"GitHub API HTTP {status_code} for {source}", status_code=status_code
        )

    @classmethod
    def request_failed(cls, source: str, reason: str) -> GitHubTransportError:
        """Return an error for a network-level failure."""
        return cls(f"GitHub API request for {source} failed: {reason}")


class GitHubResponseShapeError(GitHubTransportError):
    """Raised when a workflow-run payload is missing expected fields."""

    @classmethod
    def invalid(cls, source: str, detail: str) -> GitHubResponseShapeError:
        """Return an error describing the malformed payload."""
        return cls(f"GitHub API response for {source} is malformed: {detail}")


class GitHubConfigError(ConfigurationError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("RUNWATCH_GITHUB_TOKEN is required for GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")
