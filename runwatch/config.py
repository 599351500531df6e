"""Configuration for the workflow-run sync engine.

``RunwatchConfig`` collects the knobs shared by the scheduler, the GitHub
client, the broadcaster and the trigger endpoints.

Usage
-----
Create a configuration with defaults:

>>> config = RunwatchConfig(repositories=("octo/reef",))
>>> config.build_limit
5

Or load from environment variables:

>>> import os
>>> os.environ["RUNWATCH_GITHUB_REPOSITORIES"] = "octo/reef, octo/kelp"
>>> RunwatchConfig.from_env().repositories
('octo/reef', 'octo/kelp')

"""

from __future__ import annotations

import dataclasses as dc
import os

from runwatch.common.slug import split_repo_slugs
from runwatch.errors import ConfigurationError, NoSourcesConfiguredError

_DEFAULT_BUILD_LIMIT = 5
_DEFAULT_SYNC_INTERVAL_S = 60.0
_DEFAULT_HEARTBEAT_INTERVAL_S = 15.0

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dc.dataclass(frozen=True, slots=True)
class RunwatchConfig:
    """Runtime configuration for polling and live distribution.

    Attributes
    ----------
    repositories
        Tracked sources in ``owner/name`` form, trimmed and de-duplicated.
    build_limit
        Number of most recent runs mirrored per source.
    sync_interval_s
        Seconds between scheduled sync cycles.
    heartbeat_interval_s
        Seconds between keep-alive frames on live subscriptions.
    cron_secret
        Shared secret expected as a bearer credential on the scheduled-trigger
        endpoint. ``None`` rejects every scheduled-trigger request.
    scheduler_enabled
        Whether the in-process timer runs cycles automatically.

    """

    repositories: tuple[str, ...] = ()
    build_limit: int = _DEFAULT_BUILD_LIMIT
    sync_interval_s: float = _DEFAULT_SYNC_INTERVAL_S
    heartbeat_interval_s: float = _DEFAULT_HEARTBEAT_INTERVAL_S
    cron_secret: str | None = None
    scheduler_enabled: bool = True

    def require_repositories(self) -> tuple[str, ...]:
        """Return the tracked sources or raise when none are configured."""
        if not self.repositories:
            raise NoSourcesConfiguredError()
        return self.repositories

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigurationError.invalid_env(env_var, raw, "an integer") from exc
        if value < 1:
            raise ConfigurationError.invalid_env(env_var, raw, "positive")
        return value

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError.invalid_env(env_var, raw, "a number") from exc
        if value <= 0:
            raise ConfigurationError.invalid_env(env_var, raw, "positive")
        return value

    @staticmethod
    def _parse_bool(env_var: str, *, default: bool) -> bool:
        raw = os.environ.get(env_var, "").strip().lower()
        if not raw:
            return default
        if raw in _TRUTHY:
            return True
        if raw in _FALSY:
            return False
        raise ConfigurationError.invalid_env(env_var, raw, "a boolean")

    @classmethod
    def from_env(cls) -> RunwatchConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``RUNWATCH_GITHUB_REPOSITORIES``: Comma-separated ``owner/name``
          list. May be empty; cycles then fail with a configuration error.
        - ``RUNWATCH_BUILD_LIMIT``: Runs mirrored per source (positive int).
        - ``RUNWATCH_SYNC_INTERVAL_S``: Scheduled cycle period in seconds.
        - ``RUNWATCH_HEARTBEAT_INTERVAL_S``: Keep-alive period in seconds.
        - ``RUNWATCH_CRON_SECRET``: Bearer secret for scheduled triggers.
        - ``RUNWATCH_SCHEDULER_ENABLED``: Toggle for the in-process timer.

        Raises
        ------
        ConfigurationError
            If a numeric or boolean variable holds an invalid value, or a
            repository entry is not an ``owner/name`` slug.

        """
        cron_secret = os.environ.get("RUNWATCH_CRON_SECRET", "").strip() or None
        return cls(
            repositories=split_repo_slugs(
                os.environ.get("RUNWATCH_GITHUB_REPOSITORIES", "")
            ),
            build_limit=cls._parse_positive_int(
                "RUNWATCH_BUILD_LIMIT", _DEFAULT_BUILD_LIMIT
            ),
            sync_interval_s=cls._parse_positive_float(
                "RUNWATCH_SYNC_INTERVAL_S", _DEFAULT_SYNC_INTERVAL_S
            ),
            heartbeat_interval_s=cls._parse_positive_float(
                "RUNWATCH_HEARTBEAT_INTERVAL_S", _DEFAULT_HEARTBEAT_INTERVAL_S
            ),
            cron_secret=cron_secret,
            scheduler_enabled=cls._parse_bool(
                "RUNWATCH_SCHEDULER_ENABLED", default=True
            ),
        )
