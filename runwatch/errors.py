"""Error taxonomy shared by the sync engine and its HTTP surface."""

from __future__ import annotations


class RunwatchError(Exception):
    """Base class for runwatch failures."""


class ConfigurationError(RunwatchError):
    """Raised when required configuration is absent or malformed.

    Configuration faults are fatal to the operation that hits them and are
    never retried automatically.
    """

    @classmethod
    def missing_env(cls, env_var: str) -> ConfigurationError:
        """Return an error for a required environment variable that is unset."""
        return cls(f"{env_var} is required")

    @classmethod
    def invalid_env(cls, env_var: str, raw: str, expected: str) -> ConfigurationError:
        """Return an error for an environment variable with a bad value."""
        return cls(f"{env_var} must be {expected}, got: {raw!r}")

    @classmethod
    def invalid_source(cls, source: str) -> ConfigurationError:
        """Return an error for a tracked source that is not an owner/name slug."""
        return cls(f"tracked source must be in owner/name format, got: {source!r}")


class NoSourcesConfiguredError(ConfigurationError):
    """Raised when a sync is requested with no tracked sources."""

    def __init__(self) -> None:
        """Use the fixed message surfaced to trigger callers."""
        super().__init__("No repositories configured")


class PersistenceError(RunwatchError):
    """Raised when the state or cache-metadata store cannot be reached.

    A persistence fault aborts the whole sync cycle; no partial result is
    returned.
    """

    def __init__(self, operation: str, source: str | None = None) -> None:
        """Record the failing store operation and optional source."""
        self.operation = operation
        self.source = source
        target = f" for {source}" if source is not None else ""
        super().__init__(f"store operation {operation!r} failed{target}")


class DeliveryFault(RunwatchError):
    """Raised when a frame cannot be written to a live subscription.

    The broadcaster absorbs these; they never reach a caller.
    """

    @classmethod
    def closed(cls, subscription_id: int) -> DeliveryFault:
        """Return a fault for a write to a closed subscription."""
        return cls(f"subscription {subscription_id} is closed")

    @classmethod
    def backlog_full(cls, subscription_id: int) -> DeliveryFault:
        """Return a fault for a subscription whose frame queue is full."""
        return cls(f"subscription {subscription_id} backlog is full")
