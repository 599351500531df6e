"""Structured log events for sync cycles and per-source fetches.

Every event is a single line of the form ``[event.type] key=value ...`` so log
aggregators can parse cycle throughput and per-source failures without a
metrics backend.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import typing as typ

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from runwatch.errors import ConfigurationError, PersistenceError
from runwatch.github.errors import GitHubResponseShapeError, GitHubTransportError

if typ.TYPE_CHECKING:
    import datetime as dt

logger = logging.getLogger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync observability."""

    CYCLE_STARTED = "sync.cycle.started"
    CYCLE_COMPLETED = "sync.cycle.completed"
    CYCLE_FAILED = "sync.cycle.failed"
    SOURCE_CHANGED = "sync.source.changed"
    SOURCE_UNCHANGED = "sync.source.unchanged"
    SOURCE_NOT_MODIFIED = "sync.source.not_modified"
    SOURCE_FAILED = "sync.source.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (ConfigurationError, ErrorCategory.CONFIGURATION),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Persistence errors are classified by their underlying SQLAlchemy cause.
    Transport errors without a status code are network failures and count as
    transient, as do 5xx replies; other statuses are client errors.
    """
    if isinstance(exc, PersistenceError):
        cause = exc.__cause__
        return (
            categorize_error(cause)
            if cause is not None
            else ErrorCategory.DATABASE_ERROR
        )

    if isinstance(exc, GitHubTransportError) and not isinstance(
        exc, GitHubResponseShapeError
    ):
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class CycleSummary:
    """Counts reported when a sync cycle finishes."""

    sources: int
    changed: int
    failed: int


class SyncEventLogger:
    """Emit structured sync events via Python logging.

    Success events are INFO, per-source failures WARNING (they are contained),
    and cycle failures ERROR.
    """

    def log_cycle_started(self, sources: int) -> None:
        """Log the start of a sync cycle."""
        logger.info("[%s] sources=%d", SyncEventType.CYCLE_STARTED, sources)

    def log_cycle_completed(
        self, summary: CycleSummary, duration: dt.timedelta
    ) -> None:
        """Log a completed cycle with per-outcome counts."""
        logger.info(
            "[%s] sources=%d changed=%d failed=%d duration_seconds=%.3f",
            SyncEventType.CYCLE_COMPLETED,
            summary.sources,
            summary.changed,
            summary.failed,
            duration.total_seconds(),
        )

    def log_cycle_failed(self, error: BaseException, duration: dt.timedelta) -> None:
        """Log a cycle aborted by a fatal error."""
        logger.error(
            "[%s] duration_seconds=%.3f error_type=%s error_category=%s "
            "error_message=%s",
            SyncEventType.CYCLE_FAILED,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_source_changed(self, source: str, runs: int) -> None:
        """Log a persisted change for ``source``."""
        logger.info("[%s] repo=%s runs=%d", SyncEventType.SOURCE_CHANGED, source, runs)

    def log_source_unchanged(self, source: str) -> None:
        """Log a fetched payload whose signature matched the stored one."""
        logger.info("[%s] repo=%s", SyncEventType.SOURCE_UNCHANGED, source)

    def log_source_not_modified(self, source: str) -> None:
        """Log a ``304 Not Modified`` short-circuit."""
        logger.info("[%s] repo=%s", SyncEventType.SOURCE_NOT_MODIFIED, source)

    def log_source_failed(self, source: str, error: BaseException) -> None:
        """Log a contained upstream failure for ``source``."""
        logger.warning(
            "[%s] repo=%s error_type=%s error_category=%s error_message=%s",
            SyncEventType.SOURCE_FAILED,
            source,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )
