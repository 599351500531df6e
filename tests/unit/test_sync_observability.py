"""Unit tests for sync error categorization and structured log events."""

from __future__ import annotations

import datetime as dt
import logging

import pytest
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from runwatch.errors import NoSourcesConfiguredError, PersistenceError
from runwatch.github import (
    GitHubConfigError,
    GitHubResponseShapeError,
    GitHubTransportError,
)
from runwatch.sync import (
    CycleSummary,
    ErrorCategory,
    SyncEventLogger,
    SyncEventType,
    categorize_error,
)

_LOGGER_NAME = "runwatch.sync.observability"


def _persistence_error(cause: Exception | None) -> PersistenceError:
    error = PersistenceError("state.replace", "octo/reef")
    error.__cause__ = cause
    return error


class TestCategorizeError:
    """Tests for error categorization."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (
                GitHubTransportError.http_error("octo/reef", 502),
                ErrorCategory.TRANSIENT,
            ),
            (
                GitHubTransportError.request_failed("octo/reef", "reset"),
                ErrorCategory.TRANSIENT,
            ),
            (
                GitHubTransportError.http_error("octo/reef", 404),
                ErrorCategory.CLIENT_ERROR,
            ),
            (
                GitHubResponseShapeError.invalid("octo/reef", "no runs"),
                ErrorCategory.SCHEMA_DRIFT,
            ),
            (GitHubConfigError.missing_token(), ErrorCategory.CONFIGURATION),
            (NoSourcesConfiguredError(), ErrorCategory.CONFIGURATION),
            (
                OperationalError("SELECT 1", None, Exception("down")),
                ErrorCategory.DATABASE_CONNECTIVITY,
            ),
            (
                InterfaceError("SELECT 1", None, Exception("closed")),
                ErrorCategory.DATABASE_CONNECTIVITY,
            ),
            (
                IntegrityError("INSERT", None, Exception("dup")),
                ErrorCategory.DATABASE_ERROR,
            ),
            (ValueError("surprise"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categorize_error(
        self, exc: BaseException, expected: ErrorCategory
    ) -> None:
        """Each failure family maps to its alerting category."""
        assert categorize_error(exc) == expected

    def test_persistence_error_uses_cause(self) -> None:
        """Store faults are classified by the SQLAlchemy error behind them."""
        cause = OperationalError("SELECT 1", None, Exception("down"))
        assert (
            categorize_error(_persistence_error(cause))
            == ErrorCategory.DATABASE_CONNECTIVITY
        )

    def test_persistence_error_without_cause_is_database_error(self) -> None:
        """A bare store fault still counts as a database error."""
        category = categorize_error(_persistence_error(None))
        assert category == ErrorCategory.DATABASE_ERROR


class TestSyncEventLogger:
    """Structured ``[event.type] key=value`` lines."""

    def test_cycle_completed_reports_counts(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Cycle completion carries the per-outcome counts and duration."""
        with caplog.at_level(logging.INFO, logger=_LOGGER_NAME):
            SyncEventLogger().log_cycle_completed(
                CycleSummary(sources=3, changed=1, failed=1),
                dt.timedelta(seconds=1.5),
            )

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        message = record.getMessage()
        assert message.startswith(f"[{SyncEventType.CYCLE_COMPLETED}]")
        assert "sources=3 changed=1 failed=1 duration_seconds=1.500" in message

    def test_source_failed_is_warning_with_category(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Contained upstream faults log at WARNING with their category."""
        error = GitHubTransportError.http_error("octo/reef", 503)
        with caplog.at_level(logging.INFO, logger=_LOGGER_NAME):
            SyncEventLogger().log_source_failed("octo/reef", error)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        message = record.getMessage()
        assert "repo=octo/reef" in message
        assert "error_type=GitHubTransportError" in message
        assert f"error_category={ErrorCategory.TRANSIENT}" in message

    def test_cycle_failed_is_error_with_exc_info(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Cycle failures log at ERROR with the exception attached."""
        error = PersistenceError("cache.get", "octo/reef")
        with caplog.at_level(logging.INFO, logger=_LOGGER_NAME):
            SyncEventLogger().log_cycle_failed(error, dt.timedelta(seconds=0.25))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info is not None
        assert SyncEventType.CYCLE_FAILED in record.getMessage()

    @pytest.mark.parametrize(
        ("method", "event_type"),
        [
            ("log_source_unchanged", SyncEventType.SOURCE_UNCHANGED),
            ("log_source_not_modified", SyncEventType.SOURCE_NOT_MODIFIED),
        ],
    )
    def test_source_no_op_events(
        self,
        caplog: pytest.LogCaptureFixture,
        method: str,
        event_type: SyncEventType,
    ) -> None:
        """No-op outcomes are distinguishable in the log stream."""
        with caplog.at_level(logging.INFO, logger=_LOGGER_NAME):
            getattr(SyncEventLogger(), method)("octo/reef")

        assert caplog.records[-1].getMessage() == f"[{event_type}] repo=octo/reef"
