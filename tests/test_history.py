"""Tests for the per-user error history stores."""

from datetime import datetime, timedelta

import pytest

from entity_kernel.errors.classifier import ErrorClassifier
from entity_kernel.errors.history import InMemoryErrorHistory, SqliteErrorHistory
from entity_kernel.models.errors import ChatEntityError, ErrorContext, ErrorSeverity, ErrorType


NOW = datetime(2026, 3, 1, 12, 0, 0)


def _make_error(at: datetime, code: str = "NET_001") -> ChatEntityError:
    return ChatEntityError(
        type=ErrorType.NETWORK,
        severity=ErrorSeverity.MEDIUM,
        message="connection reset",
        user_friendly_message="Please try again.",
        code=code,
        context=ErrorContext(timestamp=at),
    )


@pytest.fixture(params=["memory", "sqlite"])
def history(request):
    if request.param == "memory":
        yield InMemoryErrorHistory()
    else:
        store = SqliteErrorHistory(db_path=":memory:")
        yield store
        store.close()


class TestErrorHistory:
    def test_since_filters_by_user_and_time(self, history):
        history.record("u1", _make_error(NOW - timedelta(hours=2)))
        history.record("u1", _make_error(NOW - timedelta(seconds=10)))
        history.record("u2", _make_error(NOW))

        recent = history.since("u1", NOW - timedelta(minutes=1))
        assert len(recent) == 1
        assert recent[0].occurred_at == NOW - timedelta(seconds=10)
        assert recent[0].error_type == "network_error"
        assert history.since("nobody", NOW - timedelta(days=1)) == []

    def test_prune(self, history):
        history.record("u1", _make_error(NOW - timedelta(hours=30)))
        history.record("u1", _make_error(NOW))
        removed = history.prune(NOW - timedelta(hours=24))
        assert removed == 1
        assert history.user_counts() == {"u1": 1}

    def test_user_counts(self, history):
        history.record("u1", _make_error(NOW))
        history.record("u1", _make_error(NOW))
        history.record("u2", _make_error(NOW))
        assert history.user_counts() == {"u1": 2, "u2": 1}

    def test_classifier_escalates_from_shared_history(self, history):
        classifier = ErrorClassifier(history=history)
        for i in range(3):
            history.record("u1", _make_error(NOW - timedelta(seconds=i + 1)))
        error = classifier.classify_parsing_error("please add it now", user_id="u1", current_time=NOW)
        assert error.severity == ErrorSeverity.HIGH


class TestSqliteErrorHistory:
    def test_persists_to_file(self, tmp_path):
        path = str(tmp_path / "errors.db")
        store = SqliteErrorHistory(db_path=path)
        store.record("u1", _make_error(NOW, code="NET_002"))
        store.close()

        reopened = SqliteErrorHistory(db_path=path)
        records = reopened.since("u1", NOW - timedelta(minutes=1))
        reopened.close()
        assert [r.code for r in records] == ["NET_002"]
