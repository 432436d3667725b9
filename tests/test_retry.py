"""Tests for the bounded store-failure retry."""

import pytest

from app.domain.exceptions import PersistenceError, ResourceNotFoundError
from app.services.retry import call_with_retry


class Flaky:
    def __init__(self, failures, error=None):
        self.calls = 0
        self.failures = failures
        self.error = error or PersistenceError("Failed to commit transaction")

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value


class TestCallWithRetry:

    def test_recovers_within_budget(self):
        operation = Flaky(failures=2)
        assert call_with_retry(operation, "ok") == "ok"
        assert operation.calls == 3

    def test_gives_up_after_configured_attempts(self):
        operation = Flaky(failures=5)
        with pytest.raises(PersistenceError):
            call_with_retry(operation, "ok")
        assert operation.calls == 3

    def test_explicit_attempts(self):
        operation = Flaky(failures=1)
        with pytest.raises(PersistenceError):
            call_with_retry(operation, "ok", attempts=1)
        assert operation.calls == 1

    def test_business_errors_are_not_retried(self):
        operation = Flaky(failures=1, error=ResourceNotFoundError("ServiceRequest", 1))
        with pytest.raises(ResourceNotFoundError):
            call_with_retry(operation, "ok")
        assert operation.calls == 1
