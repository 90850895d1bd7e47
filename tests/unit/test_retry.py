"""
Unit tests for the retry policy.
"""

import pytest
from unittest.mock import Mock

from catalog_sync.errors import (
    PermanentTransportError,
    TransientTransportError,
    TransportUnreachable,
)
from catalog_sync.execution.retry import RetryExhausted, RetryPolicy, RetryState, call_with_retry


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_default_backoff_schedule(self):
        """Test the 2s then 4s default schedule."""
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.backoff_for(1) == 2.0
        assert policy.backoff_for(2) == 4.0


class TestCallWithRetry:
    """Test suite for call_with_retry."""

    @pytest.fixture
    def sleep(self):
        return Mock()

    def test_success_first_attempt(self, sleep):
        """Test that a successful call is not retried."""
        operation = Mock(return_value="ok")

        assert call_with_retry(operation, RetryPolicy(), sleep=sleep) == "ok"
        operation.assert_called_once()
        sleep.assert_not_called()

    def test_transient_error_then_success(self, sleep):
        """Test recovery after transient failures."""
        operation = Mock(side_effect=[
            TransientTransportError("503", status_code=503),
            TransportUnreachable("connection reset"),
            "ok",
        ])

        assert call_with_retry(operation, RetryPolicy(), sleep=sleep) == "ok"
        assert operation.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0]

    def test_transient_error_exhausts_attempts(self, sleep):
        """Test that three transient failures exhaust the policy."""
        error = TransientTransportError("502", status_code=502)
        operation = Mock(side_effect=error)

        with pytest.raises(RetryExhausted) as exc_info:
            call_with_retry(operation, RetryPolicy(), sleep=sleep)

        assert exc_info.value.error is error
        assert exc_info.value.attempts == 3
        assert operation.call_count == 3
        assert sleep.call_count == 2

    def test_permanent_error_not_retried(self, sleep):
        """Test that non-retryable statuses fail immediately."""
        operation = Mock(side_effect=PermanentTransportError("404", status_code=404))

        with pytest.raises(RetryExhausted) as exc_info:
            call_with_retry(operation, RetryPolicy(), sleep=sleep)

        assert exc_info.value.attempts == 1
        assert exc_info.value.error.is_not_found
        sleep.assert_not_called()

    def test_unrelated_exceptions_propagate(self, sleep):
        """Test that programming errors are not swallowed."""
        operation = Mock(side_effect=KeyError("boom"))

        with pytest.raises(KeyError):
            call_with_retry(operation, RetryPolicy(), sleep=sleep)

    def test_on_retry_receives_state(self, sleep):
        """Test that the retry hook sees attempt number and error class."""
        states = []
        operation = Mock(side_effect=[TransportUnreachable("timeout"), "ok"])

        call_with_retry(
            operation,
            RetryPolicy(),
            sleep=sleep,
            on_retry=lambda state: states.append((state.attempt, state.last_error_class)),
        )

        assert states == [(1, "TransportUnreachable")]

    def test_single_attempt_policy(self, sleep):
        """Test a policy that never retries."""
        operation = Mock(side_effect=TransientTransportError("503", status_code=503))

        with pytest.raises(RetryExhausted):
            call_with_retry(operation, RetryPolicy(max_attempts=1), sleep=sleep)

        sleep.assert_not_called()

    def test_retry_state_without_error(self):
        """Test RetryState defaults."""
        assert RetryState().last_error_class is None
