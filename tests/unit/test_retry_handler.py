"""Unit tests for retry handler with exponential backoff."""

import pytest
from unittest.mock import Mock

from magento_woowup.exceptions import (
    PermanentRemoteFault,
    SessionExpiredFault,
    TransientRemoteFault,
)
from magento_woowup.fetcher.retry_handler import RetryHandler, calculate_backoff_delay
from magento_woowup.models.data_models import RetryPolicy


class TestBackoffCalculation:
    """Test exponential backoff formula: base ** attempt."""

    def test_first_retry_waits_base(self):
        assert calculate_backoff_delay(1) == 2.0

    def test_delay_grows_exponentially(self):
        assert [calculate_backoff_delay(k, base=2.0) for k in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_custom_base(self):
        assert calculate_backoff_delay(2, base=3.0) == 9.0


class TestRetryPolicy:

    def test_filtered_policy_matches_pattern(self):
        policy = RetryPolicy.filtered("not exists.")
        assert policy.should_retry(TransientRemoteFault("Product not exists."))
        assert not policy.should_retry(TransientRemoteFault("Internal error"))

    def test_unconditional_policy_retries_everything(self):
        policy = RetryPolicy.unconditional()
        assert policy.should_retry(TransientRemoteFault("Internal error"))


class TestRetryHandler:

    def test_success_on_first_attempt(self):
        sleeps = []
        handler = RetryHandler(RetryPolicy.unconditional(), sleep=sleeps.append)
        func = Mock(return_value="ok")

        assert handler.execute(func, "a", key="b") == "ok"
        func.assert_called_once_with("a", key="b")
        assert sleeps == []

    def test_sleeps_base_pow_k_before_attempt_k_plus_one(self):
        sleeps = []
        handler = RetryHandler(RetryPolicy.unconditional(base=2.0, max_attempts=4), sleep=sleeps.append)
        func = Mock(side_effect=[
            TransientRemoteFault("boom"),
            TransientRemoteFault("boom"),
            "ok",
        ])

        assert handler.execute(func) == "ok"
        assert func.call_count == 3
        assert sleeps == [2.0, 4.0]

    def test_exhausted_attempts_reraise_last_fault(self):
        sleeps = []
        handler = RetryHandler(RetryPolicy.unconditional(max_attempts=3), sleep=sleeps.append)
        func = Mock(side_effect=TransientRemoteFault("still down"))

        with pytest.raises(TransientRemoteFault, match="still down"):
            handler.execute(func)

        assert func.call_count == 3
        assert sleeps == [2.0, 4.0]

    def test_filtered_policy_does_not_retry_other_faults(self):
        sleeps = []
        handler = RetryHandler(RetryPolicy.filtered("not exists."), sleep=sleeps.append)
        func = Mock(side_effect=TransientRemoteFault("Internal error"))

        with pytest.raises(TransientRemoteFault):
            handler.execute(func)

        func.assert_called_once()
        assert sleeps == []

    def test_filtered_policy_retries_matching_fault(self):
        sleeps = []
        handler = RetryHandler(RetryPolicy.filtered("not exists."), sleep=sleeps.append)
        func = Mock(side_effect=[TransientRemoteFault("Customer not exists."), {"id": 1}])

        assert handler.execute(func) == {"id": 1}
        assert sleeps == [2.0]

    def test_permanent_fault_is_never_retried(self):
        handler = RetryHandler(RetryPolicy.unconditional(), sleep=Mock())
        func = Mock(side_effect=PermanentRemoteFault("Access denied.", "2"))

        with pytest.raises(PermanentRemoteFault):
            handler.execute(func)
        func.assert_called_once()

    def test_session_expired_is_left_to_the_gateway(self):
        handler = RetryHandler(RetryPolicy.unconditional(), sleep=Mock())
        func = Mock(side_effect=SessionExpiredFault("Session expired.", "5"))

        with pytest.raises(SessionExpiredFault):
            handler.execute(func)
        func.assert_called_once()

    def test_non_remote_errors_propagate_immediately(self):
        handler = RetryHandler(RetryPolicy.unconditional(), sleep=Mock())
        func = Mock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            handler.execute(func)
        func.assert_called_once()

    def test_retry_is_logged(self):
        logger = Mock()
        handler = RetryHandler(RetryPolicy.unconditional(), sleep=Mock(), logger=logger)
        func = Mock(side_effect=[TransientRemoteFault("boom"), "ok"])

        handler.execute(func, operation="order.list")

        logger.retry_scheduled.assert_called_once_with(
            operation="order.list", attempt=1, delay=2.0, error="boom"
        )

    def test_default_policy_is_filtered(self):
        handler = RetryHandler()
        assert not handler.is_retryable(TransientRemoteFault("Internal error"))
        assert handler.is_retryable(TransientRemoteFault("Order not exists."))
