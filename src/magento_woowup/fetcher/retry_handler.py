"""Retry handler with bounded exponential backoff."""

import time
from typing import Any, Callable, Optional

from magento_woowup.exceptions import (
    PermanentRemoteFault,
    SessionExpiredFault,
    TransientRemoteFault,
)
from magento_woowup.models.data_models import RetryPolicy


def calculate_backoff_delay(attempt: int, base: float = 2.0) -> float:
    """
    Calculate exponential backoff delay.

    Formula: base ** attempt

    Args:
        attempt: Number of failed attempts so far (1-indexed)
        base: Backoff base

    Returns:
        Delay in seconds
    """
    return base ** attempt


class RetryHandler:
    """
    Handles retry logic with exponential backoff for remote calls.

    Retries on: TransientRemoteFault accepted by the policy's fault filter
    Never retries: PermanentRemoteFault and non-remote exceptions
    Backoff: base ** attempt seconds before the next attempt
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger=None
    ):
        """
        Initialize retry handler.

        Args:
            policy: Retry policy (defaults to the filtered policy)
            sleep: Sleep function, injectable for tests
            logger: Optional structured logger
        """
        self.policy = policy or RetryPolicy.filtered()
        self.sleep = sleep
        self.logger = logger

    def is_retryable(self, error: Exception) -> bool:
        """
        Check if error is retryable.

        Args:
            error: Exception raised by the call

        Returns:
            True if error should be retried
        """
        if isinstance(error, (PermanentRemoteFault, SessionExpiredFault)):
            # retrying with the same token cannot succeed
            return False
        if isinstance(error, TransientRemoteFault):
            return self.policy.should_retry(error)
        return False

    def execute(
        self,
        func: Callable[..., Any],
        *args,
        operation: str = "call",
        **kwargs
    ) -> Any:
        """
        Execute function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments for func
            operation: Name used in retry log events
            **kwargs: Keyword arguments for func

        Returns:
            Result from successful function execution

        Raises:
            RemoteFault: If the fault is not retryable or attempts are exhausted
        """
        attempt = 0

        while True:
            try:
                return func(*args, **kwargs)
            except TransientRemoteFault as e:
                attempt += 1

                if not self.is_retryable(e):
                    raise

                if attempt >= self.policy.max_attempts:
                    # No more attempts left
                    raise

                delay = calculate_backoff_delay(attempt, self.policy.base)

                if self.logger:
                    self.logger.retry_scheduled(
                        operation=operation,
                        attempt=attempt,
                        delay=delay,
                        error=str(e)
                    )

                self.sleep(delay)
