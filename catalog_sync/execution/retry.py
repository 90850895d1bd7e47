"""
Retry Policy for Remote Calls

Each remote call is a small state machine: attempt, classify the failure,
back off and try again while the failure is transient and attempts remain.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from catalog_sync.errors import TransientTransportError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with linearly increasing backoff.

    Attributes:
        max_attempts: Total attempts including the first one
        backoff_seconds: Wait after attempt n is ``backoff_seconds * n``
            (2s, then 4s with the defaults)
    """

    max_attempts: int = 3
    backoff_seconds: float = 2.0

    def backoff_for(self, attempt: int) -> float:
        return self.backoff_seconds * attempt


@dataclass
class RetryState:
    """Progress of one call through its retry policy."""

    attempt: int = 0
    last_error: Optional[TransportError] = None

    @property
    def last_error_class(self) -> Optional[str]:
        return type(self.last_error).__name__ if self.last_error else None


class RetryExhausted(Exception):
    """Internal signal carrying the final error and attempt count."""

    def __init__(self, error: TransportError, attempts: int):
        super().__init__(str(error))
        self.error = error
        self.attempts = attempts


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    description: str = "remote call",
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[RetryState], None]] = None,
) -> T:
    """
    Run ``operation`` under ``policy``.

    Only ``TransientTransportError`` is retried. ``PermanentTransportError``
    (authentication, not found, anything else) fails on the first attempt.

    Args:
        operation: Zero-argument callable performing the remote call
        policy: Retry policy
        description: Human-readable name for log messages
        sleep: Sleep function (injectable for tests)
        on_retry: Called with the state before each backoff sleep

    Returns:
        Whatever ``operation`` returns

    Raises:
        RetryExhausted: When the call failed for good
    """
    state = RetryState()

    while True:
        state.attempt += 1
        try:
            return operation()
        except TransientTransportError as e:
            state.last_error = e
            if state.attempt >= policy.max_attempts:
                logger.error(f"{description} failed after {state.attempt} attempts: {e}")
                raise RetryExhausted(e, state.attempt) from e

            wait = policy.backoff_for(state.attempt)
            logger.warning(
                f"{description} attempt {state.attempt} failed ({e}). "
                f"Retrying in {wait:g} seconds..."
            )
            if on_retry is not None:
                on_retry(state)
            sleep(wait)
        except TransportError as e:
            state.last_error = e
            logger.error(f"{description} failed with non-retryable error: {e}")
            raise RetryExhausted(e, state.attempt) from e
