"""
Write Pacer

Keeps sustained write throughput under the storefront's call-rate ceiling by
enforcing a minimum interval between the completion of one intent and the
dispatch of the next. Equivalent to a token bucket of capacity 1 refilled
every ``interval_seconds``.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Pacer:
    """Capacity-1 token bucket with injectable clock and sleep."""

    def __init__(
        self,
        interval_seconds: float = 0.55,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the pacer.

        Args:
            interval_seconds: Minimum spacing between intents
            clock: Monotonic clock
            sleep: Sleep function
        """
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_release: Optional[float] = None

    def acquire(self) -> float:
        """
        Block until the next dispatch is allowed.

        Returns:
            Seconds slept
        """
        if self._last_release is None:
            return 0.0

        elapsed = self._clock() - self._last_release
        wait = self.interval_seconds - elapsed
        if wait <= 0:
            return 0.0

        logger.debug(f"Pacing writes: sleeping {wait:.3f}s")
        self._sleep(wait)
        return wait

    def release(self) -> None:
        """Mark the current intent as complete."""
        self._last_release = self._clock()

    def reset(self) -> None:
        self._last_release = None
