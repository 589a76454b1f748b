"""Leaky-bucket admission control for outgoing requests."""

import threading
import time
from typing import Callable

from .constants import PERIOD_ONE_HOUR_SEC


class LeakyBucketRateLimiter:
    """
    Thread-safe leaky bucket.

    The bucket starts full with ``capacity`` units. Each allowed request takes one
    unit. Units come back at a constant rate of one every
    ``period / (max_events_per_period - capacity)`` seconds, so even a caller who
    drains a full burst every time stays under ``max_events_per_period`` per period.

    Parameters:
        capacity (int): Burst size, the most requests allowed back to back.
        max_events_per_period (int): Sustained ceiling per period.
        period (float): Length of the period in seconds (one hour by default).
        clock (Callable[[], float]): Monotonic time source in seconds.

    Raises:
        ValueError: If capacity is not positive, max_events_per_period is 5 or less,
            or capacity is not strictly below max_events_per_period.
    """

    def __init__(
        self,
        capacity: int,
        max_events_per_period: int,
        period: float = PERIOD_ONE_HOUR_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be greater than 0")
        if max_events_per_period <= 5:
            raise ValueError("max_events_per_period must be greater than 5")
        if capacity >= max_events_per_period:
            raise ValueError("capacity must be less than max_events_per_period")
        if period <= 0:
            raise ValueError("period must be greater than 0")

        self.capacity = capacity
        self.max_events_per_period = max_events_per_period
        self.unit_period = period / (max_events_per_period - capacity)
        self._clock = clock
        self._lock = threading.Lock()
        self._level = capacity
        self._last_refill = clock()

    @property
    def level(self) -> int:
        """Units currently available, without applying pending refills."""
        with self._lock:
            return self._level

    def _refill(self) -> None:
        # Caller holds the lock
        elapsed = self._clock() - self._last_refill
        units = int(elapsed // self.unit_period)
        if units <= 0:
            return
        self._last_refill += units * self.unit_period
        self._level = min(self.capacity, self._level + units)

    def try_consume(self) -> bool:
        """
        Take one unit from the bucket if one is available.

        Returns:
            bool: True when the request may be sent now, False when it must not be sent.
            A denial is not queued or retried.
        """
        with self._lock:
            self._refill()
            if self._level > 0:
                self._level -= 1
                return True
            return False

    def __repr__(self):
        return (
            f"LeakyBucketRateLimiter(capacity={self.capacity}, "
            f"max_events_per_period={self.max_events_per_period}, level={self._level})"
        )
