"""Fetch throttling utilities for upstream feeds."""
import time
import logging
from typing import Callable, Dict, Any, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class FetchThrottle:
    """
    Freshness floor for a cached upstream fetch.

    Tracks the time of the last *successful* fetch and reports whether the
    cached data is still within the refresh interval. Failed fetches never
    call ``mark_success``, so a failure leaves the next call unthrottled.

    This is a floor, not a cap: callers may receive data up to one interval
    old.
    """

    def __init__(self, interval: float, name: str = "default", clock: Optional[Clock] = None):
        """
        Initialize the throttle.

        Args:
            interval: Seconds a successful fetch stays fresh
            name: Name identifier for logging purposes
            clock: Monotonic time source, injectable for tests
        """
        self.interval = interval
        self.name = name
        self._clock = clock or time.monotonic
        self.last_success: Optional[float] = None

    def is_fresh(self) -> bool:
        """Check whether the last successful fetch is younger than the interval."""
        if self.last_success is None:
            return False
        return self._clock() - self.last_success < self.interval

    def mark_success(self, at: Optional[float] = None) -> float:
        """Record a successful fetch and return its timestamp."""
        self.last_success = self._clock() if at is None else at
        logger.debug(f"[{self.name}] Fetch recorded, fresh for {self.interval:.0f}s")
        return self.last_success

    @property
    def age(self) -> Optional[float]:
        """Seconds since the last successful fetch, or None if never fetched."""
        if self.last_success is None:
            return None
        return self._clock() - self.last_success

    def get_status(self) -> Dict[str, Any]:
        """Get a summary of this throttle's state."""
        age = self.age
        return {
            "interval": self.interval,
            "fresh": self.is_fresh(),
            "age_seconds": round(age, 3) if age is not None else None,
        }

    def __repr__(self) -> str:
        return f"FetchThrottle(name={self.name}, interval={self.interval})"
