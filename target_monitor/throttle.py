"""
Process-wide spacing of upstream quote requests.
Thread-safe, no external dependencies.
"""
import threading
import time
from collections.abc import Callable

from .constants import MIN_REQUEST_INTERVAL
from .logger import logger


class RequestThrottle:
    """
    Enforces a minimum interval between upstream call starts.

    One timestamp is shared by every cache key. Each caller reserves its
    slot under the lock and sleeps outside it, so concurrent callers
    queue up ``min_interval`` apart instead of waking together.

    Usage:
        throttle = RequestThrottle(min_interval=3.0)
        throttle.before_request()  # Blocks until spacing is satisfied
        # ... make upstream call
    """

    def __init__(
        self,
        min_interval: float = MIN_REQUEST_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._total_waited = 0.0
        self._requests = 0
        self._lock = threading.Lock()

    def before_request(self) -> float:
        """
        Wait until the next upstream call may start, then claim that slot.

        Returns:
            Seconds waited (0 if no wait needed)
        """
        with self._lock:
            now = self._clock()
            if self._last_request is None:
                wait_time = 0.0
            else:
                wait_time = max(0.0, self.min_interval - (now - self._last_request))
            self._last_request = now + wait_time
            self._requests += 1
            self._total_waited += wait_time

        if wait_time > 0:
            logger.info("throttle.waiting", wait_seconds=round(wait_time, 2))
            self._sleep(wait_time)

        return wait_time

    def seconds_since_last_request(self) -> float | None:
        with self._lock:
            if self._last_request is None:
                return None
            return max(0.0, self._clock() - self._last_request)

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "min_interval": self.min_interval,
                "requests": self._requests,
                "total_waited": round(self._total_waited, 3),
            }
