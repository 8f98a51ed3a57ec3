from __future__ import annotations
import threading
import time
from typing import Callable, Dict, Tuple

from iknoweverything.core.errors import RateLimited

# Fixed-window limiter held in process memory. Not suitable for multi-process.


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window_start, count)
        self._buckets: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str, limit: int, window_seconds: int) -> None:
        """Count one request for `key`; raise RateLimited once `limit` is exceeded."""
        now = self._clock()
        with self._lock:
            # Expired windows are dropped so idle keys do not accumulate
            for k in [k for k, (start, _) in self._buckets.items() if now - start >= window_seconds]:
                del self._buckets[k]
            window_start, count = self._buckets.get(key, (now, 0))
            count += 1
            self._buckets[key] = (window_start, count)

        if count > limit:
            retry_after = max(1, int(window_seconds - (now - window_start)))
            raise RateLimited("Rate limit exceeded", retry_after=retry_after)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


chat_limiter = RateLimiter()
