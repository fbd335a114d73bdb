import time
from collections import deque
from typing import Callable, Deque, Dict


class RateLimiter:
    """
    Sliding-window request counter keyed by client address.

    One instance is created per application and shared through
    `app.state.rate_limiter`. All bookkeeping happens synchronously inside
    the event loop, so no locking is required.

    Addresses whose requests have all left the window are dropped, and a
    full sweep of idle addresses runs at most once per window.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    @property
    def tracked_addresses(self) -> int:
        return len(self._hits)

    def _prune(self, key: str, now: float) -> Deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        cutoff = now - self.window_seconds
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str) -> bool:
        """
        Record a request for `key`.

        Returns True if the request is allowed, False if the key has already
        used up its quota for the current window. Rejected requests are not
        counted.
        """
        now = self._clock()
        self._sweep(now)
        hits = self._prune(key, now)
        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        self._hits[key] = hits
        return True

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest counted request for `key` leaves the window."""
        hits = self._hits.get(key)
        if not hits:
            return 0
        remaining = hits[0] + self.window_seconds - self._clock()
        return max(1, int(remaining + 0.999))

    def remaining(self, key: str) -> int:
        hits = self._prune(key, self._clock())
        return max(0, self.max_requests - len(hits))
