"""
Per-client fixed-window admission control.

Backed by the same `limits` engine slowapi uses. MemoryStorage resets a
window lazily on the first hit after expiry and sweeps expired keys in the
background, so idle clients do not accumulate.
"""

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from store_orchestrator.models import RateLimitEntry


class RateLimiter:
    def __init__(self, max_requests: int = 10, window_seconds: int = 60):
        if max_requests <= 0:
            raise ValueError("max_requests must be greater than zero")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be greater than zero")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def admit(self, client_key: str) -> bool:
        """Count a request from client_key. False once the window cap is exceeded."""
        return self._strategy.hit(self._item, client_key)

    def entry(self, client_key: str) -> RateLimitEntry:
        stats = self._strategy.get_window_stats(self._item, client_key)
        return RateLimitEntry(
            count=self.max_requests - stats.remaining,
            reset_time=stats.reset_time,
        )

    def reset(self):
        self._storage.reset()
