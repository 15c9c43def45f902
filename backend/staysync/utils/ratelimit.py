import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from flask import current_app, request

from ..errors import RateLimitError

EXEMPT_PATHS = ("/health",)


class SlidingWindowLimiter:
    """In-process per-client limiter: at most ``limit`` hits per ``window_seconds``."""

    def __init__(self, limit: int = 100, window_seconds: int = 900):
        self.limit = limit
        self.window_seconds = window_seconds
        self.store: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def hit(self, key: str, now: float = None) -> int:
        """Record one request for ``key``; return seconds to wait, or 0 when allowed."""
        now = time.time() if now is None else now
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            dq = self.store[key]
            while dq and now - dq[0] >= self.window_seconds:
                dq.popleft()
            if len(dq) >= self.limit:
                return max(1, int(self.window_seconds - (now - dq[0])))
            dq.append(now)
            return 0

    def _sweep(self, now: float):
        # drop clients whose newest hit has left the window
        stale = [k for k, dq in self.store.items() if not dq or now - dq[-1] >= self.window_seconds]
        for k in stale:
            del self.store[k]
        self._last_sweep = now

    def reset(self):
        with self._lock:
            self.store.clear()


def _client_key():
    return f"ip:{request.remote_addr or 'unknown'}"


def _enforce():
    if not current_app.config.get("RATE_LIMIT_ENABLED", True):
        return None
    if request.path in EXEMPT_PATHS:
        return None

    limiter = current_app.extensions["staysync_limiter"]
    retry_after = limiter.hit(_client_key())
    if retry_after:
        raise RateLimitError(details={"retry_after": retry_after})
    return None


def init_rate_limit(app):
    app.extensions["staysync_limiter"] = SlidingWindowLimiter(
        limit=app.config.get("RATE_LIMIT_MAX", 100),
        window_seconds=app.config.get("RATE_LIMIT_WINDOW", 900),
    )
    app.before_request(_enforce)
