"""
In-memory sliding-window rate limiter.

Each key ("post:<user-id>") keeps the timestamps of its allowed requests
inside the trailing window. Denied attempts are never recorded, so a key
never holds more than ``max_requests`` timestamps.

State is per process: with several workers or instances each one enforces
the limit independently.
"""
import math
import time
import logging
import threading
from collections import deque
from typing import Callable, Deque, Dict, Optional

from forumkit import config
from forumkit.models.rate_limit import RateLimitConfig, RateLimitResult

# Set up logging
logger = logging.getLogger(__name__)

# Preset limits
RATE_LIMITS: Dict[str, RateLimitConfig] = {
    # New users (< 24h old): 3 posts per hour
    "NEW_USER_POST": RateLimitConfig(max_requests=3, window_ms=config.HOUR_MS),
    "POST": RateLimitConfig(max_requests=20, window_ms=config.HOUR_MS),
    "THREAD": RateLimitConfig(max_requests=5, window_ms=config.HOUR_MS),
    "PHOTO_UPLOAD": RateLimitConfig(max_requests=30, window_ms=config.HOUR_MS),
    "REPORT": RateLimitConfig(max_requests=10, window_ms=config.HOUR_MS),
    "PASSWORD_CHANGE": RateLimitConfig(max_requests=3, window_ms=config.HOUR_MS),
    "SEARCH": RateLimitConfig(max_requests=30, window_ms=config.MINUTE_MS),
}


def now_ms() -> int:
    return int(time.time() * 1000)


def rate_limit_key(action: str, actor: str) -> str:
    return f"{action.lower()}:{actor}"


def retry_after_seconds(result: RateLimitResult) -> int:
    """Whole seconds to wait, rounded up, for a Retry-After header."""
    if result.allowed or result.retry_after_ms is None:
        return 0
    return max(1, math.ceil(result.retry_after_ms / 1000))


def rate_limit_message(result: RateLimitResult) -> str:
    seconds = retry_after_seconds(result)
    unit = "second" if seconds == 1 else "seconds"
    return f"You're doing that too much. Please try again in {seconds} {unit}."


class _Window:
    __slots__ = ("timestamps", "window_ms")

    def __init__(self, window_ms: int):
        self.timestamps: Deque[int] = deque()
        self.window_ms = window_ms

    def evict(self, now: int) -> None:
        cutoff = now - self.window_ms
        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()


class RateLimiter:
    """
    Sliding-window rate limiter owning its own key table.

    Construct one per process and share it with the request handlers.
    A periodic sweep, run at most once per ``cleanup_interval_ms``, drops
    expired timestamps and empty keys. Each key is swept with the window
    it was last checked with, so keys with different windows never evict
    each other's entries early or late.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        cleanup_interval_ms: int = config.CLEANUP_INTERVAL_MS,
    ):
        self._clock = clock or now_ms
        self._cleanup_interval_ms = cleanup_interval_ms
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_cleanup = self._clock()

    def __len__(self) -> int:
        return len(self._windows)

    def tracked_count(self, key: str) -> int:
        """Number of timestamps currently held for ``key``."""
        window = self._windows.get(key)
        return len(window.timestamps) if window else 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_cleanup = self._clock()

    def cleanup(self, now: Optional[int] = None, force: bool = False) -> int:
        """
        Sweep expired timestamps from every key.

        Returns:
            Number of keys removed from the table
        """
        with self._lock:
            return self._cleanup_locked(self._clock() if now is None else now, force)

    def _cleanup_locked(self, now: int, force: bool) -> int:
        if not force and now - self._last_cleanup < self._cleanup_interval_ms:
            return 0
        self._last_cleanup = now

        removed = 0
        for key in list(self._windows):
            window = self._windows[key]
            window.evict(now)
            if not window.timestamps:
                del self._windows[key]
                removed += 1

        if removed:
            logger.debug(f"Rate limit sweep removed {removed} idle keys, {len(self._windows)} remain")
        return removed

    def check_rate_limit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """
        Check whether a request is allowed and record it if so.

        Args:
            key: Unique identifier (e.g. "post:<user-id>")
            max_requests: Max requests allowed in the window
            window_ms: Window size in milliseconds

        Returns:
            RateLimitResult; ``retry_after_ms`` is set only when denied
        """
        with self._lock:
            now = self._clock()
            self._cleanup_locked(now, force=False)

            window = self._windows.get(key)
            if window is None:
                window = _Window(window_ms)
                self._windows[key] = window
            window.window_ms = window_ms
            window.evict(now)

            if len(window.timestamps) >= max_requests:
                oldest = window.timestamps[0] if window.timestamps else now
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after_ms=max(0, oldest + window_ms - now),
                )

            window.timestamps.append(now)
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - len(window.timestamps),
            )

    def check(self, preset: RateLimitConfig, key: str) -> RateLimitResult:
        """Check ``key`` against a named preset."""
        return self.check_rate_limit(key, preset.max_requests, preset.window_ms)
