"""Process-local fixed-window rate limiting.

Counters live in memory only: they are not shared between worker processes
and reset on restart, so this is soft throttling for expensive endpoints.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from craftmatch.config import settings


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float

    @property
    def retry_after_seconds(self) -> int:
        return max(0, int(self.reset_at - time.time() + 0.999))


class FixedWindowRateLimiter:
    def __init__(self, limit: int, window_seconds: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: dict[str, _Window] = {}

    @staticmethod
    def key_for(user_id: str | None, client_ip: str) -> str:
        if user_id:
            return f"user:{user_id}"
        return f"ip:{client_ip}"

    def hit(self, key: str) -> RateLimitResult:
        now = time.time()
        window = self._windows.get(key)

        if window is None or now > window.reset_at:
            window = _Window(count=1, reset_at=now + self.window_seconds)
            self._windows[key] = window
            return RateLimitResult(True, self.limit - 1, window.reset_at)

        if window.count < self.limit:
            window.count += 1
            return RateLimitResult(True, self.limit - window.count, window.reset_at)

        return RateLimitResult(False, 0, window.reset_at)

    def remaining(self, key: str) -> int:
        window = self._windows.get(key)
        if window is None or time.time() > window.reset_at:
            return self.limit
        return max(0, self.limit - window.count)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)


image_generation_limiter = FixedWindowRateLimiter(
    limit=settings.IMAGE_GENERATION_RATE_LIMIT,
    window_seconds=settings.IMAGE_GENERATION_RATE_WINDOW_SECONDS,
)
