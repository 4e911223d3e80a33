from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reset_time: float
    remaining: int


@dataclass(slots=True)
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """Fixed-window, in-memory request counter keyed by client identity."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window.reset_time:
                reset_time = now + self.window_seconds
                self._windows[identifier] = _Window(count=1, reset_time=reset_time)
                return RateLimitDecision(True, reset_time, self.max_requests - 1)

            if window.count >= self.max_requests:
                return RateLimitDecision(False, window.reset_time, 0)

            window.count += 1
            return RateLimitDecision(True, window.reset_time, self.max_requests - window.count)

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if now > window.reset_time]
            for key in expired:
                del self._windows[key]
        return len(expired)


def get_client_ip(request: Request) -> str:
    forwarded: Optional[str] = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"
