"""In-process sliding-window rate limiter used for admission control."""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Tuple

_UNIT_SECONDS = {
    "s": 1.0,
    "sec": 1.0,
    "second": 1.0,
    "m": 60.0,
    "min": 60.0,
    "minute": 60.0,
    "h": 3600.0,
    "hour": 3600.0,
    "d": 86400.0,
    "day": 86400.0,
}


def parse_limit(limit: str) -> Tuple[int, float]:
    """Parse ``"100/minute"`` into ``(100, 60.0)``.

    The unit may carry a multiplier (``"10/5m"``) and a plural ``s``.
    """
    try:
        count_part, unit_part = limit.split("/", 1)
        count = int(count_part.strip())
    except ValueError as e:
        raise ValueError(f"Invalid rate limit: {limit!r}") from e

    unit = unit_part.strip().lower()
    digits = ""
    while unit and (unit[0].isdigit() or unit[0] == "."):
        digits, unit = digits + unit[0], unit[1:]
    unit = unit.strip()
    if unit not in _UNIT_SECONDS and unit.endswith("s"):
        unit = unit[:-1]
    if unit not in _UNIT_SECONDS or count <= 0:
        raise ValueError(f"Invalid rate limit: {limit!r}")
    return count, _UNIT_SECONDS[unit] * (float(digits) if digits else 1.0)


class SlidingWindowRateLimiter:
    """Allows ``limit`` hits per key within any trailing window.

    Rejected attempts are not counted against the key.
    """

    def __init__(self, limit: str = "100/minute", clock: Callable[[], float] = time.monotonic):
        self.max_requests, self.window_seconds = parse_limit(limit)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> Tuple[bool, Dict[str, Any]]:
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()

            allowed = len(hits) < self.max_requests
            if allowed:
                hits.append(now)
            reset_in = self.window_seconds - (now - hits[0]) if hits else self.window_seconds
            info = {
                "limit": self.max_requests,
                "remaining": max(0, self.max_requests - len(hits)),
                "reset": max(0, math.ceil(reset_in)),
                "retry_after": 0 if allowed else max(1, math.ceil(reset_in)),
            }
        return allowed, info

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)


__all__ = ["SlidingWindowRateLimiter", "parse_limit"]
