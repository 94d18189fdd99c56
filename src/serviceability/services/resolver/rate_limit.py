"""Fixed-window request counters, one per upstream source."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict

from .models import RateLimitCounter

DEFAULT_WINDOW_SECONDS = 60.0

logger = logging.getLogger(__name__)


class RateLimiter:
    """Allow at most ``limit`` calls per source within each window.

    A call that would exceed the limit is refused immediately; nothing is
    queued and the counter only resets when the window has elapsed.
    """

    def __init__(self, window_seconds: float = DEFAULT_WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._counters: Dict[str, RateLimitCounter] = {}
        self._lock = asyncio.Lock()

    async def acquire(self, source: str, limit: int) -> bool:
        async with self._lock:
            now = self._clock()
            counter = self._counters.get(source)
            if counter is None or now >= counter.reset_at:
                if limit <= 0:
                    return False
                self._counters[source] = RateLimitCounter(count=1, reset_at=now + self.window_seconds)
                return True
            if counter.count >= limit:
                logger.warning(f"Rate limit exceeded for {source} ({limit}/window)")
                return False
            counter.count += 1
            return True

    def remaining(self, source: str, limit: int) -> int:
        counter = self._counters.get(source)
        if counter is None or self._clock() >= counter.reset_at:
            return max(limit, 0)
        return max(limit - counter.count, 0)

    def clear(self) -> None:
        self._counters.clear()
