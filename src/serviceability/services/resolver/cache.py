"""In-memory TTL cache for remote pincode lookups."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from ...models.domain import RemoteRecord
from .models import CacheEntry

DEFAULT_TTL_SECONDS = 24 * 60 * 60

logger = logging.getLogger(__name__)


class ResolverCache:
    """Pincode keyed cache. Expired entries are evicted lazily on read."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, code: str) -> Optional[RemoteRecord]:
        async with self._lock:
            entry = self._entries.get(code)
            if entry is None:
                return None
            if self._clock() - entry.stored_at < self.ttl_seconds:
                return entry.record
            del self._entries[code]
            logger.debug(f"Cache entry for {code} expired")
            return None

    async def set(self, code: str, record: RemoteRecord) -> None:
        async with self._lock:
            self._entries[code] = CacheEntry(record=record, stored_at=self._clock())

    async def delete(self, code: str) -> bool:
        async with self._lock:
            return self._entries.pop(code, None) is not None

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def stats(self) -> dict:
        return {"size": len(self._entries), "entries": list(self._entries.keys())}
