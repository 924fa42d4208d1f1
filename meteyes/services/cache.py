"""Insight response cache: in-memory, per process.

Entries live for ``insight_cache_ttl_seconds`` and are dropped lazily when a
lookup finds them expired. Once ``insight_cache_maxsize`` entries are held,
the oldest inserted entry is evicted first (cachetools.FIFOCache).

Purely a latency/cost optimization: nothing may rely on an entry being present,
and separate server processes never share entries.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from cachetools import FIFOCache

from meteyes.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    text: str
    created_at: float


class InsightCache:
    """FIFO-bounded cache of generated texts keyed by (objectID, prompt)."""

    def __init__(
        self,
        ttl_seconds: float | None = None,
        maxsize: int | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds if ttl_seconds is not None else settings.insight_cache_ttl_seconds
        self.maxsize = maxsize or settings.insight_cache_maxsize
        self.timer = timer
        self._entries: FIFOCache = FIFOCache(maxsize=self.maxsize)

    @staticmethod
    def make_key(object_id: int | str | None, prompt: str) -> str:
        """Cache key: the object id (or "general") joined to the full prompt text."""
        return f"{object_id or 'general'}-{prompt}"

    def get(self, key: str) -> str | None:
        """Read from cache. Returns None on miss or expiry."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self.timer() - entry.created_at >= self.ttl:
            self._entries.pop(key, None)
            logger.info("Cache EXPIRED | key=%s", key[:40])
            return None

        logger.info("Cache HIT | key=%s", key[:40])
        return entry.text

    def set(self, key: str, text: str) -> None:
        self._entries[key] = CacheEntry(text=text, created_at=self.timer())
        logger.info("Cache SET | key=%s | size=%d/%d", key[:40], len(self._entries), self.maxsize)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
