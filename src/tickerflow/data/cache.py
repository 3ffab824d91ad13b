"""Cache manager for resolved market data."""

import asyncio
import math
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from cachetools import TLRUCache

from ..config import CacheConfig
from ..utils.logging import get_logger
from .requests import RequestKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its own time-to-live."""

    value: Any
    inserted_at: float
    ttl: float
    synthetic: bool = False

    @property
    def expires_at(self) -> float:
        return self.inserted_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has outlived its TTL."""
        return now - self.inserted_at > self.ttl


def _time_to_use(_key: Hashable, entry: CacheEntry, _now: float) -> float:
    # TLRUCache drops an entry once timer() >= ttu; an entry aged exactly its TTL is still live.
    return math.nextafter(entry.expires_at, math.inf)


class CacheManager:
    """Thread-safe in-memory cache with per-entry TTL.

    Uses cachetools.TLRUCache so every entry carries its own expiry. TTLs are
    chosen per request kind via :meth:`ttl_for`. Reads never block on I/O and
    never raise: a missing or expired entry is reported as ``None``.
    """

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize cache manager.

        Args:
            config: Cache configuration
            clock: Monotonic time source in seconds
        """
        self.config = config
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: TLRUCache[Hashable, CacheEntry] = TLRUCache(
            maxsize=config.max_size, ttu=_time_to_use, timer=clock
        )
        self._ttls = {
            RequestKind.QUOTE: config.quote_ttl,
            RequestKind.DETAILS: config.details_ttl,
            RequestKind.HISTORY: config.history_ttl,
            RequestKind.NEWS: config.news_ttl,
        }
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

        logger.info(
            "cache_manager_initialized",
            max_size=config.max_size,
            enabled=config.enabled,
        )

    def ttl_for(self, kind: RequestKind) -> float:
        """TTL in seconds for a request kind (0 means the kind is not cached)."""
        return self._ttls[kind]

    def get(self, key: Hashable) -> CacheEntry | None:
        """Get a live entry.

        Args:
            key: Cache key

        Returns:
            The entry, or None if absent or expired
        """
        if not self.config.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                self._entries.pop(key, None)
                entry = None

            if entry is None:
                self._stats["misses"] += 1
            else:
                self._stats["hits"] += 1

        if entry is None:
            logger.debug("cache_miss", key=str(key))
        else:
            logger.debug("cache_hit", key=str(key), synthetic=entry.synthetic)
        return entry

    def put(
        self, key: Hashable, value: Any, ttl: float, *, synthetic: bool = False
    ) -> CacheEntry | None:
        """Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds; values <= 0 are not cached
            synthetic: Whether the value was generated locally

        Returns:
            The stored entry, or None if nothing was cached
        """
        if not self.config.enabled or ttl <= 0:
            return None

        with self._lock:
            entry = CacheEntry(value=value, inserted_at=self._clock(), ttl=ttl, synthetic=synthetic)
            self._entries[key] = entry

        logger.debug("cache_set", key=str(key), ttl=ttl, synthetic=synthetic)
        return entry

    def invalidate(self, key: Hashable | None = None) -> None:
        """Invalidate one entry, or all entries when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

        if key is None:
            logger.info("cache_cleared")
        else:
            logger.debug("cache_invalidated", key=str(key))

    def sweep(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            expired = self._entries.expire()
            removed = len(expired)
            self._stats["evictions"] += removed
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, hit_rate, evictions and size
        """
        with self._lock:
            stats = dict(self._stats)
            size = len(self._entries)

        total_requests = stats["hits"] + stats["misses"]
        hit_rate = stats["hits"] / total_requests if total_requests > 0 else 0.0

        return {
            "hits": stats["hits"],
            "misses": stats["misses"],
            "evictions": stats["evictions"],
            "total_requests": total_requests,
            "hit_rate": hit_rate,
            "size": size,
        }

    def log_stats(self) -> None:
        """Log current cache statistics."""
        logger.info("cache_stats", **self.get_stats())


class CacheSweeper:
    """Background task that periodically drops expired cache entries.

    The task is stopped through its own event rather than cancelled, so a sweep
    in progress always completes.
    """

    def __init__(self, cache: CacheManager, interval: float) -> None:
        self.cache = cache
        self.interval = interval
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running event loop."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop), name="cache-sweeper")

    async def stop(self) -> None:
        """Signal the sweeper to stop and wait for it."""
        if self._task is None or self._stop is None:
            return
        self._stop.set()
        await self._task
        self._task = None

    async def _run(self, stop: asyncio.Event) -> None:
        logger.info("cache_sweeper_started", interval=self.interval)
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                removed = self.cache.sweep()
                if removed:
                    logger.debug("cache_swept", removed=removed)
        logger.info("cache_sweeper_stopped")
