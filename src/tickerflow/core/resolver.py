"""Resolver: turns a (symbol, kind) request into a tagged result.

Every request walks the same tiers:

1. Cache (fresh entry returns immediately)
2. Store (record no older than the kind's max age)
3. Provider chain, each call paced and retried by the rate limiter
4. Fallback synthesizer

Concurrent requests for the same key share one walk, and the walk is bounded
by an overall deadline. Apart from request validation errors, callers always
get a ``ResolutionResult``.
"""

import asyncio
import time
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from cachetools import LRUCache

from ..config import ResolverConfig, StoreConfig
from ..data.cache import CacheManager, CacheSweeper
from ..data.models import Quote
from ..data.provider import Ok, is_empty
from ..data.requests import RequestKey, RequestKind
from ..data.store import Store, StoreRecord
from ..utils.logging import get_logger
from .chain import ProviderChain, ProviderDescriptor
from .rate_limit import RateLimiter
from .results import FallbackReason, Origin, ResolutionResult
from .synthesizer import FallbackSynthesizer

logger = get_logger(__name__, component="Resolver")

POPULAR_CACHE_KEY = "popular:quotes"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Resolver:
    """Orchestrate cache, store, provider chain and synthesis for each request.

    Example:
        >>> resolver = create_resolver(Config())
        >>> async with resolver:
        ...     result = await resolver.resolve("AAPL", "quote")
        ...     print(result.origin_label, result.value.price)
    """

    def __init__(
        self,
        chain: ProviderChain,
        cache: CacheManager,
        limiter: RateLimiter,
        synthesizer: FallbackSynthesizer,
        store: Store | None = None,
        config: ResolverConfig | None = None,
        store_config: StoreConfig | None = None,
        now: Callable[[], datetime] = _utcnow,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the resolver.

        Args:
            chain: Ordered provider chain
            cache: First-tier cache
            limiter: Rate limiter every provider call goes through
            synthesizer: Terminal fallback
            store: Optional second-tier persistent store
            config: Deadline and popular-symbol settings
            store_config: Maximum record age per kind
            now: Wall-clock source for store record timestamps
            clock: Monotonic time source the deadline is measured against
        """
        self.chain = chain
        self.cache = cache
        self.limiter = limiter
        self.synthesizer = synthesizer
        self.store = store
        self.config = config or ResolverConfig()
        self.store_config = store_config or StoreConfig()
        self._now = now
        self._clock = clock

        self._max_ages = {
            RequestKind.QUOTE: self.store_config.quote_max_age,
            RequestKind.DETAILS: self.store_config.details_max_age,
            RequestKind.HISTORY: self.store_config.history_max_age,
            RequestKind.NEWS: self.store_config.news_max_age,
        }

        self._inflight: dict[RequestKey, asyncio.Task[ResolutionResult[Any]]] = {}
        self._bypass: set[RequestKey] = set()
        self._generations: Counter[RequestKey] = Counter()
        self._last_known: LRUCache[RequestKey, Any] = LRUCache(maxsize=cache.config.max_size)
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._sweeper = CacheSweeper(cache, cache.config.sweep_interval)
        self._stats: Counter[str] = Counter()

    async def __aenter__(self) -> "Resolver":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Start background cache sweeping."""
        self._sweeper.start()

    async def close(self) -> None:
        """Stop the sweeper and wait for pending store writes."""
        await self._sweeper.stop()
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
        logger.info("resolver_closed", **self._counters())

    async def resolve(
        self,
        symbol: str,
        kind: RequestKind | str,
        *,
        interval: str | None = None,
        limit: int | None = None,
    ) -> ResolutionResult[Any]:
        """Resolve a request.

        Args:
            symbol: Ticker symbol
            kind: quote, details, history or news
            interval: History window (history only)
            limit: Maximum number of articles (news only)

        Returns:
            The tagged result

        Raises:
            InvalidRequestError: If the symbol, kind, interval or limit is invalid
        """
        key = RequestKey.parse(symbol, kind, interval=interval, limit=limit)
        return await self.resolve_key(key)

    async def resolve_key(self, key: RequestKey) -> ResolutionResult[Any]:
        """Resolve an already validated request key."""
        if key not in self._bypass:
            entry = self.cache.get(key)
            if entry is not None:
                self._stats[Origin.CACHE.value] += 1
                return ResolutionResult(
                    key=key,
                    value=entry.value,
                    origin=Origin.CACHE,
                    is_stale=entry.synthetic,
                    synthetic=entry.synthetic,
                )

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._walk(key), name=f"resolve:{key}")
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
            self._stats["walks"] += 1
        else:
            self._stats["single_flight_joins"] += 1
            logger.debug("single_flight_joined", key=str(key))

        # A cancelled waiter must not cancel the walk other waiters share.
        return await asyncio.shield(task)

    def invalidate(
        self,
        symbol: str,
        kind: RequestKind | str,
        *,
        interval: str | None = None,
        limit: int | None = None,
    ) -> None:
        """Force the next resolution of a request past the cache and store tiers.

        Raises:
            InvalidRequestError: If the request is invalid
        """
        key = RequestKey.parse(symbol, kind, interval=interval, limit=limit)
        self.cache.invalidate(key)
        if key.kind is RequestKind.QUOTE:
            self.cache.invalidate(POPULAR_CACHE_KEY)
        self._bypass.add(key)
        self._generations[key] += 1
        # Walks already running keep their waiters but no longer accept new ones.
        self._inflight.pop(key, None)
        logger.info("request_invalidated", key=str(key))

    async def popular_stocks(self) -> list[ResolutionResult[Quote]]:
        """Quotes for the configured popular symbols, resolved concurrently."""
        entry = self.cache.get(POPULAR_CACHE_KEY)
        if entry is not None:
            return [
                ResolutionResult(key=RequestKey.quote(q.symbol), value=q, origin=Origin.CACHE)
                for q in entry.value
            ]

        results = await asyncio.gather(
            *(self.resolve(symbol, RequestKind.QUOTE) for symbol in self.config.popular_symbols)
        )

        if results and not any(r.synthetic for r in results):
            self.cache.put(
                POPULAR_CACHE_KEY, [r.value for r in results], self.cache.config.popular_ttl
            )
        else:
            logger.info(
                "popular_stocks_not_cached",
                synthetic=[str(r.key) for r in results if r.synthetic],
            )
        return list(results)

    def health(self) -> dict[str, Any]:
        """Snapshot of provider health keyed by provider id."""
        return self.chain.health_snapshot()

    def get_stats(self) -> dict[str, Any]:
        """Resolution counters plus cache statistics."""
        stats: dict[str, Any] = self._counters()
        stats["in_flight"] = len(self._inflight)
        stats["pending_writes"] = len(self._pending_writes)
        stats["cache_stats"] = self.cache.get_stats()
        return stats

    def _counters(self) -> dict[str, int]:
        names = [o.value for o in Origin] + ["walks", "single_flight_joins"]
        return {name: self._stats[name] for name in names}

    def _release(self, key: RequestKey, task: asyncio.Task[ResolutionResult[Any]]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _walk(self, key: RequestKey) -> ResolutionResult[Any]:
        generation = self._generations[key]
        skip_store = key in self._bypass
        self._bypass.discard(key)

        deadline = self._clock() + self.config.deadline

        try:
            if not skip_store:
                result = await self._check_store(key, deadline, generation)
                if result is not None:
                    return result
            return await self._walk_providers(key, deadline, generation)
        except Exception as e:
            logger.error(
                "resolution_internal_error",
                key=str(key),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return self._synthesize(key, FallbackReason.INTERNAL_ERROR, generation)

    async def _check_store(
        self, key: RequestKey, deadline: float, generation: int
    ) -> ResolutionResult[Any] | None:
        max_age = self._max_ages[key.kind]
        if self.store is None or max_age <= 0:
            return None

        remaining = deadline - self._clock()
        try:
            record = await asyncio.wait_for(self.store.get(key), timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning("store_read_timeout", key=str(key))
            return None
        except Exception as e:
            logger.warning(
                "store_read_failed", key=str(key), error=str(e), error_type=type(e).__name__
            )
            return None

        if record is None:
            return None

        self._last_known[key] = record.value
        age = record.age(self._now())
        if age > max_age:
            logger.debug("store_record_stale", key=str(key), age=round(age, 3), max_age=max_age)
            return None

        if self._generations[key] == generation:
            self.cache.put(key, record.value, min(self.cache.ttl_for(key.kind), max_age - age))
        self._stats[Origin.STORE.value] += 1
        logger.debug("resolution_from_store", key=str(key), age=round(age, 3))
        return ResolutionResult(key=key, value=record.value, origin=Origin.STORE)

    async def _walk_providers(
        self, key: RequestKey, deadline: float, generation: int
    ) -> ResolutionResult[Any]:
        reason = FallbackReason.EXHAUSTED

        for descriptor in self.chain.eligible(key.kind):
            remaining = deadline - self._clock()
            if remaining <= 0:
                reason = FallbackReason.TIMEOUT
                break

            try:
                outcome = await asyncio.wait_for(
                    self.limiter.call(descriptor, key), timeout=remaining
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "provider_call_abandoned",
                    key=str(key),
                    provider=descriptor.provider_id,
                    deadline=self.config.deadline,
                )
                reason = FallbackReason.TIMEOUT
                break

            if isinstance(outcome, Ok):
                if not is_empty(outcome.value):
                    return self._accept(key, descriptor, outcome.value, generation)
                logger.info("provider_no_data", key=str(key), provider=descriptor.provider_id)

            if self._clock() >= deadline:
                logger.warning(
                    "resolution_deadline_exceeded",
                    key=str(key),
                    provider=descriptor.provider_id,
                    deadline=self.config.deadline,
                )
                reason = FallbackReason.TIMEOUT
                break

        return self._synthesize(key, reason, generation)

    def _accept(
        self, key: RequestKey, descriptor: ProviderDescriptor, value: Any, generation: int
    ) -> ResolutionResult[Any]:
        if self._generations[key] == generation:
            self.cache.put(key, value, self.cache.ttl_for(key.kind))
        self._last_known[key] = value
        self._schedule_save(StoreRecord(key=key, value=value, last_updated=self._now()))

        self._stats[Origin.PROVIDER.value] += 1
        logger.info("resolution_from_provider", key=str(key), provider=descriptor.provider_id)
        return ResolutionResult(
            key=key, value=value, origin=Origin.PROVIDER, provider_id=descriptor.provider_id
        )

    def _synthesize(
        self, key: RequestKey, reason: FallbackReason, generation: int
    ) -> ResolutionResult[Any]:
        last_known = self._last_known.get(key)
        reference = None
        if key.kind is not RequestKind.QUOTE:
            reference = self._last_known.get(RequestKey.quote(key.symbol))

        value = self.synthesizer.synthesize(key, last_known=last_known, reference_quote=reference)
        if self._generations[key] == generation:
            self.cache.put(key, value, self.cache.config.synthetic_ttl, synthetic=True)

        self._stats[Origin.SYNTHETIC.value] += 1
        logger.warning(
            "resolution_synthesized",
            key=str(key),
            reason=reason.value,
            anchored=last_known is not None or reference is not None,
        )
        return ResolutionResult(
            key=key,
            value=value,
            origin=Origin.SYNTHETIC,
            is_stale=True,
            synthetic=True,
            fallback_reason=reason,
        )

    def _schedule_save(self, record: StoreRecord) -> None:
        if self.store is None:
            return
        task = asyncio.create_task(self._save(record), name=f"store-save:{record.key}")
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _save(self, record: StoreRecord) -> None:
        assert self.store is not None
        try:
            await self.store.save(record)
        except Exception as e:
            logger.warning(
                "store_write_failed",
                key=str(record.key),
                error=str(e),
                error_type=type(e).__name__,
            )
