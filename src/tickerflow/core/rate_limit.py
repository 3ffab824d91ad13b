"""Outbound pacing, retry/backoff and provider health tracking.

Every provider call goes through :class:`RateLimiter`, which

* waits out the minimum interval for the provider's host,
* retries ``Retryable`` outcomes with exponential backoff and jitter,
* opens a cooldown window on the provider once retries are exhausted.

Retry decisions are made on the returned outcome value, not on exception types.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ..config import RetryConfig
from ..data.provider import Fatal, Ok, ProviderResponse, Retryable
from ..data.requests import RequestKey
from ..utils.logging import get_logger

if TYPE_CHECKING:
    from .chain import ProviderDescriptor

logger = get_logger(__name__, component="RateLimiter")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


class HealthState(str, Enum):
    HEALTHY = "healthy"
    BACKOFF = "backoff"


@dataclass
class ProviderHealth:
    """Mutable health state for a single provider."""

    provider_id: str
    state: HealthState = HealthState.HEALTHY
    backoff_until: float = 0.0
    consecutive_failures: int = 0
    fatal_errors: int = 0
    last_error: str | None = None
    last_success_at: float | None = None

    def is_available(self, now: float) -> bool:
        """A provider in backoff is unavailable until its window has passed."""
        return self.state is HealthState.HEALTHY or now >= self.backoff_until

    def record_success(self, now: float) -> None:
        self.state = HealthState.HEALTHY
        self.backoff_until = 0.0
        self.consecutive_failures = 0
        self.last_error = None
        self.last_success_at = now

    def record_exhausted(self, now: float, cooldown: float, reason: str) -> None:
        self.state = HealthState.BACKOFF
        self.backoff_until = now + cooldown
        self.last_error = reason[:500]

    def record_fatal(self, reason: str) -> None:
        self.fatal_errors += 1
        self.last_error = reason[:500]


class HostPacer:
    """Enforces a minimum interval between calls to the same host."""

    def __init__(self, clock: Clock = time.monotonic, sleep: Sleep = asyncio.sleep) -> None:
        self._clock = clock
        self._sleep = sleep
        self._last_call: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def wait(self, host: str, min_interval: float) -> float:
        """Suspend until a call to ``host`` is allowed, then claim the slot.

        Returns:
            Seconds spent waiting
        """
        lock = self._locks.setdefault(host, asyncio.Lock())
        async with lock:
            waited = 0.0
            last = self._last_call.get(host)
            if last is not None:
                waited = min_interval - (self._clock() - last)
                if waited > 0:
                    logger.debug("host_pacing", host=host, wait_seconds=round(waited, 3))
                    await self._sleep(waited)
                else:
                    waited = 0.0
            self._last_call[host] = self._clock()
            return waited

    def last_call(self, host: str) -> float | None:
        return self._last_call.get(host)


def _is_retryable(outcome: ProviderResponse) -> bool:
    return isinstance(outcome, Retryable)


def _last_outcome(retry_state: RetryCallState) -> ProviderResponse:
    assert retry_state.outcome is not None
    result: ProviderResponse = retry_state.outcome.result()
    return result


class RateLimiter:
    """Mediates provider calls: pacing, retries and health transitions."""

    def __init__(
        self,
        config: RetryConfig,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        pacer: HostPacer | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            config: Retry and cooldown policy
            clock: Monotonic time source used for health windows and pacing
            sleep: Coroutine used for pacing and backoff delays
            pacer: Shared host pacer (created if omitted)
        """
        self.config = config
        self._clock = clock
        self._sleep = sleep
        self.pacer = pacer or HostPacer(clock=clock, sleep=sleep)

    def cooldown_for(self, consecutive_failures: int) -> float:
        """Cooldown after the given number of consecutive exhausted calls."""
        exponent = max(consecutive_failures - 1, 0)
        return min(self.config.cooldown * (2**exponent), self.config.max_cooldown)

    async def call(self, descriptor: "ProviderDescriptor", key: RequestKey) -> ProviderResponse:
        """Call a provider with pacing and retries, then update its health.

        Args:
            descriptor: Provider to call
            key: Request to fetch

        Returns:
            The final outcome (last Retryable if attempts were exhausted)
        """
        cfg = self.config
        retrying = AsyncRetrying(
            stop=stop_after_attempt(cfg.max_attempts),
            wait=wait_exponential_jitter(
                initial=cfg.initial_delay,
                max=cfg.max_delay,
                exp_base=cfg.multiplier,
                jitter=cfg.jitter,
            ),
            retry=retry_if_result(_is_retryable),
            retry_error_callback=_last_outcome,
            before_sleep=self._log_retry(descriptor, key),
            sleep=self._sleep,
        )

        outcome: ProviderResponse = await retrying(self._attempt, descriptor, key)
        self._record(descriptor, key, outcome)
        return outcome

    async def _attempt(self, descriptor: "ProviderDescriptor", key: RequestKey) -> ProviderResponse:
        provider = descriptor.provider
        await self.pacer.wait(provider.host, descriptor.min_interval)

        try:
            outcome = await provider.fetch(key)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(
                "provider_io_error",
                provider=descriptor.provider_id,
                key=str(key),
                error=str(e),
                error_type=type(e).__name__,
            )
            return Retryable(f"I/O error: {type(e).__name__}: {e}")
        except Exception as e:
            logger.error(
                "provider_unexpected_error",
                provider=descriptor.provider_id,
                key=str(key),
                error=str(e),
                error_type=type(e).__name__,
            )
            return Fatal(f"{type(e).__name__}: {e}")

        if not isinstance(outcome, (Ok, Retryable, Fatal)):
            return Fatal(f"Invalid response type: {type(outcome).__name__}")
        return outcome

    def _log_retry(
        self, descriptor: "ProviderDescriptor", key: RequestKey
    ) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome.result() if retry_state.outcome else None
            logger.info(
                "provider_call_retry",
                provider=descriptor.provider_id,
                key=str(key),
                attempt=retry_state.attempt_number,
                delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
                code=getattr(outcome, "code", None),
                reason=getattr(outcome, "reason", None),
            )

        return before_sleep

    def _record(
        self, descriptor: "ProviderDescriptor", key: RequestKey, outcome: ProviderResponse
    ) -> None:
        health = descriptor.health
        now = self._clock()

        if isinstance(outcome, Ok):
            if health.state is HealthState.BACKOFF:
                logger.info("provider_recovered", provider=descriptor.provider_id)
            health.record_success(now)
            return

        if isinstance(outcome, Retryable):
            health.consecutive_failures += 1
            cooldown = self.cooldown_for(health.consecutive_failures)
            health.record_exhausted(now, cooldown, outcome.reason)
            logger.warning(
                "provider_backoff_opened",
                provider=descriptor.provider_id,
                key=str(key),
                code=outcome.code,
                reason=outcome.reason,
                cooldown=cooldown,
                consecutive_failures=health.consecutive_failures,
            )
            return

        health.record_fatal(outcome.reason)
        logger.warning(
            "provider_call_fatal",
            provider=descriptor.provider_id,
            key=str(key),
            code=outcome.code,
            reason=outcome.reason,
        )
