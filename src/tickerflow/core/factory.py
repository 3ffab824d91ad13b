"""Wiring of the default resolver from configuration."""

import asyncio
import time
from collections.abc import Callable

from ..config import Config, ProviderConfig
from ..data.cache import CacheManager
from ..data.provider import Provider
from ..data.providers import (
    AlphaVantageProvider,
    FinnhubProvider,
    PolygonProvider,
    RapidApiNewsProvider,
    SerpApiNewsProvider,
    YahooFinanceProvider,
)
from ..data.store import Store
from ..utils.logging import get_logger
from .chain import ProviderChain, ProviderDescriptor
from .rate_limit import RateLimiter, Sleep
from .resolver import Resolver
from .synthesizer import FallbackSynthesizer

logger = get_logger(__name__)

KEYED_PROVIDERS: dict[str, Callable[[ProviderConfig], Provider]] = {
    "finnhub": lambda cfg: FinnhubProvider(cfg.api_key, timeout=cfg.timeout),
    "polygon": lambda cfg: PolygonProvider(cfg.api_key, timeout=cfg.timeout),
    "serpapi": lambda cfg: SerpApiNewsProvider(cfg.api_key, timeout=cfg.timeout),
    "rapidapi": lambda cfg: RapidApiNewsProvider(cfg.api_key, timeout=cfg.timeout),
    "alpha_vantage": lambda cfg: AlphaVantageProvider(cfg.api_key, timeout=cfg.timeout),
}


def build_descriptors(config: Config) -> list[ProviderDescriptor]:
    """Create descriptors for every enabled provider that can be used.

    Providers that need an API key are left out when none is configured.

    Args:
        config: Application configuration

    Returns:
        Descriptors in configuration order (the chain sorts them by priority)
    """
    providers = config.data_provider
    descriptors = []

    for name, build in KEYED_PROVIDERS.items():
        provider_config: ProviderConfig = getattr(providers, name)
        if not provider_config.enabled:
            continue
        if not provider_config.api_key:
            logger.info("provider_skipped_no_api_key", provider=name)
            continue
        descriptors.append(
            ProviderDescriptor(
                provider=build(provider_config),
                priority=provider_config.priority,
                min_interval=provider_config.min_interval,
            )
        )

    yahoo = providers.yahoo_finance
    if yahoo.enabled:
        descriptors.append(
            ProviderDescriptor(
                provider=YahooFinanceProvider(),
                priority=yahoo.priority,
                min_interval=yahoo.min_interval,
            )
        )

    return descriptors


def create_resolver(
    config: Config | None = None,
    store: Store | None = None,
    descriptors: list[ProviderDescriptor] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> Resolver:
    """Build a resolver with the default provider chain.

    Args:
        config: Application configuration (loaded from the environment if omitted)
        store: Optional persistent store used as the second tier
        descriptors: Explicit chain entries, replacing the configured providers
        clock: Monotonic time source shared by cache, chain and rate limiter
        sleep: Coroutine used for pacing and backoff delays

    Returns:
        Configured Resolver (call ``start()`` or use ``async with``)
    """
    config = config or Config()
    if descriptors is None:
        descriptors = build_descriptors(config)

    chain = ProviderChain(descriptors, clock=clock)
    if not len(chain):
        logger.warning("provider_chain_empty")

    return Resolver(
        chain=chain,
        cache=CacheManager(config.cache, clock=clock),
        limiter=RateLimiter(config.retry, clock=clock, sleep=sleep),
        synthesizer=FallbackSynthesizer(seed=config.resolver.synthetic_seed),
        store=store,
        config=config.resolver,
        store_config=config.store,
        clock=clock,
    )
