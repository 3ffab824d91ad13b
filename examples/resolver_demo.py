"""Demo script for the resolution pipeline.

This demonstrates:
1. Resolving a quote from a provider, then from the cache
2. Company details, price history and news
3. Falling back to synthetic data when no provider can answer
4. Invalidating a cached value

Requirements:
- Optional: API keys via environment variables, e.g.
  DATA_PROVIDER__FINNHUB__API_KEY, DATA_PROVIDER__POLYGON__API_KEY
- Without keys only Yahoo Finance is used (no key required)

Run with: poetry run python examples/resolver_demo.py
"""

import asyncio
import sys

from tickerflow import Config, ResolutionResult, create_resolver
from tickerflow.core.chain import ProviderDescriptor
from tickerflow.data.provider import MockProvider, Retryable
from tickerflow.utils.logging import setup_logging


def describe(result: ResolutionResult) -> str:
    flags = []
    if result.is_stale:
        flags.append("stale")
    if result.fallback_reason:
        flags.append(f"reason={result.fallback_reason.value}")
    suffix = f" ({', '.join(flags)})" if flags else ""
    return f"{result.key} <- {result.origin_label}{suffix}"


async def live_pipeline(config: Config) -> None:
    """Resolve each kind through the configured provider chain."""
    print("\n" + "=" * 60)
    print("Demo 1: Live providers")
    print("=" * 60)

    async with create_resolver(config) as resolver:
        print(f"\nProvider chain: {', '.join(resolver.chain.provider_ids)}")

        first = await resolver.resolve("AAPL", "quote")
        second = await resolver.resolve("AAPL", "quote")
        print(f"\n{describe(first)}")
        print(f"{describe(second)}")
        print(f"  Price: ${first.value.price:.2f}")

        details = await resolver.resolve("AAPL", "details")
        print(f"\n{describe(details)}")
        print(f"  Name: {details.value.name}")
        print(f"  Exchange: {details.value.exchange}")

        history = await resolver.resolve("AAPL", "history", interval="1m")
        print(f"\n{describe(history)}")
        print("Date          Open      High      Low       Close     Volume")
        print("-" * 70)
        for bar in history.value[-5:]:
            print(
                f"{bar.timestamp.date()}  "
                f"${bar.open:>7.2f}  "
                f"${bar.high:>7.2f}  "
                f"${bar.low:>7.2f}  "
                f"${bar.close:>7.2f}  "
                f"{bar.volume:>10,}"
            )

        news = await resolver.resolve("AAPL", "news", limit=3)
        print(f"\n{describe(news)}")
        for article in news.value:
            print(f"  [{article.source}] {article.title}")

        print("\nInvalidating the AAPL quote...")
        resolver.invalidate("AAPL", "quote")
        refreshed = await resolver.resolve("AAPL", "quote")
        print(f"{describe(refreshed)}")

        print(f"\nStats: {resolver.get_stats()}")


async def fallback_pipeline(config: Config) -> None:
    """Show synthesis when every provider is rate limited."""
    print("\n" + "=" * 60)
    print("Demo 2: Fallback when providers are throttled")
    print("=" * 60)

    throttled = MockProvider("throttled")
    throttled.queue(*[Retryable("HTTP 429", code=429)] * 3)
    resolver = create_resolver(config, descriptors=[ProviderDescriptor(throttled, priority=1)])

    async with resolver:
        result = await resolver.resolve("MSFT", "quote")
        print(f"\n{describe(result)}")
        print(f"  Synthetic price: ${result.value.price:.2f}")

        health = resolver.health()["throttled"]
        print(f"  Provider state: {health.state.value}, failures: {health.consecutive_failures}")


async def main() -> None:
    """Run resolver demo."""
    print("#" * 60)
    print("# Tickerflow Resolver Demo")
    print("#" * 60)

    config = Config()
    setup_logging(level="WARNING", format_type="text", stream=sys.stderr)

    await live_pipeline(config)
    await fallback_pipeline(config)

    print("\n" + "#" * 60)
    print("# Demo Complete!")
    print("#" * 60)
    print()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nDemo interrupted by user")
        sys.exit(0)
