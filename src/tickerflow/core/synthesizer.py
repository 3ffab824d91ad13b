"""Fallback synthesizer: placeholder data when no real source answers.

Values are generated from a ``random.Random`` seeded with the configured seed and
the request key, so the same inputs always produce the same output. When a
last-known real value exists it is perturbed slightly instead of inventing an
unrelated one, which keeps charts continuous.
"""

import random
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from ..data.models import OHLCV, CompanyOverview, NewsArticle, Quote
from ..data.requests import DEFAULT_INTERVAL, RequestKey, RequestKind
from ..utils.logging import get_logger

logger = get_logger(__name__)

# Baselines used when nothing real is known about a symbol.
BASELINE_PRICE = Decimal("100.00")
BASELINE_VOLUME = 2_500_000
BASELINE_MARKET_CAP = 1_000_000_000
BASELINE_PE_RATIO = 20.0
BASELINE_BETA = 1.0

HISTORY_VOLATILITY = 0.02
SYNTHETIC_SOURCE = "Synthetic"

# interval -> (bucket count, bucket width)
INTERVAL_BUCKETS: dict[str, tuple[int, timedelta]] = {
    "1d": (390, timedelta(minutes=1)),
    "1w": (168, timedelta(hours=1)),
    "1m": (30, timedelta(days=1)),
    "3m": (90, timedelta(days=1)),
    "6m": (180, timedelta(days=1)),
    "1y": (252, timedelta(days=1)),
}

POSITIVE_HEADLINES = (
    "{} reports better-than-expected earnings",
    "Analysts upgrade {} following strong performance",
    "{} shares surge on positive outlook",
    "Investors bullish on {} growth prospects",
    "{} outperforms market expectations",
)
NEGATIVE_HEADLINES = (
    "{} shares drop on missed expectations",
    "Analysts downgrade {} amid market concerns",
    "{} faces headwinds in current market",
    "Market pressures impact {} performance",
    "{} stock declines amid sector weakness",
)
NEUTRAL_HEADLINES = (
    "{} trading activity shows mixed signals",
    "Market analysis: What's next for {}?",
    "Investors monitor {} amid changing conditions",
    "Analysts provide balanced view on {} prospects",
    "What investors should know about {}",
)


def _money(value: float) -> Decimal:
    return Decimal(str(round(max(value, 0.01), 2)))


class FallbackSynthesizer:
    """Generates structurally valid placeholder values for every request kind."""

    def __init__(
        self,
        seed: int = 42,
        price_jitter: float = 0.02,
        volume_jitter: float = 0.20,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            seed: Base seed for reproducible output
            price_jitter: Maximum relative price perturbation
            volume_jitter: Maximum relative volume perturbation
        """
        self.seed = seed
        self.price_jitter = price_jitter
        self.volume_jitter = volume_jitter

    def _rng(self, key: RequestKey) -> random.Random:
        return random.Random(f"{self.seed}:{key}")

    def synthesize(
        self,
        key: RequestKey,
        last_known: Any = None,
        reference_quote: Quote | None = None,
        now: datetime | None = None,
    ) -> Any:
        """Produce a placeholder value for a request.

        Args:
            key: Request being resolved
            last_known: Last real value seen for this exact key, if any
            reference_quote: Last real quote for the symbol, used as a price anchor
            now: Timestamp for generated data (defaults to the current time)

        Returns:
            A Quote, CompanyOverview, list of OHLCV bars or list of NewsArticle
        """
        now = now or datetime.now()
        rng = self._rng(key)

        if key.kind is RequestKind.QUOTE:
            anchor = last_known if isinstance(last_known, Quote) else reference_quote
            value: Any = self.quote(key.symbol, anchor, rng, now)
        elif key.kind is RequestKind.DETAILS:
            value = self.details(key.symbol, last_known)
        elif key.kind is RequestKind.HISTORY:
            value = self.history(key, last_known, reference_quote, rng, now)
        else:
            value = self.news(key, last_known, rng, now)

        logger.debug(
            "value_synthesized",
            key=str(key),
            anchored=last_known is not None or reference_quote is not None,
        )
        return value

    def quote(
        self, symbol: str, last_known: Quote | None, rng: random.Random, now: datetime
    ) -> Quote:
        if last_known is not None:
            reference = float(last_known.price)
            base_volume = last_known.volume or BASELINE_VOLUME
            previous_close = float(last_known.previous_close or last_known.price)
        else:
            reference = float(BASELINE_PRICE)
            base_volume = BASELINE_VOLUME
            previous_close = reference

        price = reference * (1 + rng.uniform(-self.price_jitter, self.price_jitter))
        open_ = previous_close * (1 + rng.uniform(-0.01, 0.01))
        high = max(price, open_) * (1 + rng.uniform(0, 0.01))
        low = min(price, open_) * (1 - rng.uniform(0, 0.01))
        volume = int(base_volume * (1 + rng.uniform(-self.volume_jitter, self.volume_jitter)))

        return Quote(
            symbol=symbol,
            price=_money(price),
            volume=max(volume, 0),
            timestamp=now,
            open=_money(open_),
            high=_money(high),
            low=_money(low),
            previous_close=_money(previous_close),
        )

    def details(self, symbol: str, last_known: CompanyOverview | None) -> CompanyOverview:
        if isinstance(last_known, CompanyOverview):
            return replace(last_known)

        return CompanyOverview(
            symbol=symbol,
            name=symbol,
            exchange="UNKNOWN",
            market_cap=BASELINE_MARKET_CAP,
            pe_ratio=BASELINE_PE_RATIO,
            beta=BASELINE_BETA,
        )

    def history(
        self,
        key: RequestKey,
        last_known: list[OHLCV] | None,
        reference_quote: Quote | None,
        rng: random.Random,
        now: datetime,
    ) -> list[OHLCV]:
        count, step = INTERVAL_BUCKETS[key.interval or DEFAULT_INTERVAL]

        if last_known:
            anchor_price = float(last_known[-1].close)
            base_volume = last_known[-1].volume or BASELINE_VOLUME
        elif reference_quote is not None:
            anchor_price = float(reference_quote.price)
            base_volume = reference_quote.volume or BASELINE_VOLUME
        else:
            anchor_price = float(BASELINE_PRICE)
            base_volume = BASELINE_VOLUME

        # Walk backwards from the anchor so the series ends near the last known price.
        closes = [0.0] * count
        closes[-1] = anchor_price * (1 + rng.uniform(-self.price_jitter, self.price_jitter))
        for i in range(count - 2, -1, -1):
            move = (rng.random() - 0.5) * HISTORY_VOLATILITY
            closes[i] = max(closes[i + 1] / (1 + move), 0.01)

        bars = []
        start = now - step * (count - 1)
        for i, close in enumerate(closes):
            open_ = closes[i - 1] if i > 0 else close * (1 + (rng.random() - 0.5) * 0.01)
            high = max(open_, close) * (1 + rng.uniform(0, 0.005))
            low = min(open_, close) * (1 - rng.uniform(0, 0.005))
            volume = int(base_volume * (1 + rng.uniform(-self.volume_jitter, self.volume_jitter)))
            bars.append(
                OHLCV(
                    timestamp=start + step * i,
                    open=_money(open_),
                    high=_money(high),
                    low=_money(low),
                    close=_money(close),
                    volume=max(volume, 0),
                )
            )
        return bars

    def news(
        self,
        key: RequestKey,
        last_known: list[NewsArticle] | None,
        rng: random.Random,
        now: datetime,
    ) -> list[NewsArticle]:
        limit = key.limit or 10
        if last_known:
            return list(last_known[:limit])

        groups = (POSITIVE_HEADLINES, NEUTRAL_HEADLINES, NEGATIVE_HEADLINES)
        articles = []
        for i in range(limit):
            templates = rng.choice(groups)
            title = templates[(i + rng.randrange(len(templates))) % len(templates)]
            articles.append(
                NewsArticle(
                    title=title.format(key.symbol),
                    url="",
                    source=SYNTHETIC_SOURCE,
                    published_at=now - timedelta(hours=i),
                )
            )
        return articles
