"""Data models for market data returned by the resolution pipeline."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Quote:
    """Latest quote for a stock symbol."""

    symbol: str
    price: Decimal
    volume: int
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    previous_close: Decimal | None = None
    change: Decimal | None = None
    change_percent: float | None = None

    def __post_init__(self) -> None:
        """Calculate derived fields if not provided."""
        if self.previous_close and self.change is None:
            self.change = self.price - self.previous_close
        if self.previous_close and self.change_percent is None and self.previous_close != 0:
            self.change_percent = float(
                (self.price - self.previous_close) / self.previous_close * 100
            )


@dataclass
class OHLCV:
    """OHLCV (candlestick) data point."""

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int

    @property
    def price_range(self) -> Decimal:
        """Calculate price range for the period."""
        return self.high - self.low


@dataclass
class CompanyOverview:
    """Company profile and fundamentals."""

    symbol: str
    name: str
    exchange: str
    sector: str | None = None
    industry: str | None = None
    market_cap: int | None = None
    pe_ratio: float | None = None
    beta: float | None = None
    eps: Decimal | None = None
    dividend_yield: float | None = None
    week_52_high: Decimal | None = None
    week_52_low: Decimal | None = None
    shares_outstanding: int | None = None


@dataclass
class NewsArticle:
    """A news headline about a symbol."""

    title: str
    url: str
    source: str
    published_at: datetime | None = None
    summary: str | None = None
    thumbnail: str | None = None
