"""Yahoo Finance data provider implementation."""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any

import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from ...utils.logging import get_logger
from ..models import OHLCV, CompanyOverview, NewsArticle, Quote
from ..provider import Fatal, Ok, Provider, ProviderResponse, Retryable
from ..requests import DEFAULT_INTERVAL, RequestKey, RequestKind

logger = get_logger(__name__)

# interval -> (yfinance period, yfinance bar interval)
HISTORY_PERIODS = {
    "1d": ("1d", "1m"),
    "1w": ("5d", "60m"),
    "1m": ("1mo", "1d"),
    "3m": ("3mo", "1d"),
    "6m": ("6mo", "1d"),
    "1y": ("1y", "1d"),
}


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


class YahooFinanceProvider(Provider):
    """Yahoo Finance data provider.

    Uses yfinance library to fetch quotes, historical data, company profiles and
    news. No API key required but has rate limits. yfinance is blocking, so
    every call runs in the default executor.
    """

    provider_id = "yahoo_finance"
    host = "query1.finance.yahoo.com"

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset(RequestKind)

    async def fetch(self, key: RequestKey) -> ProviderResponse:
        logger.debug("yahoo_fetch", key=str(key))

        try:
            value = await self._fetch(key)
        except YFRateLimitError as e:
            return Retryable(f"Yahoo Finance rate limited: {e}", code=429)

        if value is None:
            return Fatal(f"No data found for {key}")
        return Ok(value)

    async def _fetch(self, key: RequestKey) -> Any:
        # Run blocking yfinance calls in executor
        loop = asyncio.get_running_loop()
        ticker = await loop.run_in_executor(None, yf.Ticker, key.symbol)

        if key.kind is RequestKind.QUOTE:
            return await loop.run_in_executor(None, self._quote, ticker, key.symbol)
        if key.kind is RequestKind.HISTORY:
            return await loop.run_in_executor(None, self._history, ticker, key)
        if key.kind is RequestKind.DETAILS:
            return await loop.run_in_executor(None, self._overview, ticker, key.symbol)
        return await loop.run_in_executor(None, self._news, ticker, key)

    def _quote(self, ticker: Any, symbol: str) -> Quote | None:
        hist = ticker.history(period="5d")
        if hist.empty:
            return None

        latest = hist.iloc[-1]
        timestamp = hist.index[-1].to_pydatetime()

        # Get previous close from second-to-last day if available
        previous_close = None
        if len(hist) > 1:
            previous_close = _decimal(hist.iloc[-2]["Close"])

        quote = Quote(
            symbol=symbol,
            price=_decimal(latest["Close"]),
            volume=int(latest["Volume"]),
            timestamp=timestamp,
            open=_decimal(latest["Open"]),
            high=_decimal(latest["High"]),
            low=_decimal(latest["Low"]),
            previous_close=previous_close,
        )

        logger.info("quote_fetched", symbol=symbol, price=float(quote.price), volume=quote.volume)
        return quote

    def _history(self, ticker: Any, key: RequestKey) -> list[OHLCV] | None:
        period, interval = HISTORY_PERIODS[key.interval or DEFAULT_INTERVAL]
        hist = ticker.history(period=period, interval=interval, auto_adjust=False)
        if hist.empty:
            return None

        # Convert DataFrame to OHLCV objects
        data = [
            OHLCV(
                timestamp=idx.to_pydatetime(),
                open=_decimal(row["Open"]),
                high=_decimal(row["High"]),
                low=_decimal(row["Low"]),
                close=_decimal(row["Close"]),
                volume=int(row["Volume"]),
            )
            for idx, row in hist.iterrows()
        ]

        logger.info(
            "historical_data_fetched",
            symbol=key.symbol,
            interval=key.interval,
            count=len(data),
        )
        return data

    def _overview(self, ticker: Any, symbol: str) -> CompanyOverview | None:
        info = ticker.info
        if not info or "longName" not in info and "shortName" not in info:
            return None

        def optional_decimal(field: str) -> Decimal | None:
            return _decimal(info[field]) if info.get(field) is not None else None

        overview = CompanyOverview(
            symbol=symbol,
            name=info.get("longName") or info.get("shortName", symbol),
            exchange=info.get("exchange", ""),
            sector=info.get("sector"),
            industry=info.get("industry"),
            market_cap=info.get("marketCap"),
            pe_ratio=info.get("trailingPE"),
            beta=info.get("beta"),
            eps=optional_decimal("trailingEps"),
            dividend_yield=info.get("dividendYield"),
            week_52_high=optional_decimal("fiftyTwoWeekHigh"),
            week_52_low=optional_decimal("fiftyTwoWeekLow"),
            shares_outstanding=info.get("sharesOutstanding"),
        )

        logger.info(
            "company_overview_fetched",
            symbol=symbol,
            name=overview.name,
            sector=overview.sector,
        )
        return overview

    def _news(self, ticker: Any, key: RequestKey) -> list[NewsArticle] | None:
        items = ticker.news
        if not items:
            return None

        articles = []
        for item in items[: key.limit]:
            # Newer yfinance releases nest the article under "content".
            content = item.get("content", item)
            articles.append(
                NewsArticle(
                    title=content.get("title", ""),
                    url=_news_url(content),
                    source=_news_source(content),
                    published_at=_news_date(content),
                    summary=content.get("summary"),
                )
            )

        logger.info("news_fetched", symbol=key.symbol, count=len(articles))
        return articles


def _news_url(content: dict[str, Any]) -> str:
    canonical = content.get("canonicalUrl")
    if isinstance(canonical, dict) and canonical.get("url"):
        return str(canonical["url"])
    return str(content.get("link", ""))


def _news_source(content: dict[str, Any]) -> str:
    provider = content.get("provider")
    if isinstance(provider, dict) and provider.get("displayName"):
        return str(provider["displayName"])
    return str(content.get("publisher") or "Yahoo Finance")


def _news_date(content: dict[str, Any]) -> datetime | None:
    if content.get("pubDate"):
        try:
            return datetime.fromisoformat(str(content["pubDate"]).replace("Z", "+00:00"))
        except ValueError:
            return None
    if content.get("providerPublishTime"):
        return datetime.fromtimestamp(content["providerPublishTime"])
    return None
