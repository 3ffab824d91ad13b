"""Tests for concrete providers with the HTTP layer mocked out."""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from tickerflow.data.models import OHLCV, CompanyOverview, NewsArticle, Quote
from tickerflow.data.provider import Fatal, Ok, Retryable
from tickerflow.data.providers import (
    AlphaVantageProvider,
    FinnhubProvider,
    PolygonProvider,
    RapidApiNewsProvider,
    SerpApiNewsProvider,
    YahooFinanceProvider,
)
from tickerflow.data.requests import RequestKey, RequestKind
from yfinance.exceptions import YFRateLimitError


class TestRestProvider:
    """Behavior shared by all HTTP providers."""

    def test_api_key_required(self) -> None:
        """Providers refuse to start without a key."""
        with pytest.raises(ValueError, match="API key"):
            FinnhubProvider("")

    def test_host_from_base_url(self) -> None:
        """Pacing host identity comes from the base URL."""
        assert FinnhubProvider("k").host == "finnhub.io"
        assert PolygonProvider("k").host == "api.polygon.io"
        assert RapidApiNewsProvider("k").host == "yahoo-finance15.p.rapidapi.com"

    async def test_unsupported_kind_fatal(self) -> None:
        """Requests outside the provider's capabilities fail without a call."""
        provider = PolygonProvider("k")
        with patch.object(provider, "_request", new=AsyncMock()) as request:
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Fatal)
        request.assert_not_awaited()

    @pytest.mark.parametrize("status", [429, 503, 504])
    async def test_retryable_status(self, status: int) -> None:
        """Throttling and gateway errors are retryable."""
        provider = FinnhubProvider("k")
        with patch.object(provider, "_request", new=AsyncMock(return_value=(status, "busy"))):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Retryable)
        assert outcome.code == status

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 500])
    async def test_fatal_status(self, status: int) -> None:
        """Other HTTP errors are fatal."""
        provider = FinnhubProvider("k")
        with patch.object(provider, "_request", new=AsyncMock(return_value=(status, "no"))):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Fatal)
        assert outcome.code == status

    async def test_malformed_payload_fatal(self) -> None:
        """Parse failures become fatal outcomes."""
        provider = FinnhubProvider("k")
        payload = {"c": "not-a-number", "t": 1717430400, "o": 1, "h": 1, "l": 1}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Fatal)
        assert "parse" in outcome.reason


class TestFinnhubProvider:
    """Tests for FinnhubProvider."""

    @pytest.fixture
    def provider(self) -> FinnhubProvider:
        """Create Finnhub provider."""
        return FinnhubProvider("test-key")

    async def test_quote(self, provider: FinnhubProvider) -> None:
        """Quote fields are mapped from the /quote payload."""
        payload = {
            "c": 189.5,
            "d": 1.5,
            "dp": 0.8,
            "h": 190.1,
            "l": 187.2,
            "o": 188.0,
            "pc": 188.0,
            "t": 1717430400,
        }
        request = AsyncMock(return_value=(200, payload))
        with patch.object(provider, "_request", new=request):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Ok)
        quote = outcome.value
        assert isinstance(quote, Quote)
        assert quote.price == Decimal("189.5")
        assert quote.previous_close == Decimal("188.0")
        assert quote.change == Decimal("1.5")
        assert quote.change_percent == 0.8

        url, params, _ = request.await_args.args
        assert url == "https://finnhub.io/api/v1/quote"
        assert params == {"symbol": "AAPL", "token": "test-key"}

    async def test_unknown_symbol(self, provider: FinnhubProvider) -> None:
        """An all-zero quote means no data."""
        payload = {"c": 0, "d": None, "dp": None, "h": 0, "l": 0, "o": 0, "pc": 0, "t": 0}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.quote("ZZZZ"))

        assert isinstance(outcome, Fatal)

    async def test_profile(self, provider: FinnhubProvider) -> None:
        """Market cap and shares are reported in millions."""
        payload = {
            "name": "Apple Inc",
            "exchange": "NASDAQ NMS - GLOBAL MARKET",
            "finnhubIndustry": "Technology",
            "marketCapitalization": 2900000.5,
            "shareOutstanding": 15334.5,
        }
        request = AsyncMock(return_value=(200, payload))
        with patch.object(provider, "_request", new=request):
            outcome = await provider.fetch(RequestKey.details("AAPL"))

        assert isinstance(outcome, Ok)
        overview = outcome.value
        assert isinstance(overview, CompanyOverview)
        assert overview.name == "Apple Inc"
        assert overview.industry == "Technology"
        assert overview.market_cap == 2_900_000_500_000
        assert overview.shares_outstanding == 15_334_500_000
        assert request.await_args.args[0].endswith("/stock/profile2")

    async def test_empty_profile(self, provider: FinnhubProvider) -> None:
        """An empty profile means no data."""
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, {}))):
            outcome = await provider.fetch(RequestKey.details("ZZZZ"))

        assert isinstance(outcome, Fatal)


class TestPolygonProvider:
    """Tests for PolygonProvider."""

    @pytest.fixture
    def provider(self) -> PolygonProvider:
        """Create Polygon provider with a fixed date."""
        return PolygonProvider("test-key", today=lambda: date(2024, 6, 3))

    @pytest.mark.parametrize(
        ("interval", "bar_size", "start"),
        [
            ("1d", "1/minute", "2024-06-02"),
            ("1w", "1/hour", "2024-05-27"),
            ("1y", "1/day", "2023-06-04"),
        ],
    )
    async def test_request_url(
        self, provider: PolygonProvider, interval: str, bar_size: str, start: str
    ) -> None:
        """The aggregate range depends on the interval."""
        request = AsyncMock(return_value=(200, {"results": []}))
        with patch.object(provider, "_request", new=request):
            await provider.fetch(RequestKey.history("AAPL", interval))

        url, params, _ = request.await_args.args
        assert url == (
            f"https://api.polygon.io/v2/aggs/ticker/AAPL/range/{bar_size}/{start}/2024-06-03"
        )
        assert params["apiKey"] == "test-key"
        assert params["sort"] == "asc"

    async def test_parse_bars(self, provider: PolygonProvider) -> None:
        """Results are converted to OHLCV bars in time order."""
        payload = {
            "results": [
                {"t": 1717459200000, "o": 2, "h": 3, "l": 1, "c": 2.5, "v": 200},
                {"t": 1717372800000, "o": 1, "h": 2, "l": 0.5, "c": 1.5, "v": 100},
            ]
        }
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.history("AAPL", "1m"))

        assert isinstance(outcome, Ok)
        bars = outcome.value
        assert all(isinstance(b, OHLCV) for b in bars)
        assert [b.volume for b in bars] == [100, 200]
        assert bars[0].timestamp == datetime.fromtimestamp(1717372800)
        assert bars[1].close == Decimal("2.5")

    async def test_no_results(self, provider: PolygonProvider) -> None:
        """A payload without results means no data."""
        payload = {"status": "OK", "resultsCount": 0}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.history("AAPL"))

        assert isinstance(outcome, Fatal)


class TestSerpApiNewsProvider:
    """Tests for SerpApiNewsProvider."""

    async def test_news(self) -> None:
        """Google News results are mapped to articles and limited."""
        provider = SerpApiNewsProvider("test-key")
        payload = {
            "news_results": [
                {
                    "title": f"Apple story {i}",
                    "link": f"https://news.example.com/{i}",
                    "source": {"name": "Example News"},
                    "date": "06/03/2024, 02:00 PM, +0000 UTC",
                    "snippet": "Summary",
                    "thumbnail": "https://img.example.com/t.jpg",
                }
                for i in range(5)
            ]
        }
        request = AsyncMock(return_value=(200, payload))
        with patch.object(provider, "_request", new=request):
            outcome = await provider.fetch(RequestKey.news("AAPL", limit=3))

        assert isinstance(outcome, Ok)
        articles = outcome.value
        assert len(articles) == 3
        assert all(isinstance(a, NewsArticle) for a in articles)
        assert articles[0].source == "Example News"
        assert articles[0].published_at is not None
        assert articles[0].published_at.hour == 14

        _, params, _ = request.await_args.args
        assert params["engine"] == "google_news"
        assert params["q"] == "AAPL stock"
        assert params["num"] == 3

    async def test_unknown_date_format(self) -> None:
        """Unparseable dates are dropped rather than failing the response."""
        provider = SerpApiNewsProvider("test-key")
        payload = {"news_results": [{"title": "t", "link": "l", "date": "yesterday"}]}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.news("AAPL"))

        assert isinstance(outcome, Ok)
        assert outcome.value[0].published_at is None


class TestRapidApiNewsProvider:
    """Tests for RapidApiNewsProvider."""

    @pytest.fixture
    def provider(self) -> RapidApiNewsProvider:
        """Create RapidAPI provider."""
        return RapidApiNewsProvider("test-key")

    @pytest.mark.parametrize("container", ["body", "data", None])
    async def test_article_locations(
        self, provider: RapidApiNewsProvider, container: str | None
    ) -> None:
        """Articles are found under body, data or at the root."""
        items = [
            {
                "title": "Apple rallies",
                "link": "https://finance.example.com/a",
                "pubDate": "Mon, 03 Jun 2024 14:00:00 +0000",
                "source": "Reuters",
            }
        ]
        payload = {container: items} if container else items
        request = AsyncMock(return_value=(200, payload))
        with patch.object(provider, "_request", new=request):
            outcome = await provider.fetch(RequestKey.news("AAPL"))

        assert isinstance(outcome, Ok)
        assert outcome.value[0].title == "Apple rallies"
        assert outcome.value[0].published_at is not None

        _, params, headers = request.await_args.args
        assert params == {"tickers": "AAPL"}
        assert headers["x-rapidapi-key"] == "test-key"

    async def test_no_articles(self, provider: RapidApiNewsProvider) -> None:
        """A payload without an article list means no data."""
        payload = {"meta": {}}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.news("AAPL"))

        assert isinstance(outcome, Fatal)


class TestAlphaVantageProvider:
    """Tests for AlphaVantageProvider."""

    @pytest.fixture
    def provider(self) -> AlphaVantageProvider:
        """Create Alpha Vantage provider with a fixed date."""
        return AlphaVantageProvider("test-key", today=lambda: date(2024, 6, 3))

    async def test_quote(self, provider: AlphaVantageProvider) -> None:
        """GLOBAL_QUOTE fields are mapped to a Quote."""
        payload = {
            "Global Quote": {
                "01. symbol": "IBM",
                "02. open": "168.00",
                "03. high": "170.50",
                "04. low": "167.25",
                "05. price": "169.75",
                "06. volume": "3500000",
                "08. previous close": "167.80",
                "09. change": "1.95",
                "10. change percent": "1.1621%",
            }
        }
        request = AsyncMock(return_value=(200, payload))
        with patch.object(provider, "_request", new=request):
            outcome = await provider.fetch(RequestKey.quote("IBM"))

        assert isinstance(outcome, Ok)
        assert outcome.value.price == Decimal("169.75")
        assert outcome.value.change_percent == pytest.approx(1.1621)
        assert request.await_args.args[1]["function"] == "GLOBAL_QUOTE"

    async def test_throttle_note_retryable(self, provider: AlphaVantageProvider) -> None:
        """The frequency-limit note is treated like HTTP 429."""
        payload = {"Note": "Thank you for using Alpha Vantage! Our standard API rate limit..."}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.quote("IBM"))

        assert isinstance(outcome, Retryable)
        assert outcome.code == 429

    async def test_information_retryable(self, provider: AlphaVantageProvider) -> None:
        """The daily-limit information message is treated like HTTP 429."""
        payload = {"Information": "You have reached the daily rate limit."}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.details("IBM"))

        assert isinstance(outcome, Retryable)

    async def test_error_message_fatal(self, provider: AlphaVantageProvider) -> None:
        """API error messages are fatal."""
        payload = {"Error Message": "Invalid API call."}
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.quote("IBM"))

        assert isinstance(outcome, Fatal)

    async def test_history_window(self, provider: AlphaVantageProvider) -> None:
        """Daily bars are limited to the requested window and sorted."""
        bar = {
            "1. open": "1.0",
            "2. high": "2.0",
            "3. low": "0.5",
            "4. close": "1.5",
            "5. volume": "100",
        }
        payload = {
            "Meta Data": {},
            "Time Series (Daily)": {
                "2024-06-03": bar,
                "2024-05-31": bar,
                "2024-05-28": bar,
                "2024-04-01": bar,
            },
        }
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.history("IBM", "1w"))

        assert isinstance(outcome, Ok)
        assert [b.timestamp.day for b in outcome.value] == [28, 31, 3]

    async def test_overview(self, provider: AlphaVantageProvider) -> None:
        """OVERVIEW fields are mapped, with 'None' strings treated as missing."""
        payload = {
            "Symbol": "IBM",
            "Name": "International Business Machines",
            "Exchange": "NYSE",
            "Sector": "TECHNOLOGY",
            "MarketCapitalization": "155000000000",
            "PERatio": "18.5",
            "Beta": "None",
            "EPS": "9.1",
        }
        with patch.object(provider, "_request", new=AsyncMock(return_value=(200, payload))):
            outcome = await provider.fetch(RequestKey.details("IBM"))

        assert isinstance(outcome, Ok)
        overview = outcome.value
        assert overview.market_cap == 155_000_000_000
        assert overview.pe_ratio == 18.5
        assert overview.beta is None
        assert overview.eps == Decimal("9.1")


class TestYahooFinanceProvider:
    """Tests for YahooFinanceProvider."""

    def test_serves_every_kind(self) -> None:
        """Yahoo Finance is the catch-all provider."""
        assert YahooFinanceProvider().capabilities() == frozenset(RequestKind)

    async def test_rate_limit_retryable(self) -> None:
        """yfinance rate limiting is retryable."""
        provider = YahooFinanceProvider()
        with patch.object(provider, "_fetch", new=AsyncMock(side_effect=YFRateLimitError())):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Retryable)
        assert outcome.code == 429

    async def test_no_data_fatal(self) -> None:
        """An empty result is fatal for the call."""
        provider = YahooFinanceProvider()
        with patch.object(provider, "_fetch", new=AsyncMock(return_value=None)):
            outcome = await provider.fetch(RequestKey.quote("AAPL"))

        assert isinstance(outcome, Fatal)

    def test_news_formats(self) -> None:
        """Both the nested and the flat news item layouts are understood."""
        ticker = SimpleNamespace(
            news=[
                {
                    "content": {
                        "title": "Nested",
                        "canonicalUrl": {"url": "https://finance.yahoo.com/a"},
                        "provider": {"displayName": "Reuters"},
                        "pubDate": "2024-06-03T14:00:00Z",
                        "summary": "s",
                    }
                },
                {
                    "title": "Flat",
                    "link": "https://finance.yahoo.com/b",
                    "publisher": "Bloomberg",
                    "providerPublishTime": 1717423200,
                },
            ]
        )

        articles = YahooFinanceProvider()._news(ticker, RequestKey.news("AAPL"))

        assert articles is not None
        assert [a.title for a in articles] == ["Nested", "Flat"]
        assert [a.source for a in articles] == ["Reuters", "Bloomberg"]
        assert articles[0].url == "https://finance.yahoo.com/a"
        assert all(a.published_at is not None for a in articles)
