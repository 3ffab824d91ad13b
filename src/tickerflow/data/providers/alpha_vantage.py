"""Alpha Vantage data provider implementation."""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from ...utils.logging import get_logger
from ..models import OHLCV, CompanyOverview, Quote
from ..provider import Fatal, ProviderResponse, Retryable
from ..requests import DEFAULT_INTERVAL, RequestKey, RequestKind
from .rest import RestProvider, to_decimal, to_float, to_int

logger = get_logger(__name__)

HISTORY_LOOKBACK = {
    "1d": timedelta(days=1),
    "1w": timedelta(weeks=1),
    "1m": timedelta(days=30),
    "3m": timedelta(days=91),
    "6m": timedelta(days=182),
    "1y": timedelta(days=365),
}

FUNCTIONS = {
    RequestKind.QUOTE: "GLOBAL_QUOTE",
    RequestKind.DETAILS: "OVERVIEW",
    RequestKind.HISTORY: "TIME_SERIES_DAILY",
}


class AlphaVantageProvider(RestProvider):
    """Alpha Vantage data provider.

    Provides quotes, company fundamentals and daily history.
    Requires API key from https://www.alphavantage.co/

    Note: Free tier limitations:
    - 5 calls per minute and 25 per day
    - Daily history is limited to the last 100 days (compact mode)
    """

    BASE_URL = "https://www.alphavantage.co/query"
    provider_id = "alpha_vantage"

    def __init__(
        self, api_key: str, timeout: float = 10.0, today: Callable[[], date] = date.today
    ) -> None:
        super().__init__(api_key, timeout)
        self._today = today

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset(FUNCTIONS)

    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        params: dict[str, Any] = {
            "function": FUNCTIONS[key.kind],
            "symbol": key.symbol,
            "apikey": self.api_key,
        }
        if key.kind is RequestKind.HISTORY:
            params["outputsize"] = "compact"
        return self.BASE_URL, params, None

    def _check_payload(self, payload: Any) -> ProviderResponse | None:
        if not isinstance(payload, dict):
            return None

        if "Error Message" in payload:
            return Fatal(f"Alpha Vantage error: {payload['Error Message']}")

        # API call frequency limit hit; reported with HTTP 200
        message = payload.get("Note") or payload.get("Information")
        if message:
            logger.warning("alpha_vantage_rate_limit", message=message)
            return Retryable(f"Alpha Vantage rate limit reached: {message}", code=429)

        return None

    def _parse(self, key: RequestKey, payload: Any) -> Any:
        if key.kind is RequestKind.QUOTE:
            return self._parse_quote(key.symbol, payload)
        if key.kind is RequestKind.DETAILS:
            return self._parse_overview(key.symbol, payload)
        return self._parse_history(key, payload)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote | None:
        quote_data = data.get("Global Quote")
        if not quote_data:
            return None

        quote = Quote(
            symbol=symbol,
            price=Decimal(quote_data["05. price"]),
            volume=int(quote_data["06. volume"]),
            timestamp=datetime.now(),  # Alpha Vantage doesn't provide exact timestamp
            open=Decimal(quote_data["02. open"]),
            high=Decimal(quote_data["03. high"]),
            low=Decimal(quote_data["04. low"]),
            previous_close=Decimal(quote_data["08. previous close"]),
            change=Decimal(quote_data["09. change"]),
            change_percent=float(quote_data["10. change percent"].rstrip("%")),
        )

        logger.info("alpha_vantage_quote_fetched", symbol=symbol, price=float(quote.price))
        return quote

    def _parse_history(self, key: RequestKey, data: dict[str, Any]) -> list[OHLCV] | None:
        time_series_key = next((k for k in data if "Time Series" in k), None)
        if not time_series_key:
            return None

        start = self._today() - HISTORY_LOOKBACK[key.interval or DEFAULT_INTERVAL]

        ohlcv_data = []
        for date_str, values in data[time_series_key].items():
            day = datetime.strptime(date_str, "%Y-%m-%d")
            if day.date() < start:
                continue
            ohlcv_data.append(
                OHLCV(
                    timestamp=day,
                    open=Decimal(values["1. open"]),
                    high=Decimal(values["2. high"]),
                    low=Decimal(values["3. low"]),
                    close=Decimal(values["4. close"]),
                    volume=int(values["5. volume"]),
                )
            )

        # Sort chronologically
        ohlcv_data.sort(key=lambda x: x.timestamp)

        logger.info(
            "alpha_vantage_historical_fetched",
            symbol=key.symbol,
            interval=key.interval,
            count=len(ohlcv_data),
        )
        return ohlcv_data

    def _parse_overview(self, symbol: str, data: dict[str, Any]) -> CompanyOverview | None:
        if not data or "Symbol" not in data:
            return None

        overview = CompanyOverview(
            symbol=symbol,
            name=data.get("Name", symbol),
            exchange=data.get("Exchange", ""),
            sector=data.get("Sector"),
            industry=data.get("Industry"),
            market_cap=to_int(data.get("MarketCapitalization")),
            pe_ratio=to_float(data.get("PERatio")),
            beta=to_float(data.get("Beta")),
            eps=to_decimal(data.get("EPS")),
            dividend_yield=to_float(data.get("DividendYield")),
            week_52_high=to_decimal(data.get("52WeekHigh")),
            week_52_low=to_decimal(data.get("52WeekLow")),
            shares_outstanding=to_int(data.get("SharesOutstanding")),
        )

        logger.info(
            "alpha_vantage_overview_fetched",
            symbol=symbol,
            name=overview.name,
            sector=overview.sector,
        )
        return overview
