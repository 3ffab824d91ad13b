"""Polygon.io provider: aggregate bars for historical prices."""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from ..models import OHLCV
from ..requests import DEFAULT_INTERVAL, RequestKey, RequestKind
from .rest import RestProvider

# interval -> (bar size, lookback)
AGGREGATES: dict[str, tuple[str, timedelta]] = {
    "1d": ("1/minute", timedelta(days=1)),
    "1w": ("1/hour", timedelta(weeks=1)),
    "1m": ("1/day", timedelta(days=30)),
    "3m": ("1/day", timedelta(days=91)),
    "6m": ("1/day", timedelta(days=182)),
    "1y": ("1/day", timedelta(days=365)),
}


class PolygonProvider(RestProvider):
    """Polygon.io aggregates provider.

    The free tier allows 5 calls per minute, hence the 12 second default
    minimum interval configured for this host.
    """

    BASE_URL = "https://api.polygon.io"
    provider_id = "polygon"

    def __init__(
        self, api_key: str, timeout: float = 10.0, today: Callable[[], date] = date.today
    ) -> None:
        super().__init__(api_key, timeout)
        self._today = today

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset({RequestKind.HISTORY})

    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        bar_size, lookback = AGGREGATES[key.interval or DEFAULT_INTERVAL]
        end = self._today()
        start = end - lookback
        url = (
            f"{self.BASE_URL}/v2/aggs/ticker/{key.symbol}/range/{bar_size}"
            f"/{start.isoformat()}/{end.isoformat()}"
        )
        params = {"adjusted": "true", "sort": "asc", "limit": 50000, "apiKey": self.api_key}
        return url, params, None

    def _parse(self, key: RequestKey, payload: Any) -> list[OHLCV] | None:
        results = payload.get("results")
        if results is None:
            return None

        bars = [
            OHLCV(
                timestamp=datetime.fromtimestamp(row["t"] / 1000),
                open=Decimal(str(row["o"])),
                high=Decimal(str(row["h"])),
                low=Decimal(str(row["l"])),
                close=Decimal(str(row["c"])),
                volume=int(row["v"]),
            )
            for row in results
        ]
        bars.sort(key=lambda bar: bar.timestamp)
        return bars
