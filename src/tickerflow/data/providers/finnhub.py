"""Finnhub provider: real-time quotes and company profiles."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from ..models import CompanyOverview, Quote
from ..requests import RequestKey, RequestKind
from .rest import RestProvider, to_decimal, to_float

MILLION = 1_000_000


class FinnhubProvider(RestProvider):
    """Finnhub data provider.

    Requires an API key from https://finnhub.io/. The free tier allows 60 calls
    per minute.
    """

    BASE_URL = "https://finnhub.io/api/v1"
    provider_id = "finnhub"

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset({RequestKind.QUOTE, RequestKind.DETAILS})

    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        path = "/quote" if key.kind is RequestKind.QUOTE else "/stock/profile2"
        return f"{self.BASE_URL}{path}", {"symbol": key.symbol, "token": self.api_key}, None

    def _parse(self, key: RequestKey, payload: Any) -> Any:
        if key.kind is RequestKind.QUOTE:
            return self._parse_quote(key.symbol, payload)
        return self._parse_profile(key.symbol, payload)

    def _parse_quote(self, symbol: str, data: dict[str, Any]) -> Quote | None:
        # Unknown symbols come back as all zeros.
        if not data or not data.get("t") or not data.get("c"):
            return None

        return Quote(
            symbol=symbol,
            price=Decimal(str(data["c"])),
            volume=0,
            timestamp=datetime.fromtimestamp(data["t"]),
            open=Decimal(str(data["o"])),
            high=Decimal(str(data["h"])),
            low=Decimal(str(data["l"])),
            previous_close=to_decimal(data.get("pc")),
            change=to_decimal(data.get("d")),
            change_percent=to_float(data.get("dp")),
        )

    def _parse_profile(self, symbol: str, data: dict[str, Any]) -> CompanyOverview | None:
        if not data or not data.get("name"):
            return None

        market_cap = to_float(data.get("marketCapitalization"))
        shares = to_float(data.get("shareOutstanding"))
        return CompanyOverview(
            symbol=symbol,
            name=data["name"],
            exchange=data.get("exchange", ""),
            industry=data.get("finnhubIndustry"),
            market_cap=int(market_cap * MILLION) if market_cap is not None else None,
            shares_outstanding=int(shares * MILLION) if shares is not None else None,
        )
