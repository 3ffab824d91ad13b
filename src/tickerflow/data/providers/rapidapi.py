"""RapidAPI provider: Yahoo Finance market news."""

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from ..models import NewsArticle
from ..requests import RequestKey, RequestKind
from .rest import RestProvider

RAPIDAPI_HOST = "yahoo-finance15.p.rapidapi.com"


def _parse_pub_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class RapidApiNewsProvider(RestProvider):
    """Market news from the yahoo-finance15 API on RapidAPI."""

    BASE_URL = f"https://{RAPIDAPI_HOST}/api/v1/markets/news"
    provider_id = "rapidapi"

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset({RequestKind.NEWS})

    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        headers = {"x-rapidapi-key": self.api_key, "x-rapidapi-host": RAPIDAPI_HOST}
        return self.BASE_URL, {"tickers": key.symbol}, headers

    def _parse(self, key: RequestKey, payload: Any) -> list[NewsArticle] | None:
        # The article list has been seen under "body", under "data" and at the root.
        if isinstance(payload, dict):
            items = payload.get("body") or payload.get("data")
        else:
            items = payload
        if not isinstance(items, list):
            return None

        articles = []
        for item in items[: key.limit]:
            articles.append(
                NewsArticle(
                    title=item["title"],
                    url=item.get("link") or item.get("url", ""),
                    source=item.get("source") or "Yahoo Finance",
                    published_at=_parse_pub_date(item.get("pubDate")),
                    summary=item.get("description"),
                    thumbnail=item.get("img"),
                )
            )
        return articles
