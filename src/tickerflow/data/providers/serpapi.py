"""SerpApi provider: Google News headlines for a symbol."""

from datetime import datetime
from typing import Any

from ..models import NewsArticle
from ..requests import RequestKey, RequestKind
from .rest import RestProvider

DATE_FORMATS = ("%m/%d/%Y, %I:%M %p, %z UTC", "%m/%d/%Y, %I:%M %p, %z")


def parse_news_date(value: str | None) -> datetime | None:
    """Parse SerpApi's Google News date, None when the format is unknown."""
    if not value:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


class SerpApiNewsProvider(RestProvider):
    """News search through SerpApi's google_news engine."""

    BASE_URL = "https://serpapi.com/search"
    provider_id = "serpapi"

    def capabilities(self) -> frozenset[RequestKind]:
        return frozenset({RequestKind.NEWS})

    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        params = {
            "engine": "google_news",
            "q": f"{key.symbol} stock",
            "tbm": "nws",
            "num": key.limit,
            "api_key": self.api_key,
        }
        return self.BASE_URL, params, None

    def _parse(self, key: RequestKey, payload: Any) -> list[NewsArticle] | None:
        results = payload.get("news_results")
        if results is None:
            return None

        articles = []
        for item in results[: key.limit]:
            source = item.get("source")
            if isinstance(source, dict):
                source = source.get("name")
            articles.append(
                NewsArticle(
                    title=item["title"],
                    url=item.get("link", ""),
                    source=source or "Google News",
                    published_at=parse_news_date(item.get("date")),
                    summary=item.get("snippet"),
                    thumbnail=item.get("thumbnail"),
                )
            )
        return articles
