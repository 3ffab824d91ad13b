"""Provider interface and call outcomes."""

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from .models import OHLCV, CompanyOverview, NewsArticle, Quote
from .requests import RequestKey, RequestKind

RETRYABLE_STATUS_CODES = frozenset({429, 503, 504})


@dataclass(frozen=True)
class Ok:
    """Successful provider call."""

    value: Any


@dataclass(frozen=True)
class Retryable:
    """Transient failure (HTTP 429/503/504 or network I/O); worth retrying."""

    reason: str
    code: int | None = None


@dataclass(frozen=True)
class Fatal:
    """Permanent failure for this call (other HTTP errors, parse errors, no data)."""

    reason: str
    code: int | None = None


ProviderResponse = Ok | Retryable | Fatal


def classify_status(status: int, reason: str = "") -> Retryable | Fatal:
    """Map a non-success HTTP status to a call outcome."""
    message = reason or f"HTTP {status}"
    if status in RETRYABLE_STATUS_CODES:
        return Retryable(message, code=status)
    return Fatal(message, code=status)


def is_empty(value: Any) -> bool:
    """Check whether a provider payload carries no data."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, str)):
        return len(value) == 0
    return False


class Provider(ABC):
    """Abstract base class for upstream data sources.

    Each provider declares which request kinds it can serve and the host it
    talks to, which is what outbound pacing is keyed on. ``fetch`` reports
    failures as :class:`Retryable` or :class:`Fatal` values instead of raising.
    """

    provider_id: str = "provider"
    host: str = "localhost"

    @abstractmethod
    def capabilities(self) -> frozenset[RequestKind]:
        """Request kinds this provider can serve."""
        pass

    def supports(self, kind: RequestKind) -> bool:
        return kind in self.capabilities()

    @abstractmethod
    async def fetch(self, key: RequestKey) -> ProviderResponse:
        """Fetch data for a request.

        Args:
            key: What to fetch

        Returns:
            Ok with the domain value, or a Retryable/Fatal outcome
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.provider_id!r}, host={self.host!r})"


class MockProvider(Provider):
    """Scripted provider for testing and local development.

    Queued outcomes (or exceptions to raise) are consumed one per call. Once
    the script is empty the provider returns realistic fake data.
    """

    def __init__(
        self,
        provider_id: str = "mock",
        capabilities: Iterable[RequestKind] | None = None,
        responses: Iterable[ProviderResponse | BaseException] | None = None,
        host: str | None = None,
        delay: float = 0.0,
    ) -> None:
        """Initialize mock provider.

        Args:
            provider_id: Identifier reported in results
            capabilities: Kinds served (defaults to all)
            responses: Outcomes returned, in order, before falling back to fake data
            host: Host identity for pacing (defaults to '<id>.mock')
            delay: Seconds to wait inside every call
        """
        self.provider_id = provider_id
        self.host = host or f"{provider_id}.mock"
        self._capabilities = frozenset(capabilities or RequestKind)
        self._script: deque[ProviderResponse | BaseException] = deque(responses or [])
        self.delay = delay
        self.calls: list[RequestKey] = []
        self._mock_price = Decimal("150.00")

    def capabilities(self) -> frozenset[RequestKind]:
        return self._capabilities

    def queue(self, *responses: ProviderResponse | BaseException) -> None:
        """Append outcomes to the script."""
        self._script.extend(responses)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch(self, key: RequestKey) -> ProviderResponse:
        self.calls.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)

        if self._script:
            item = self._script.popleft()
            if isinstance(item, BaseException):
                raise item
            return item

        return Ok(self._fake_value(key))

    def _fake_value(self, key: RequestKey) -> Any:
        now = datetime.now()

        if key.kind is RequestKind.QUOTE:
            return Quote(
                symbol=key.symbol,
                price=self._mock_price,
                volume=1000000,
                timestamp=now,
                open=Decimal("148.00"),
                high=Decimal("151.00"),
                low=Decimal("147.50"),
                previous_close=Decimal("149.00"),
            )

        if key.kind is RequestKind.DETAILS:
            return CompanyOverview(
                symbol=key.symbol,
                name=f"{key.symbol} Inc.",
                exchange="NASDAQ",
                sector="Technology",
                industry="Software",
                market_cap=1_000_000_000_000,
                pe_ratio=25.0,
                eps=Decimal("6.00"),
                beta=1.2,
            )

        if key.kind is RequestKind.HISTORY:
            bars = []
            for i in range(5):
                price = self._mock_price + Decimal(i)
                bars.append(
                    OHLCV(
                        timestamp=now - timedelta(days=5 - i),
                        open=price - Decimal("1"),
                        high=price + Decimal("2"),
                        low=price - Decimal("2"),
                        close=price,
                        volume=1000000 + i * 10000,
                    )
                )
            return bars

        return [
            NewsArticle(
                title=f"{key.symbol} headline {i + 1}",
                url=f"https://news.example.com/{key.symbol.lower()}/{i + 1}",
                source="Mock Wire",
                published_at=now - timedelta(hours=i),
            )
            for i in range(key.limit or 3)
        ]
