"""Request keys identifying what is being resolved."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import InvalidRequestError

SYMBOL_PATTERN = re.compile(r"^[A-Z][A-Z0-9.\-]{0,9}$")

HISTORY_INTERVALS = ("1d", "1w", "1m", "3m", "6m", "1y")
DEFAULT_INTERVAL = "1d"

DEFAULT_NEWS_LIMIT = 5
MAX_NEWS_LIMIT = 50


class RequestKind(str, Enum):
    """Kinds of data the pipeline can resolve."""

    QUOTE = "quote"
    DETAILS = "details"
    HISTORY = "history"
    NEWS = "news"

    @classmethod
    def parse(cls, value: "RequestKind | str") -> "RequestKind":
        """Convert a kind name to a RequestKind.

        Raises:
            InvalidRequestError: If the kind is not supported
        """
        if isinstance(value, RequestKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRequestError(
                f"Unsupported kind: {value!r}", field="kind", value=value
            ) from None


@dataclass(frozen=True)
class RequestKey:
    """Immutable cache and single-flight key.

    ``interval`` is only set for history requests and ``limit`` only for news
    requests, so two keys compare equal iff they describe the same request.
    """

    symbol: str
    kind: RequestKind
    interval: str | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.strip().upper())

    @classmethod
    def parse(
        cls,
        symbol: Any,
        kind: RequestKind | str,
        interval: str | None = None,
        limit: int | None = None,
    ) -> "RequestKey":
        """Validate raw request fields and build a canonical key.

        Args:
            symbol: Ticker symbol, any case
            kind: RequestKind or its name
            interval: History interval (history only)
            limit: Maximum number of articles (news only)

        Returns:
            Normalized RequestKey

        Raises:
            InvalidRequestError: If any field is invalid
        """
        if not isinstance(symbol, str):
            raise InvalidRequestError("Symbol must be a string", field="symbol", value=symbol)

        normalized = symbol.strip().upper()
        if not SYMBOL_PATTERN.match(normalized):
            raise InvalidRequestError(
                f"Invalid symbol: {symbol!r}", field="symbol", value=symbol
            )

        request_kind = RequestKind.parse(kind)

        if request_kind is RequestKind.HISTORY:
            if interval is not None and not isinstance(interval, str):
                raise InvalidRequestError(
                    "Interval must be a string", field="interval", value=interval
                )
            value = (interval or DEFAULT_INTERVAL).strip().lower()
            if value not in HISTORY_INTERVALS:
                raise InvalidRequestError(
                    f"Unsupported interval: {interval!r} (expected one of {HISTORY_INTERVALS})",
                    field="interval",
                    value=interval,
                )
            return cls(normalized, request_kind, interval=value)

        if request_kind is RequestKind.NEWS:
            value_limit = DEFAULT_NEWS_LIMIT if limit is None else limit
            if (
                isinstance(value_limit, bool)
                or not isinstance(value_limit, int)
                or not 1 <= value_limit <= MAX_NEWS_LIMIT
            ):
                raise InvalidRequestError(
                    f"News limit must be between 1 and {MAX_NEWS_LIMIT}",
                    field="limit",
                    value=limit,
                )
            return cls(normalized, request_kind, limit=value_limit)

        return cls(normalized, request_kind)

    @classmethod
    def quote(cls, symbol: str) -> "RequestKey":
        return cls.parse(symbol, RequestKind.QUOTE)

    @classmethod
    def details(cls, symbol: str) -> "RequestKey":
        return cls.parse(symbol, RequestKind.DETAILS)

    @classmethod
    def history(cls, symbol: str, interval: str = DEFAULT_INTERVAL) -> "RequestKey":
        return cls.parse(symbol, RequestKind.HISTORY, interval=interval)

    @classmethod
    def news(cls, symbol: str, limit: int = DEFAULT_NEWS_LIMIT) -> "RequestKey":
        return cls.parse(symbol, RequestKind.NEWS, limit=limit)

    def __str__(self) -> str:
        parts = [self.kind.value, self.symbol]
        if self.interval is not None:
            parts.append(self.interval)
        if self.limit is not None:
            parts.append(str(self.limit))
        return ":".join(parts)
