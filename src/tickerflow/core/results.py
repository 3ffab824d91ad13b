"""Tagged results returned by the resolver."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from ..data.requests import RequestKey

T = TypeVar("T")


class Origin(str, Enum):
    """Tier that produced a value."""

    CACHE = "cache"
    STORE = "store"
    PROVIDER = "provider"
    SYNTHETIC = "synthetic"


class FallbackReason(str, Enum):
    """Why a resolution ended in synthesis."""

    EXHAUSTED = "exhausted"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ResolutionResult(Generic[T]):
    """Outcome of one resolution.

    Attributes:
        key: The request that was resolved
        value: The resolved domain value
        origin: Tier that produced the value
        provider_id: Provider that produced the value (provider origin only)
        is_stale: True when the value may not reflect current upstream data
        synthetic: True when the value was generated locally
        fallback_reason: Why synthesis was needed (synthetic origin only)
    """

    key: RequestKey
    value: T
    origin: Origin
    provider_id: str | None = None
    is_stale: bool = False
    synthetic: bool = False
    fallback_reason: FallbackReason | None = None

    @property
    def origin_label(self) -> str:
        """Origin rendered as 'cache', 'store', 'provider:<id>' or 'synthetic'."""
        if self.origin is Origin.PROVIDER:
            return f"provider:{self.provider_id}"
        return self.origin.value

    def to_dict(self) -> dict[str, Any]:
        """Metadata without the value, for logging and serialization."""
        return {
            "key": str(self.key),
            "origin": self.origin_label,
            "is_stale": self.is_stale,
            "synthetic": self.synthetic,
            "fallback_reason": self.fallback_reason.value if self.fallback_reason else None,
        }
