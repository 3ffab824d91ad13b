"""Provider chain: ordered, capability-tagged fallback list."""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from ..data.provider import Provider
from ..data.requests import RequestKind
from ..utils.logging import get_logger
from .rate_limit import ProviderHealth

logger = get_logger(__name__)


@dataclass
class ProviderDescriptor:
    """A provider together with its place in the chain and its health.

    Attributes:
        provider: The upstream data source
        priority: Static fallback order; lower values are tried first
        min_interval: Minimum seconds between calls to the provider's host
        health: Health state, mutated only by the rate limiter
    """

    provider: Provider
    priority: int = 100
    min_interval: float = 0.0
    health: ProviderHealth = field(init=False)

    def __post_init__(self) -> None:
        self.health = ProviderHealth(provider_id=self.provider.provider_id)

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id

    @property
    def capabilities(self) -> frozenset[RequestKind]:
        return self.provider.capabilities()


class ProviderChain:
    """Ordered list of providers with dynamic health gating.

    Priority fixes the static fallback order; providers inside an active
    backoff window are skipped until the window has passed.
    """

    def __init__(
        self,
        descriptors: Iterable[ProviderDescriptor],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._descriptors = sorted(descriptors, key=lambda d: d.priority)
        self._clock = clock

        ids = [d.provider_id for d in self._descriptors]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"Duplicate provider ids in chain: {sorted(duplicates)}")

        logger.info(
            "provider_chain_initialized",
            providers=[(d.provider_id, d.priority) for d in self._descriptors],
        )

    @property
    def descriptors(self) -> list[ProviderDescriptor]:
        return list(self._descriptors)

    def get(self, provider_id: str) -> ProviderDescriptor:
        for descriptor in self._descriptors:
            if descriptor.provider_id == provider_id:
                return descriptor
        raise KeyError(f"Unknown provider '{provider_id}'. Available: {self.provider_ids}")

    @property
    def provider_ids(self) -> list[str]:
        return [d.provider_id for d in self._descriptors]

    def eligible(self, kind: RequestKind) -> list[ProviderDescriptor]:
        """Providers able to serve ``kind`` right now, highest priority first."""
        now = self._clock()
        eligible = []
        for descriptor in self._descriptors:
            if kind not in descriptor.capabilities:
                continue
            if not descriptor.health.is_available(now):
                logger.debug(
                    "provider_skipped_backoff",
                    provider=descriptor.provider_id,
                    kind=kind.value,
                    retry_in=round(descriptor.health.backoff_until - now, 3),
                )
                continue
            eligible.append(descriptor)
        return eligible

    def health_snapshot(self) -> dict[str, ProviderHealth]:
        """Copy of the health state of every provider."""
        return {
            d.provider_id: ProviderHealth(**vars(d.health)) for d in self._descriptors
        }

    def __len__(self) -> int:
        return len(self._descriptors)
