"""Resolution pipeline: rate limiting, provider chain, synthesis and orchestration."""

from .chain import ProviderChain, ProviderDescriptor
from .factory import build_descriptors, create_resolver
from .rate_limit import HealthState, HostPacer, ProviderHealth, RateLimiter
from .resolver import Resolver
from .results import FallbackReason, Origin, ResolutionResult
from .synthesizer import FallbackSynthesizer

__all__ = [
    "FallbackReason",
    "FallbackSynthesizer",
    "HealthState",
    "HostPacer",
    "Origin",
    "ProviderChain",
    "ProviderDescriptor",
    "ProviderHealth",
    "RateLimiter",
    "ResolutionResult",
    "Resolver",
    "build_descriptors",
    "create_resolver",
]
