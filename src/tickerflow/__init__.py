"""tickerflow: resilient resolution of stock quotes, profiles, history and news."""

from .config import Config
from .core import FallbackReason, Origin, ResolutionResult, Resolver, create_resolver
from .data import RequestKey, RequestKind
from .errors import ConfigError, InvalidRequestError, TickerflowError

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigError",
    "FallbackReason",
    "InvalidRequestError",
    "Origin",
    "RequestKey",
    "RequestKind",
    "ResolutionResult",
    "Resolver",
    "TickerflowError",
    "create_resolver",
]
