"""Market data models, request keys, cache, store and providers."""

from .cache import CacheEntry, CacheManager, CacheSweeper
from .models import OHLCV, CompanyOverview, NewsArticle, Quote
from .provider import Fatal, MockProvider, Ok, Provider, ProviderResponse, Retryable
from .requests import RequestKey, RequestKind
from .store import InMemoryStore, Store, StoreRecord

__all__ = [
    "CacheEntry",
    "CacheManager",
    "CacheSweeper",
    "CompanyOverview",
    "Fatal",
    "InMemoryStore",
    "MockProvider",
    "NewsArticle",
    "OHLCV",
    "Ok",
    "Provider",
    "ProviderResponse",
    "Quote",
    "RequestKey",
    "RequestKind",
    "Retryable",
    "Store",
    "StoreRecord",
]
