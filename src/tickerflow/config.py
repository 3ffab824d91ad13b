"""Configuration for the resolution pipeline.

Values come from environment variables (nested sections use ``__``, e.g.
``CACHE__QUOTE_TTL=30`` or ``DATA_PROVIDER__FINNHUB__API_KEY=...``), an optional
``.env`` file, or a YAML file passed to :meth:`Config.from_yaml`.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from yaml import YAMLError

from .errors import ConfigError

DEFAULT_POPULAR_SYMBOLS = [
    "AAPL",
    "MSFT",
    "GOOGL",
    "AMZN",
    "META",
    "NVDA",
    "TSLA",
    "JPM",
    "V",
    "WMT",
]


class CacheConfig(BaseModel):
    """In-memory cache settings. TTLs are in seconds; 0 disables caching for a kind."""

    enabled: bool = True
    max_size: int = Field(default=1000, gt=0)
    quote_ttl: float = Field(default=60, ge=0)
    details_ttl: float = Field(default=3600, ge=0)
    history_ttl: float = Field(default=0, ge=0)
    news_ttl: float = Field(default=0, ge=0)
    popular_ttl: float = Field(default=3600, ge=0)
    synthetic_ttl: float = Field(default=5, ge=0)
    sweep_interval: float = Field(default=30, gt=0)


class StoreConfig(BaseModel):
    """Maximum age (seconds) at which a persisted record is still served."""

    quote_max_age: float = Field(default=60, ge=0)
    details_max_age: float = Field(default=3600, ge=0)
    history_max_age: float = Field(default=0, ge=0)
    news_max_age: float = Field(default=0, ge=0)


class RetryConfig(BaseModel):
    """Retry, backoff and cooldown policy for provider calls."""

    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=10.0, ge=0)
    jitter: float = Field(default=0.25, ge=0)
    cooldown: float = Field(default=30.0, ge=0)
    max_cooldown: float = Field(default=300.0, ge=0)


class ResolverConfig(BaseModel):
    """Orchestrator settings."""

    deadline: float = Field(default=10.0, gt=0)
    synthetic_seed: int = 42
    popular_symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_POPULAR_SYMBOLS))


class ProviderConfig(BaseModel):
    """Settings for a single upstream provider."""

    enabled: bool = True
    api_key: str = ""
    priority: int = 100
    min_interval: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=10.0, gt=0)


class FinnhubConfig(ProviderConfig):
    priority: int = 1


class PolygonConfig(ProviderConfig):
    priority: int = 1
    min_interval: float = Field(default=12.0, ge=0)


class SerpApiConfig(ProviderConfig):
    priority: int = 1


class RapidApiConfig(ProviderConfig):
    priority: int = 2


class AlphaVantageConfig(ProviderConfig):
    priority: int = 2
    min_interval: float = Field(default=12.0, ge=0)


class YahooFinanceConfig(ProviderConfig):
    priority: int = 3
    min_interval: float = Field(default=0.5, ge=0)


class DataProviderConfig(BaseModel):
    """Per-provider settings. Lower priority numbers are tried first.

    Each provider has its own model so that a partial override (only an API key
    from the environment, say) keeps that provider's priority and pacing.
    """

    finnhub: FinnhubConfig = Field(default_factory=FinnhubConfig)
    polygon: PolygonConfig = Field(default_factory=PolygonConfig)
    serpapi: SerpApiConfig = Field(default_factory=SerpApiConfig)
    rapidapi: RapidApiConfig = Field(default_factory=RapidApiConfig)
    alpha_vantage: AlphaVantageConfig = Field(default_factory=AlphaVantageConfig)
    yahoo_finance: YahooFinanceConfig = Field(default_factory=YahooFinanceConfig)


class Config(BaseSettings):
    """Root configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "json"
    cache: CacheConfig = Field(default_factory=CacheConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    data_provider: DataProviderConfig = Field(default_factory=DataProviderConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file.

        Environment variables are still read; values in the file take precedence.

        Args:
            path: Path to the YAML file

        Returns:
            Validated Config instance

        Raises:
            ConfigError: If the file is missing, malformed or fails validation
        """
        file_path = Path(path)
        try:
            with file_path.open(encoding="utf-8") as f:
                raw: Any = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read file: {e}", str(file_path)) from e
        except YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {e}", str(file_path)) from e

        if not isinstance(raw, dict):
            raise ConfigError("Top level must be a mapping", str(file_path))

        try:
            return cls(**raw)
        except ValidationError as e:
            raise ConfigError(str(e), str(file_path)) from e
