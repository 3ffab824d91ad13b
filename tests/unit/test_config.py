"""Tests for configuration loading."""

from pathlib import Path

import pytest
from tickerflow.config import DEFAULT_POPULAR_SYMBOLS, Config
from tickerflow.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep a developer's .env file and credentials out of the tests."""
    monkeypatch.chdir(tmp_path)
    for name in ("FINNHUB", "POLYGON", "SERPAPI", "RAPIDAPI", "ALPHA_VANTAGE"):
        monkeypatch.delenv(f"DATA_PROVIDER__{name}__API_KEY", raising=False)


class TestConfigDefaults:
    """Tests for default values."""

    def test_cache_defaults(self) -> None:
        """Quotes and details are cached, history and news are not."""
        config = Config()

        assert config.cache.quote_ttl == 60
        assert config.cache.details_ttl == 3600
        assert config.cache.history_ttl == 0
        assert config.cache.news_ttl == 0
        assert config.cache.popular_ttl == 3600
        assert config.cache.synthetic_ttl == 5

    def test_retry_defaults(self) -> None:
        """Retry policy matches the documented backoff."""
        retry = Config().retry

        assert retry.max_attempts == 3
        assert retry.initial_delay == 1.0
        assert retry.multiplier == 2.0
        assert retry.max_delay == 10.0
        assert retry.cooldown == 30.0
        assert retry.max_cooldown == 300.0

    def test_provider_defaults(self) -> None:
        """Keyed providers start without credentials, lower priority first."""
        providers = Config().data_provider

        assert providers.finnhub.api_key == ""
        assert providers.polygon.min_interval == 12.0
        assert providers.finnhub.priority < providers.yahoo_finance.priority

    def test_resolver_defaults(self) -> None:
        """The resolver has a deadline and a popular list."""
        resolver = Config().resolver

        assert resolver.deadline == 10.0
        assert resolver.popular_symbols == DEFAULT_POPULAR_SYMBOLS


class TestConfigEnvironment:
    """Tests for environment overrides."""

    def test_nested_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested sections are set with a double underscore."""
        monkeypatch.setenv("CACHE__QUOTE_TTL", "15")
        monkeypatch.setenv("DATA_PROVIDER__FINNHUB__API_KEY", "secret")

        config = Config()

        assert config.cache.quote_ttl == 15
        assert config.data_provider.finnhub.api_key == "secret"
        assert config.data_provider.finnhub.priority == 1

    def test_partial_provider_override_keeps_defaults(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Setting only a key keeps that provider's priority and pacing."""
        monkeypatch.setenv("DATA_PROVIDER__POLYGON__API_KEY", "poly")
        monkeypatch.setenv("DATA_PROVIDER__YAHOO_FINANCE__TIMEOUT", "3")

        providers = Config().data_provider

        assert providers.polygon.api_key == "poly"
        assert providers.polygon.priority == 1
        assert providers.polygon.min_interval == 12.0
        assert providers.yahoo_finance.timeout == 3
        assert providers.yahoo_finance.priority == 3
        assert providers.yahoo_finance.min_interval == 0.5


class TestConfigFromYaml:
    """Tests for Config.from_yaml."""

    def test_load_file(self, tmp_path: Path) -> None:
        """Values in the file override defaults."""
        path = tmp_path / "tickerflow.yaml"
        path.write_text(
            "log_level: DEBUG\n"
            "cache:\n"
            "  quote_ttl: 5\n"
            "resolver:\n"
            "  deadline: 2.5\n"
            "  popular_symbols: [AAPL, MSFT]\n"
        )

        config = Config.from_yaml(path)

        assert config.log_level == "DEBUG"
        assert config.cache.quote_ttl == 5
        assert config.cache.details_ttl == 3600
        assert config.resolver.deadline == 2.5
        assert config.resolver.popular_symbols == ["AAPL", "MSFT"]

    def test_partial_provider_section(self, tmp_path: Path) -> None:
        """A provider section in the file merges over that provider's defaults."""
        path = tmp_path / "providers.yaml"
        path.write_text("data_provider:\n  alpha_vantage:\n    api_key: av\n")

        alpha_vantage = Config.from_yaml(path).data_provider.alpha_vantage

        assert alpha_vantage.api_key == "av"
        assert alpha_vantage.priority == 2
        assert alpha_vantage.min_interval == 12.0

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert Config.from_yaml(path).cache.quote_ttl == 60

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is a configuration error."""
        with pytest.raises(ConfigError, match="Cannot read file"):
            Config.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML is a configuration error."""
        path = tmp_path / "bad.yaml"
        path.write_text("cache: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            Config.from_yaml(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        """The top level must be a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            Config.from_yaml(path)

    def test_validation_error(self, tmp_path: Path) -> None:
        """Out of range values are rejected."""
        path = tmp_path / "invalid.yaml"
        path.write_text("cache:\n  quote_ttl: -1\n")

        with pytest.raises(ConfigError) as exc_info:
            Config.from_yaml(path)

        assert exc_info.value.file_path == str(path)
