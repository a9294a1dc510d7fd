"""Tests for configuration management."""

import pytest

from link_enricher import config as config_module
from link_enricher.config import (
    DEFAULT_MAX_EXTRACTED_URLS,
    DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS,
    Config,
    get_config,
    get_env,
)
from link_enricher.services.retry_handler import RetrySettings

# =============================================================================
# get_env function tests
# =============================================================================


def test_get_env_returns_value_when_set(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that get_env returns the env var value when set."""
    monkeypatch.setenv("TEST_VAR", "test-value")
    assert get_env("TEST_VAR", "default") == "test-value"


def test_get_env_returns_default_when_not_set(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that get_env returns default when env var is not set."""
    monkeypatch.delenv("TEST_VAR", raising=False)
    assert get_env("TEST_VAR", "default-value") == "default-value"


def test_get_env_raises_when_required_and_not_set(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that get_env raises ValueError when required env var is not set."""
    monkeypatch.delenv("REQUIRED_VAR", raising=False)
    with pytest.raises(ValueError, match="Required environment variable 'REQUIRED_VAR' is not set"):
        get_env("REQUIRED_VAR", None)


def test_config_raises_when_api_token_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Config.from_env raises when the API token is missing."""
    monkeypatch.delenv("INTERNAL_API_TOKEN", raising=False)

    with pytest.raises(ValueError, match="INTERNAL_API_TOKEN"):
        Config.from_env()


# =============================================================================
# Defaults and overrides
# =============================================================================


class TestRateLimitSettings:
    """Tests for the retry scheduler configuration."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None) -> None:
        """Verify the scheduler defaults when nothing is set."""
        for name in (
            "RATE_LIMIT_MAX_WAIT_SECONDS",
            "RATE_LIMIT_BUFFER_SECONDS",
            "RATE_LIMIT_MAX_ATTEMPTS",
            "RATE_LIMIT_MAX_TOTAL_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Config.from_env()

        assert config.rate_limit_max_wait_seconds == DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS == 900
        assert config.rate_limit_buffer_seconds == 5.0
        assert config.rate_limit_max_attempts == 3
        assert config.rate_limit_max_total_seconds == 3600

    def test_from_env_overrides(
        self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None
    ) -> None:
        """Verify env vars override the defaults and flow into RetrySettings."""
        monkeypatch.setenv("RATE_LIMIT_MAX_WAIT_SECONDS", "60")
        monkeypatch.setenv("RATE_LIMIT_BUFFER_SECONDS", "2.5")
        monkeypatch.setenv("RATE_LIMIT_MAX_TOTAL_SECONDS", "0")

        settings = RetrySettings.from_config(Config.from_env())

        assert settings.max_wait_seconds == 60
        assert settings.buffer_seconds == 2.5
        assert settings.max_total_seconds == 0

    def test_invalid_value_raises(
        self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None
    ) -> None:
        """Verify non-numeric values are rejected."""
        monkeypatch.setenv("RATE_LIMIT_MAX_ATTEMPTS", "many")

        with pytest.raises(ValueError):
            Config.from_env()


class TestEnrichmentSettings:
    """Tests for nested enrichment configuration."""

    def test_max_extracted_urls_default(
        self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None
    ) -> None:
        monkeypatch.delenv("MAX_EXTRACTED_URLS", raising=False)
        assert Config.from_env().max_extracted_urls == DEFAULT_MAX_EXTRACTED_URLS == 3

    def test_openai_key_is_optional(
        self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None
    ) -> None:
        """Without an API key the worker falls back to heuristic analysis."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert Config.from_env().openai_api_key == ""

    def test_browser_scraping_flag(
        self, monkeypatch: pytest.MonkeyPatch, required_env_vars: None
    ) -> None:
        """Browser rendering is off unless SCRAPER_USE_BROWSER is true."""
        monkeypatch.delenv("SCRAPER_USE_BROWSER", raising=False)
        assert Config.from_env().scraper_use_browser is False

        monkeypatch.setenv("SCRAPER_USE_BROWSER", "TRUE")
        assert Config.from_env().scraper_use_browser is True


def test_get_config_is_cached(monkeypatch: pytest.MonkeyPatch, required_env_vars: None) -> None:
    """get_config loads once and returns the same instance."""
    monkeypatch.setattr(config_module, "_config", None)

    first = get_config()
    monkeypatch.setenv("LLM_MODEL", "other-model")

    assert get_config() is first
