"""
Configuration management for Link Enricher.
"""

import os
from dataclasses import dataclass

# Rate-limit retry scheduler defaults
DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS = 15 * 60
DEFAULT_RATE_LIMIT_BUFFER_SECONDS = 5.0
DEFAULT_RATE_LIMIT_COUNTDOWN_INTERVAL = 30
DEFAULT_RATE_LIMIT_MAX_ATTEMPTS = 3
DEFAULT_RATE_LIMIT_MAX_TOTAL_SECONDS = 60 * 60

# Nested enrichment fan-out cap
DEFAULT_MAX_EXTRACTED_URLS = 3


def get_env(name: str, default: str | None) -> str:
    """
    Read an environment variable.

    Parameters
    ----------
    name : str
        Environment variable name.
    default : str | None
        Default value. None marks the variable as required.

    Returns
    -------
    str
        The variable value, or the default when unset.

    Raises
    ------
    ValueError
        If the variable is required and not set.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise ValueError(f"Required environment variable '{name}' is not set")
        return default
    return value


@dataclass
class Config:
    """
    Application configuration loaded from environment variables.
    """

    # Platform REST API (persistence, task status, cursors)
    api_url: str
    api_token: str

    # OpenAI / LLM (set OPENAI_BASE_URL for LiteLLM proxy, leave empty for OpenAI direct)
    openai_api_key: str
    openai_base_url: str
    llm_model: str

    # Temporal
    temporal_host: str
    temporal_namespace: str
    task_queue: str

    # Twitter API v2 (empty disables tweet enrichment)
    twitter_bearer_token: str
    twitter_throttle_seconds: float

    # Web scraping
    scraper_throttle_seconds: float
    scraper_retries: int
    scraper_cache_ttl_seconds: float
    scraper_timeout: float
    scraper_use_browser: bool  # Render pages with a headless browser instead of plain HTTP

    # Rate-limit retry scheduler
    rate_limit_max_wait_seconds: int  # Abandon the queue when the reset is further away
    rate_limit_buffer_seconds: float  # Safety margin added after the reset time
    rate_limit_countdown_interval: int  # Seconds between countdown status updates
    rate_limit_max_attempts: int  # Per-item retry cap
    rate_limit_max_total_seconds: int  # Overall wall-clock budget (0 = no limit)

    # Enrichment
    max_extracted_urls: int  # Max nested URLs expanded from one page
    max_content_chars: int  # Max chars sent to the LLM (0 = no limit)

    # Source readers
    cursor_dir: str  # Directory for file-backed read cursors (empty = stored via the API)
    default_lookback_days: int  # First-run lookback when no cursor exists

    @classmethod
    def from_env(cls) -> "Config":
        """
        Load configuration from environment variables.
        """
        return cls(
            api_url=get_env("LINK_ENRICHER_API_URL", "http://localhost:3000"),
            api_token=get_env("INTERNAL_API_TOKEN", None),
            openai_api_key=get_env("OPENAI_API_KEY", ""),
            openai_base_url=get_env("OPENAI_BASE_URL", ""),  # Empty = OpenAI direct
            llm_model=get_env("LLM_MODEL", "gpt-4o-mini"),
            temporal_host=get_env("TEMPORAL_HOST", "localhost:7233"),
            temporal_namespace=get_env("TEMPORAL_NAMESPACE", "default"),
            task_queue=get_env("TEMPORAL_TASK_QUEUE", "link-enricher"),
            twitter_bearer_token=get_env("TWITTER_BEARER_TOKEN", ""),
            twitter_throttle_seconds=float(get_env("TWITTER_THROTTLE_SECONDS", "1.0")),
            scraper_throttle_seconds=float(get_env("SCRAPER_THROTTLE_SECONDS", "1.0")),
            scraper_retries=int(get_env("SCRAPER_RETRIES", "2")),
            scraper_cache_ttl_seconds=float(get_env("SCRAPER_CACHE_TTL_SECONDS", "3600")),
            scraper_timeout=float(get_env("SCRAPER_TIMEOUT", "30")),
            scraper_use_browser=os.getenv("SCRAPER_USE_BROWSER", "false").lower() == "true",
            rate_limit_max_wait_seconds=int(
                get_env("RATE_LIMIT_MAX_WAIT_SECONDS", str(DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS))
            ),
            rate_limit_buffer_seconds=float(
                get_env("RATE_LIMIT_BUFFER_SECONDS", str(DEFAULT_RATE_LIMIT_BUFFER_SECONDS))
            ),
            rate_limit_countdown_interval=int(
                get_env(
                    "RATE_LIMIT_COUNTDOWN_INTERVAL", str(DEFAULT_RATE_LIMIT_COUNTDOWN_INTERVAL)
                )
            ),
            rate_limit_max_attempts=int(
                get_env("RATE_LIMIT_MAX_ATTEMPTS", str(DEFAULT_RATE_LIMIT_MAX_ATTEMPTS))
            ),
            rate_limit_max_total_seconds=int(
                get_env("RATE_LIMIT_MAX_TOTAL_SECONDS", str(DEFAULT_RATE_LIMIT_MAX_TOTAL_SECONDS))
            ),
            max_extracted_urls=int(
                get_env("MAX_EXTRACTED_URLS", str(DEFAULT_MAX_EXTRACTED_URLS))
            ),
            max_content_chars=int(get_env("MAX_CONTENT_CHARS", "10000")),
            cursor_dir=get_env("CURSOR_DIR", ""),
            default_lookback_days=int(get_env("DEFAULT_LOOKBACK_DAYS", "7")),
        )


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config
