"""
Pytest fixtures for service tests.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from link_enricher.models import ContentAnalysis

RATE_LIMITED = "<rate-limited>"


class FakeRateLimitedClient:
    """
    Scripted RateLimitedClient.

    ``responses`` maps a URL to the results of successive fetch_content
    calls: a string is returned as content, None means unavailable and
    "<rate-limited>" puts the client into the rate-limited state for
    ``reset_in`` seconds. An exception instance is raised. URLs without a script return "content of <url>".
    """

    def __init__(
        self,
        clock: Callable[[], float],
        responses: dict[str, list[Any]] | None = None,
        reset_in: float = 10.0,
    ):
        self._clock = clock
        self.responses = {url: list(seq) for url, seq in (responses or {}).items()}
        self.reset_in = reset_in
        self.reset_time: float | None = None
        self.calls: list[str] = []
        self.clear_calls = 0

    def limit_for(self, seconds: float) -> None:
        """Enter the rate-limited state now."""
        self.reset_time = self._clock() + seconds

    async def fetch_content(self, url: str) -> str | None:
        self.calls.append(url)
        script = self.responses.get(url)
        result = script.pop(0) if script else f"content of {url}"
        if isinstance(result, Exception):
            raise result
        if result is RATE_LIMITED:
            self.limit_for(self.reset_in)
            return None
        return result

    def is_rate_limited(self) -> bool:
        return self.reset_time is not None and self.reset_time > self._clock()

    def get_rate_limit_reset_time(self) -> float | None:
        return self.reset_time

    def clear_rate_limit(self) -> None:
        self.clear_calls += 1
        self.reset_time = None


@pytest.fixture
def rate_limited_client(fake_clock: Any) -> Callable[..., FakeRateLimitedClient]:
    """Factory for FakeRateLimitedClient bound to the fake clock."""

    def _factory(
        responses: dict[str, list[Any]] | None = None, reset_in: float = 10.0
    ) -> FakeRateLimitedClient:
        return FakeRateLimitedClient(fake_clock, responses, reset_in)

    return _factory


@pytest.fixture
def mock_analyzer() -> AsyncMock:
    """ContentAnalyzer returning fixed tags and a summary."""
    analyzer = AsyncMock()
    analyzer.analyze.return_value = ContentAnalysis(
        tags=["python", "testing"], summary="A tweet about testing"
    )
    return analyzer


@pytest.fixture
def mock_crawl_result_success() -> MagicMock:
    """Successful CrawlResult from Crawl4AI."""
    result = MagicMock()
    result.success = True
    result.markdown = MagicMock()
    result.markdown.raw_markdown = "# Async Python\n\n\n\nEvent loops and coroutines.\n"
    result.markdown.fit_markdown = "Event loops and coroutines."
    result.error_message = None
    return result


@pytest.fixture
def mock_crawl_result_failure() -> MagicMock:
    """Failed CrawlResult from Crawl4AI."""
    result = MagicMock()
    result.success = False
    result.markdown = None
    result.error_message = "Connection timeout"
    return result


@pytest.fixture
def patch_async_web_crawler() -> Any:
    """
    Patch the AsyncWebCrawler context manager with a mock crawler.

    Usage:
        with patch_async_web_crawler(crawler):
            content = await fetcher.fetch(url)
    """

    def create_patch(crawler_mock: MagicMock) -> Any:
        async_cm = MagicMock()
        async_cm.__aenter__ = AsyncMock(return_value=crawler_mock)
        async_cm.__aexit__ = AsyncMock(return_value=None)
        return patch("link_enricher.services.content.AsyncWebCrawler", return_value=async_cm)

    return create_patch
