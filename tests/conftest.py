"""
Pytest configuration and fixtures for Link Enricher tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from link_enricher.models import ContentItem, SourceAdapter
from link_enricher.pipeline import ItemProcessedInfo


class FakeClock:
    """
    Deterministic epoch clock.

    ``sleep`` advances time instead of blocking and records each call.
    """

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def required_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Set required environment variables for Config.from_env().

    Use this fixture in tests that call code paths accessing get_config()
    without mocking it.
    """
    monkeypatch.setenv("INTERNAL_API_TOKEN", "test-token")
    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key")


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at a fixed epoch time."""
    return FakeClock()


@pytest.fixture
def make_item() -> Callable[..., ContentItem]:
    """Factory for content items with sensible defaults."""

    def _make(url: str = "https://example.com/article", **kwargs: Any) -> ContentItem:
        kwargs.setdefault("source_adapter", SourceAdapter.PENDING_CONTENT)
        return ContentItem(url=url, **kwargs)

    return _make


@pytest.fixture
def progress_events() -> list[ItemProcessedInfo[Any]]:
    """List that collects progress notifications; pair with ``record_progress``."""
    return []


@pytest.fixture
def record_progress(
    progress_events: list[ItemProcessedInfo[Any]],
) -> Callable[[ItemProcessedInfo[Any]], None]:
    """on_item_processed callback appending to ``progress_events``."""
    return progress_events.append


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """
    Sort test items to run unit tests before integration tests.

    Tests marked with @pytest.mark.integration run last.
    """

    def sort_key(item: pytest.Item) -> tuple[int, str]:
        if item.get_closest_marker("integration"):
            return (1, item.nodeid)
        return (0, item.nodeid)

    items.sort(key=sort_key)
