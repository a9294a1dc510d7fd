"""
Pytest fixtures for workflow step tests.

Repositories are small in-memory fakes that record calls in order;
fetchers and enrichers are AsyncMocks driven by lookup tables.
"""

from collections.abc import Callable, Sequence
from typing import Any
from unittest.mock import AsyncMock

import pytest

from link_enricher.models import (
    Bookmark,
    ContentAnalysis,
    PendingContent,
    PendingContentStatus,
)
from link_enricher.pipeline import WorkflowContext, create_workflow_context


class InMemoryPendingRepository:
    def __init__(self) -> None:
        self.saved: list[PendingContent] = []
        self.status_updates: list[tuple[str, PendingContentStatus]] = []
        self.existing_external_ids: set[str] = set()
        self.save_calls = 0

    async def save_many(self, records: list[PendingContent]) -> int:
        self.save_calls += 1
        self.saved.extend(records)
        return len(records)

    async def find_pending(self, user_id: str, limit: int | None = None) -> list[PendingContent]:
        pending = [r for r in self.saved if r.user_id == user_id and r.is_pending()]
        return pending[:limit] if limit else pending

    async def update_status(self, record_id: str, status: PendingContentStatus) -> None:
        self.status_updates.append((record_id, status))

    async def exists_by_external_id(self, user_id: str, external_id: str) -> bool:
        return external_id in self.existing_external_ids


class InMemoryBookmarkRepository:
    def __init__(self) -> None:
        self.saved: list[Bookmark] = []
        self.existing_urls: set[str] = set()
        self.save_calls = 0

    async def save_many(self, bookmarks: list[Bookmark]) -> int:
        self.save_calls += 1
        self.saved.extend(bookmarks)
        return len(bookmarks)

    async def exists_by_urls(self, user_id: str, urls: list[str]) -> set[str]:
        return {url for url in urls if url in self.existing_urls}

    async def find_since(self, user_id: str, since: Any = None) -> list[Bookmark]:
        return [b for b in self.saved if b.user_id == user_id]


@pytest.fixture
def pending_repository() -> InMemoryPendingRepository:
    return InMemoryPendingRepository()


@pytest.fixture
def bookmark_repository() -> InMemoryBookmarkRepository:
    return InMemoryBookmarkRepository()


@pytest.fixture
def pages() -> dict[str, Any]:
    """
    url -> page content served by ``fetcher``.

    Missing URLs return None; Exception values are raised.
    """
    return {}


@pytest.fixture
def fetcher(pages: dict[str, Any]) -> AsyncMock:
    """ContentFetcher serving ``pages``."""

    async def fetch(url: str) -> str | None:
        page = pages.get(url)
        if isinstance(page, Exception):
            raise page
        return page

    mock = AsyncMock()
    mock.fetch.side_effect = fetch
    return mock


@pytest.fixture
def links() -> dict[str, list[str]]:
    """url -> URLs returned by ``enricher.extract_urls``."""
    return {}


@pytest.fixture
def enricher(links: dict[str, list[str]]) -> AsyncMock:
    """
    BookmarkEnricher returning ``links`` and a per-URL analysis.

    The analysis tags each URL with "tag-<last path segment>".
    """

    async def extract_urls(url: str, page_content: str) -> list[str]:
        return list(links.get(url, []))

    async def analyze_content(url: str, content: str) -> ContentAnalysis:
        name = url.rstrip("/").rsplit("/", 1)[-1]
        return ContentAnalysis(tags=[f"tag-{name}"], summary=f"Summary of {name}")

    mock = AsyncMock()
    mock.extract_urls.side_effect = extract_urls
    mock.analyze_content.side_effect = analyze_content
    return mock


@pytest.fixture
def mock_analyzer() -> AsyncMock:
    """ContentAnalyzer returning fixed tags and a summary."""
    analyzer = AsyncMock()
    analyzer.analyze.return_value = ContentAnalysis(tags=["ai", "news"], summary="Analyzed")
    return analyzer


@pytest.fixture
def make_context(record_progress: Callable[..., None]) -> Callable[..., WorkflowContext[Any]]:
    """Build a WorkflowContext with progress recording attached."""

    def _make(
        items: Sequence[Any] = (), user_id: str | None = "user-1", **metadata: Any
    ) -> WorkflowContext[Any]:
        context = create_workflow_context(user_id).replace(on_item_processed=record_progress)
        return context.with_items(items).with_metadata(**metadata)

    return _make
