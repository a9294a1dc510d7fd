"""
Abstract capabilities consumed by workflow steps.

Steps depend only on these protocols; concrete adapters live in
``link_enricher.services`` and ``link_enricher.sources``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from link_enricher.models import (
    Bookmark,
    ContentAnalysis,
    ContentItem,
    PendingContent,
    PendingContentStatus,
    TaskStatusUpdate,
)


@dataclass
class SourceReaderConfig:
    """
    Filter handed to a SourceReader.

    Readers may fill ``pending_content_ids`` (url -> pending record id) as a
    side channel back to the calling step.
    """

    user_id: str | None = None
    source_path: str | None = None
    limit: int | None = None
    limit_days: int | None = None
    since: datetime | None = None
    options: dict[str, Any] = field(default_factory=dict)
    pending_content_ids: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class SourceReader(Protocol):
    async def read(self, config: SourceReaderConfig) -> list[ContentItem]: ...


@runtime_checkable
class ContentFetcher(Protocol):
    """Returns page content, or None when it is unavailable."""

    async def fetch(self, url: str) -> str | None: ...


@runtime_checkable
class ContentAnalyzer(Protocol):
    async def analyze(self, url: str, context: str | None = None) -> ContentAnalysis: ...


@runtime_checkable
class UrlExtractor(Protocol):
    async def extract_urls(self, url: str, page_content: str) -> list[str]: ...


@runtime_checkable
class BookmarkEnricher(Protocol):
    """URL extraction plus analysis of already-fetched content."""

    async def extract_urls(self, url: str, page_content: str) -> list[str]: ...

    async def analyze_content(self, url: str, content: str) -> ContentAnalysis: ...


@runtime_checkable
class RateLimitedClient(Protocol):
    """
    An external operation that reports "rate limited" distinctly from "failed".

    ``fetch_content`` returns None in both cases; ``is_rate_limited`` tells
    them apart. Reset times are epoch seconds.
    """

    async def fetch_content(self, url: str) -> str | None: ...

    def is_rate_limited(self) -> bool: ...

    def get_rate_limit_reset_time(self) -> float | None: ...

    def clear_rate_limit(self) -> None: ...


@runtime_checkable
class BookmarkRepository(Protocol):
    async def save_many(self, bookmarks: list[Bookmark]) -> int: ...

    async def exists_by_urls(self, user_id: str, urls: list[str]) -> set[str]: ...

    async def find_since(
        self, user_id: str, since: datetime | None = None
    ) -> list[Bookmark]: ...


@runtime_checkable
class PendingContentRepository(Protocol):
    async def save_many(self, records: list[PendingContent]) -> int: ...

    async def find_pending(
        self, user_id: str, limit: int | None = None
    ) -> list[PendingContent]: ...

    async def update_status(self, record_id: str, status: PendingContentStatus) -> None: ...

    async def exists_by_external_id(self, user_id: str, external_id: str) -> bool: ...


@runtime_checkable
class CursorRepository(Protocol):
    """Persisted read position, scoped per source type and per user."""

    async def load(self, source_type: str, user_id: str) -> datetime | None: ...

    async def save(self, source_type: str, user_id: str, value: datetime) -> None: ...


@runtime_checkable
class TaskStatusRepository(Protocol):
    async def update_status(self, task_id: str, update: TaskStatusUpdate) -> None: ...


@runtime_checkable
class Exporter(Protocol):
    """Writes items to an output location and returns where they went."""

    async def export(self, items: list[ContentItem], output_path: str) -> str: ...
