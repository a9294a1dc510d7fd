"""
RSS/Atom feed source reader.

Fetches a feed over HTTP, parses it with feedparser and returns entries
published after the saved cursor for (feed, user).
"""

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import feedparser
import httpx

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, ContentType, SourceAdapter
from link_enricher.ports import CursorRepository, SourceReaderConfig
from link_enricher.services.content import html_to_markdown
from link_enricher.sources.cursor import resolve_since

if TYPE_CHECKING:
    from time import struct_time

logger = get_logger(__name__)

SOURCE_TYPE = "feed"
DEFAULT_LOOKBACK_DAYS = 7


def _parse_time_struct(t: "struct_time | None") -> datetime | None:
    """
    Parse feedparser time struct to datetime.

    Parameters
    ----------
    t : struct_time | None
        Time struct from feedparser.

    Returns
    -------
    datetime | None
        Parsed datetime or None if input is None.
    """
    if t is None:
        return None
    return datetime(
        t.tm_year,
        t.tm_mon,
        t.tm_mday,
        t.tm_hour,
        t.tm_min,
        t.tm_sec,
        tzinfo=UTC,
    )


def _entry_published(entry: Any) -> datetime | None:
    for key in ("published_parsed", "updated_parsed"):
        value = getattr(entry, key, None)
        if value and isinstance(value, time.struct_time):
            return _parse_time_struct(value)
    return None


def _entry_content(entry: Any) -> str:
    content_list = getattr(entry, "content", None)
    if content_list and isinstance(content_list, list):
        first = content_list[0]
        if isinstance(first, dict):
            return str(first.get("value", ""))
    return str(entry.get("summary", "") or "")


def parse_feed_entries(content: str, since: datetime | None, limit: int | None) -> list[ContentItem]:
    """
    Parse feed XML into content items.

    Parameters
    ----------
    content : str
        Raw RSS/Atom document.
    since : datetime | None
        Entries published at or before this time are skipped. Entries
        without a date are always kept.
    limit : int | None
        Max entries to return.

    Returns
    -------
    list[ContentItem]
        Items in feed order.
    """
    parsed = feedparser.parse(content)
    items: list[ContentItem] = []
    now = datetime.now(UTC)

    for entry in parsed.entries:
        link = str(entry.get("link", "") or "")
        if not link:
            continue

        published = _entry_published(entry)
        if since is not None and published is not None and published <= since:
            continue

        created = published or now
        items.append(
            ContentItem(
                url=link,
                source_adapter=SourceAdapter.FEED,
                summary=str(entry.get("title", "") or ""),
                raw_content=html_to_markdown(_entry_content(entry)),
                created_at=created,
                updated_at=created,
                content_type=ContentType.FEED_ENTRY,
            )
        )
        if limit is not None and len(items) >= limit:
            break

    return items


class FeedSourceReader:
    """Incremental reader over one RSS/Atom feed (``config.source_path``)."""

    def __init__(
        self,
        cursors: CursorRepository | None = None,
        default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cursors = cursors
        self.default_lookback_days = default_lookback_days
        self.timeout = timeout
        self._transport = transport

    async def fetch_feed(self, feed_url: str) -> str:
        """Download the feed document."""
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self._transport
        ) as client:
            response = await client.get(feed_url)
            response.raise_for_status()
            return response.text

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        feed_url = config.source_path or config.options.get("feed_url")
        if not feed_url:
            logger.warning("No feed URL given, skipping feed read")
            return []

        cursor_scope = f"{SOURCE_TYPE}:{feed_url}"
        since = await resolve_since(
            config, self.cursors, cursor_scope, self.default_lookback_days
        )

        fetch_start = time.perf_counter()
        content = await self.fetch_feed(feed_url)
        items = parse_feed_entries(content, since, config.limit)
        logger.info(
            "Read feed",
            feed_url=feed_url,
            since=since.isoformat(),
            entries=len(items),
            elapsed_ms=round((time.perf_counter() - fetch_start) * 1000, 1),
        )

        if self.cursors is not None and config.user_id:
            newest = max((item.created_at for item in items), default=None)
            if newest is not None:
                await self.cursors.save(cursor_scope, config.user_id, newest)

        return items
