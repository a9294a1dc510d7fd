"""
Bookmark source reader: re-reads a user's recent bookmarks for re-analysis.
"""

from datetime import UTC, datetime

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.ports import BookmarkRepository, CursorRepository, SourceReaderConfig
from link_enricher.sources.cursor import resolve_since

logger = get_logger(__name__)

SOURCE_TYPE = "bookmark"
DEFAULT_LOOKBACK_DAYS = 30


class BookmarkSourceReader:
    """Read bookmarks created since the last run."""

    def __init__(
        self,
        repository: BookmarkRepository,
        cursors: CursorRepository | None = None,
        default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ):
        self.repository = repository
        self.cursors = cursors
        self.default_lookback_days = default_lookback_days

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        if not config.user_id:
            logger.warning("No user_id given, bookmark reader returns nothing")
            return []

        now = datetime.now(UTC)
        since = await resolve_since(
            config, self.cursors, SOURCE_TYPE, self.default_lookback_days, now=now
        )
        logger.info("Fetching bookmarks", since=since.isoformat())

        bookmarks = await self.repository.find_since(config.user_id, since)
        bookmarks = [b for b in bookmarks if b.created_at >= since]
        if config.limit:
            bookmarks = bookmarks[: config.limit]
        logger.info("Found bookmarks", count=len(bookmarks))

        if self.cursors is not None:
            await self.cursors.save(SOURCE_TYPE, config.user_id, now)

        return [b.to_item() for b in bookmarks]
