"""
Content domain models.

ContentItem is the unit that flows through workflow steps. Bookmark and
PendingContent are the persisted shapes on either side of enrichment.
All three are immutable; "with_*" helpers return new instances.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import Field

from link_enricher.models.base import FrozenCamelCaseModel


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class SourceAdapter(str, Enum):
    """Where a content item came from."""

    NONE = "None"
    GMAIL = "Gmail"
    FEED = "Feed"
    BOOKMARK = "Bookmark"
    PENDING_CONTENT = "PendingContent"
    DIRECTORY = "Directory"
    ZIP_FILE = "ZipFile"
    URL = "Url"


class ContentType(str, Enum):
    """Kind of raw content carried by an item."""

    UNKNOWN = "unknown"
    EMAIL = "email"
    ARTICLE = "article"
    FEED_ENTRY = "feed_entry"
    TWEET = "tweet"
    HTML = "html"
    TEXT = "text"


class PendingContentStatus(str, Enum):
    """
    Status lifecycle for pending content.

    pending -> processing -> archived. A record is archived after one
    enrichment attempt whether or not it succeeded.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    ARCHIVED = "archived"


class ContentItem(FrozenCamelCaseModel):
    """Extracted content with categorization metadata."""

    url: str
    source_adapter: SourceAdapter = SourceAdapter.NONE
    tags: tuple[str, ...] = ()
    summary: str = ""
    raw_content: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    content_type: ContentType = ContentType.UNKNOWN

    def with_categorization(self, tags: list[str] | tuple[str, ...], summary: str) -> "ContentItem":
        """Return a copy with new tags and summary and a fresh updated_at."""
        return self.model_copy(
            update={"tags": tuple(tags), "summary": summary, "updated_at": utc_now()}
        )

    def is_valid(self) -> bool:
        """Return True when the item has a URL and a known source."""
        return len(self.url) > 0 and self.source_adapter != SourceAdapter.NONE

    def is_enriched(self) -> bool:
        """Return True when the item carries both tags and a summary."""
        return self.is_valid() and len(self.tags) > 0 and len(self.summary) > 0


class Bookmark(ContentItem):
    """A content item owned by a user and persisted as a bookmark."""

    user_id: str
    id: str | None = None

    @classmethod
    def from_item(cls, item: ContentItem, user_id: str) -> "Bookmark":
        """Create a bookmark for user_id from any content item."""
        return cls(
            url=item.url,
            user_id=user_id,
            source_adapter=item.source_adapter,
            tags=item.tags,
            summary=item.summary,
            raw_content=item.raw_content,
            created_at=item.created_at,
            updated_at=item.updated_at,
            content_type=item.content_type,
        )

    def to_item(self) -> ContentItem:
        """Drop ownership fields and return the plain content item."""
        return ContentItem(
            url=self.url,
            source_adapter=self.source_adapter,
            tags=self.tags,
            summary=self.summary,
            raw_content=self.raw_content,
            created_at=self.created_at,
            updated_at=self.updated_at,
            content_type=self.content_type,
        )


class PendingContent(FrozenCamelCaseModel):
    """Raw content staged for enrichment before it becomes bookmarks."""

    url: str
    source_adapter: SourceAdapter
    raw_content: str = ""
    content_type: ContentType = ContentType.UNKNOWN
    status: PendingContentStatus = PendingContentStatus.PENDING
    user_id: str
    id: str | None = None
    external_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_item(
        cls, item: ContentItem, user_id: str, external_id: str | None = None
    ) -> "PendingContent":
        """Stage a content item for later enrichment."""
        return cls(
            url=item.url,
            source_adapter=item.source_adapter,
            raw_content=item.raw_content,
            content_type=item.content_type,
            user_id=user_id,
            external_id=external_id,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def to_item(self) -> ContentItem:
        """Return an unenriched content item for this record."""
        return ContentItem(
            url=self.url,
            source_adapter=self.source_adapter,
            raw_content=self.raw_content,
            created_at=self.created_at,
            updated_at=self.updated_at,
            content_type=self.content_type,
        )

    def with_status(self, status: PendingContentStatus) -> "PendingContent":
        """Return a copy with a new status and a fresh updated_at."""
        return self.model_copy(update={"status": status, "updated_at": utc_now()})

    def is_valid(self) -> bool:
        return (
            len(self.url) > 0
            and self.source_adapter != SourceAdapter.NONE
            and len(self.user_id) > 0
        )

    def is_pending(self) -> bool:
        return self.status == PendingContentStatus.PENDING

    def is_archived(self) -> bool:
        return self.status == PendingContentStatus.ARCHIVED
