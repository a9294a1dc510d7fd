"""
Retry scheduler models.

QueuedItem is the unit owned by RetryHandlerService; RetryResult is the only
thing handed back to the calling step.
"""

from pydantic import Field

from link_enricher.models.base import CamelCaseModel, FrozenCamelCaseModel
from link_enricher.models.content import ContentItem


class QueuedItem(FrozenCamelCaseModel):
    """
    An item whose enrichment was rate limited rather than failed.

    ``index`` is the position of the item in the step's input collection so
    that retried results can be merged back in place.
    """

    item: ContentItem
    index: int
    attempts: int = 0

    def next_attempt(self) -> "QueuedItem":
        """Return a copy with the attempt counter incremented."""
        return self.model_copy(update={"attempts": self.attempts + 1})


class RetryResult(CamelCaseModel):
    """Outcome of one or more retry cycles."""

    updated_urls: set[str] = Field(default_factory=set)
    remaining_queue: list[QueuedItem] = Field(default_factory=list)
    # index in the original collection -> enriched item
    enriched: dict[int, ContentItem] = Field(default_factory=dict)
    cycles: int = 0
    given_up: int = 0
    abandoned_reason: str = ""

    @property
    def unenriched_count(self) -> int:
        """Number of items still not enriched when the scheduler stopped."""
        return len(self.remaining_queue) + self.given_up
