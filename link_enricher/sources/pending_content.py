"""
Source reader for pending content awaiting enrichment.
"""

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.ports import PendingContentRepository, SourceReaderConfig

logger = get_logger(__name__)


class PendingContentSourceReader:
    """
    Read all pending records for a user.

    Fills ``config.pending_content_ids`` (url -> record id) so that the
    enrichment step can move each record through processing -> archived.
    Archived records are never returned.
    """

    def __init__(self, repository: PendingContentRepository):
        self.repository = repository

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        if not config.user_id:
            logger.warning("No user id given, skipping pending content read")
            return []

        records = await self.repository.find_pending(config.user_id, limit=config.limit)
        logger.info("Found pending content", count=len(records), user_id=config.user_id)

        items: list[ContentItem] = []
        for record in records:
            if not record.is_pending():
                continue
            items.append(record.to_item())
            if record.id:
                config.pending_content_ids[record.url] = record.id
        return items
