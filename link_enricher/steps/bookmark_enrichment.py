"""
Bookmark enrichment step with bounded nested fetching.

For each pending item: fetch the page, optionally extract and enrich up to
``max_extracted_urls`` linked pages (never expanded further), analyze the
page itself, and archive the source record whatever the outcome. All
resulting bookmarks are saved with a single bulk call.
"""

from link_enricher.config import DEFAULT_MAX_EXTRACTED_URLS
from link_enricher.logging import get_logger
from link_enricher.models import (
    Bookmark,
    ContentAnalysis,
    ContentItem,
    PendingContentStatus,
    SourceAdapter,
)
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.ports import (
    BookmarkEnricher,
    BookmarkRepository,
    ContentFetcher,
    PendingContentRepository,
)
from link_enricher.steps import keys

logger = get_logger(__name__)


class BookmarkEnrichmentStep(BaseWorkflowStep[ContentItem]):
    """Turn pending content into enriched bookmarks."""

    step_name = "enrich-bookmarks"

    def __init__(
        self,
        fetcher: ContentFetcher,
        enricher: BookmarkEnricher,
        pending_repository: PendingContentRepository,
        bookmark_repository: BookmarkRepository,
        with_nested: bool = False,
        max_extracted_urls: int = DEFAULT_MAX_EXTRACTED_URLS,
    ):
        """
        Initialize the step.

        Parameters
        ----------
        fetcher : ContentFetcher
            Page fetcher; None means the page is unavailable.
        enricher : BookmarkEnricher
            URL extraction and tag/summary analysis.
        pending_repository : PendingContentRepository
            Source records, moved to processing then archived.
        bookmark_repository : BookmarkRepository
            Destination for the bulk save.
        with_nested : bool, optional
            Also bookmark URLs found inside each page (default: False).
        max_extracted_urls : int, optional
            Hard cap on nested URLs per page (default: 3).
        """
        super().__init__()
        self.fetcher = fetcher
        self.enricher = enricher
        self.pending_repository = pending_repository
        self.bookmark_repository = bookmark_repository
        self.with_nested = with_nested
        self.max_extracted_urls = max_extracted_urls

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        user_id = context.metadata.get(keys.USER_ID) or context.user_id
        if not user_id:
            logger.error("user_id is required for bookmark enrichment")
            return StepResult.halt(context, "user_id is required for bookmark enrichment")

        pending_ids: dict[str, str] = dict(context.metadata.get(keys.PENDING_CONTENT_IDS, {}))
        items = context.items
        total = len(items)
        bookmarks: list[Bookmark] = []
        processed = 0

        for i, item in enumerate(items):
            self.check_cancelled(context)
            pending_id = pending_ids.get(item.url)

            item_bookmarks, outcome = await self._process_item(item, pending_id, user_id)
            bookmarks.extend(item_bookmarks)
            if outcome.success:
                processed += 1

            await self._archive(pending_id)
            await self.report_item(context, item, i, total, outcome)

        if bookmarks:
            await self.bookmark_repository.save_many(bookmarks)
            logger.info("Saved enriched bookmarks", count=len(bookmarks))

        new_context = (
            context.with_items([b.to_item() for b in bookmarks])
            .with_updated_ids(b.url for b in bookmarks)
            .with_metadata(
                **{
                    keys.ENRICHMENT_SUMMARY: {
                        "processed": processed,
                        "failed": total - processed,
                        "bookmarks": len(bookmarks),
                    }
                }
            )
        )
        return StepResult.proceed(
            new_context,
            f"Enriched {processed} items, created {len(bookmarks)} bookmarks",
        )

    async def _process_item(
        self, item: ContentItem, pending_id: str | None, user_id: str
    ) -> tuple[list[Bookmark], ItemOutcome]:
        try:
            if pending_id:
                await self.pending_repository.update_status(
                    pending_id, PendingContentStatus.PROCESSING
                )

            page_content = await self.fetcher.fetch(item.url)
            if not page_content:
                logger.warning("Failed to fetch content", url=item.url)
                return [], ItemOutcome.failed("Failed to fetch content")

            bookmarks: list[Bookmark] = []
            if self.with_nested:
                bookmarks.extend(
                    await self._process_nested(item.url, page_content, item.source_adapter, user_id)
                )

            analysis = await self.enricher.analyze_content(item.url, page_content)
            bookmarks.append(self._to_bookmark(item.url, item.source_adapter, analysis, user_id))
            logger.debug("Created bookmark", url=item.url, tags=analysis.tags)
            return bookmarks, ItemOutcome.ok()
        except Exception as e:
            logger.error("Error enriching item", url=item.url, error=str(e))
            return [], ItemOutcome.failed(str(e))

    async def _process_nested(
        self,
        source_url: str,
        page_content: str,
        source_adapter: SourceAdapter,
        user_id: str,
    ) -> list[Bookmark]:
        extracted = await self.enricher.extract_urls(source_url, page_content)
        urls = extracted[: self.max_extracted_urls]
        logger.info("Extracted nested URLs", url=source_url, count=len(urls))

        bookmarks: list[Bookmark] = []
        for url in urls:
            try:
                content = await self.fetcher.fetch(url)
                if not content:
                    logger.warning("Failed to fetch nested URL", url=url)
                    continue
                analysis = await self.enricher.analyze_content(url, content)
            except Exception as e:
                logger.error("Error processing nested URL", url=url, error=str(e))
                continue
            bookmarks.append(self._to_bookmark(url, source_adapter, analysis, user_id))
        return bookmarks

    async def _archive(self, pending_id: str | None) -> None:
        if pending_id:
            await self.pending_repository.update_status(pending_id, PendingContentStatus.ARCHIVED)

    @staticmethod
    def _to_bookmark(
        url: str, source_adapter: SourceAdapter, analysis: ContentAnalysis, user_id: str
    ) -> Bookmark:
        return Bookmark(
            url=url,
            user_id=user_id,
            source_adapter=source_adapter,
            tags=tuple(analysis.tags),
            summary=analysis.summary,
        )
