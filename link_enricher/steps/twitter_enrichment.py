"""
Twitter enrichment step.

Fetches tweet text for Twitter/X items and re-analyzes them with it. Items
that hit the API rate limit are queued for RetryStep instead of failing.
"""

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, ContentType, QueuedItem
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.ports import ContentAnalyzer, RateLimitedClient
from link_enricher.services.analyzer import HeuristicAnalyzer
from link_enricher.steps import keys
from link_enricher.utils.url import is_twitter_url

logger = get_logger(__name__)


class TwitterEnrichmentStep(BaseWorkflowStep[ContentItem]):
    """Enrich Twitter/X links with the tweet content."""

    step_name = "enrich-twitter"

    def __init__(
        self,
        client: RateLimitedClient | None,
        analyzer: ContentAnalyzer | None = None,
    ):
        super().__init__()
        self.client = client
        self.analyzer: ContentAnalyzer = analyzer or HeuristicAnalyzer()

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        items = list(context.items)
        total = len(items)
        twitter_count = sum(1 for item in items if is_twitter_url(item.url))

        if twitter_count == 0 or self.client is None:
            if twitter_count and self.client is None:
                logger.warning("No Twitter client configured, skipping enrichment")
            await self.report_progress(context, items)
            return StepResult.proceed(context, "No Twitter links to enrich")

        logger.info("Enriching Twitter links", count=twitter_count)
        queue: list[QueuedItem] = list(context.metadata.get(keys.RETRY_QUEUE, ()))
        enriched = 0

        for i, item in enumerate(items):
            self.check_cancelled(context)
            if not is_twitter_url(item.url):
                await self.report_item(context, item, i, total)
                continue

            outcome = await self._enrich(self.client, item, i, items, queue)
            if outcome.success:
                enriched += 1
            await self.report_item(context, items[i], i, total, outcome)

        new_context = context.with_items(items)
        if queue:
            new_context = new_context.with_metadata(**{keys.RETRY_QUEUE: tuple(queue)})

        logger.info("Enriched Twitter links", enriched=enriched, queued=len(queue))
        return StepResult.proceed(
            new_context,
            f"Enriched {enriched} of {twitter_count} Twitter links, {len(queue)} queued for retry",
        )

    async def _enrich(
        self,
        client: RateLimitedClient,
        item: ContentItem,
        index: int,
        items: list[ContentItem],
        queue: list[QueuedItem],
    ) -> ItemOutcome:
        if client.is_rate_limited():
            queue.append(QueuedItem(item=item, index=index))
            return ItemOutcome.failed("Rate limited, queued for retry")

        try:
            content = await client.fetch_content(item.url)
        except Exception as e:
            logger.error("Failed to fetch tweet", url=item.url, error=str(e))
            return ItemOutcome.failed(str(e))
        if not content:
            if client.is_rate_limited():
                queue.append(QueuedItem(item=item, index=index))
                return ItemOutcome.failed("Rate limited, queued for retry")
            logger.warning("Tweet content unavailable", url=item.url)
            return ItemOutcome.failed("Tweet content unavailable")

        try:
            analysis = await self.analyzer.analyze(item.url, content)
        except Exception as e:
            logger.error("Failed to analyze tweet", url=item.url, error=str(e))
            return ItemOutcome.failed(str(e))

        items[index] = item.with_categorization(
            analysis.tags, analysis.summary or item.summary
        ).model_copy(update={"raw_content": content, "content_type": ContentType.TWEET})
        return ItemOutcome.ok()
