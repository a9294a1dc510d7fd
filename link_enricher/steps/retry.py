"""
Retry step: re-drives items queued as rate limited by an earlier step.
"""

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, QueuedItem
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.services.retry_handler import RetryHandlerService
from link_enricher.steps import keys

logger = get_logger(__name__)


class RetryStep(BaseWorkflowStep[ContentItem]):
    """
    Run the retry scheduler over the queued items.

    Merges enriched items back in place, adds their URLs to updated_ids,
    removes the queue from metadata and records a summary.
    """

    step_name = "retry-rate-limited"

    def __init__(self, retry_handler: RetryHandlerService):
        super().__init__()
        self.retry_handler = retry_handler

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        queue: list[QueuedItem] = list(context.metadata.get(keys.RETRY_QUEUE, ()))
        if not queue:
            return StepResult.proceed(context, "No rate-limited items to retry")

        logger.info("Retrying rate-limited items", count=len(queue))
        result = await self.retry_handler.run(queue)

        items = list(context.items)
        for index, enriched in result.enriched.items():
            if 0 <= index < len(items):
                items[index] = enriched

        for i, queued in enumerate(queue):
            if queued.index in result.enriched:
                await self.report_item(context, items[queued.index], i, len(queue))
            else:
                await self.report_item(
                    context,
                    queued.item,
                    i,
                    len(queue),
                    ItemOutcome.failed(result.abandoned_reason or "Not enriched after retries"),
                )

        summary = {
            "queued": len(queue),
            "enriched": len(result.enriched),
            "unenriched": result.unenriched_count,
            "cycles": result.cycles,
            "abandoned_reason": result.abandoned_reason,
        }
        new_context = (
            context.with_items(items)
            .with_updated_ids(result.updated_urls)
            .without_metadata(keys.RETRY_QUEUE)
            .with_metadata(**{keys.RETRY_SUMMARY: summary})
        )
        return StepResult.proceed(
            new_context,
            f"Retried {len(queue)} items: {len(result.enriched)} enriched, "
            f"{result.unenriched_count} not enriched",
        )
