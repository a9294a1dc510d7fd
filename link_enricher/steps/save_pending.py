"""
Save step: stages items as pending content for later enrichment.
"""

from collections.abc import Callable

import httpx

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, PendingContent
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.ports import PendingContentRepository
from link_enricher.steps import keys

logger = get_logger(__name__)

ExternalIdGetter = Callable[[ContentItem], str | None]


class SaveToPendingContentStep(BaseWorkflowStep[ContentItem]):
    """
    Save items to the pending content store.

    Items whose external id (a mail message id, for example) is already
    stored for the user are skipped. External ids come from the reader's
    side channel in metadata, or from ``get_external_id``.
    """

    step_name = "save-pending-content"

    def __init__(
        self,
        repository: PendingContentRepository,
        get_external_id: ExternalIdGetter | None = None,
    ):
        super().__init__()
        self.repository = repository
        self.get_external_id = get_external_id

    def _external_id(self, context: WorkflowContext[ContentItem], item: ContentItem) -> str | None:
        external_ids = context.metadata.get(keys.EXTERNAL_IDS, {})
        if item.url in external_ids:
            return external_ids[item.url]
        if self.get_external_id is not None:
            return self.get_external_id(item)
        return None

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        user_id = context.user_id or context.metadata.get(keys.USER_ID)
        if not user_id:
            logger.error("user_id is required for saving pending content")
            return StepResult.halt(context, "user_id is required for saving pending content")

        items = context.items
        logger.info("Saving items to pending content", count=len(items))

        records: list[PendingContent] = []
        try:
            for item in items:
                self.check_cancelled(context)
                external_id = self._external_id(context, item)
                if external_id and await self.repository.exists_by_external_id(
                    user_id, external_id
                ):
                    logger.info("Skipping duplicate", external_id=external_id)
                    continue
                records.append(PendingContent.from_item(item, user_id, external_id))

            if records:
                await self.repository.save_many(records)
                logger.info("Saved items to pending content", count=len(records))
            else:
                logger.info("No new items to save (all duplicates)")
        except httpx.HTTPError as e:
            logger.error("Failed to save pending content", error=str(e))
            await self.report_progress(context, items, lambda _i, _n: ItemOutcome.failed(str(e)))
            return StepResult.proceed(context, f"Failed to save pending content: {e}")

        await self.report_progress(context, items)
        return StepResult.proceed(
            context,
            f"Saved {len(records)} items to pending content, "
            f"skipped {len(items) - len(records)} duplicates",
        )
