"""
Save step: persists items as bookmarks for the run's user.
"""

import httpx

from link_enricher.logging import get_logger
from link_enricher.models import Bookmark, ContentItem
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.ports import BookmarkRepository
from link_enricher.utils.url import normalize_url_for_dedup

logger = get_logger(__name__)


class SaveToBookmarkStep(BaseWorkflowStep[ContentItem]):
    """
    Save items as bookmarks, skipping URLs the user already has.

    Raises MissingUserIdError when the run has no user identity.
    """

    step_name = "save-bookmarks"

    def __init__(self, repository: BookmarkRepository | None):
        super().__init__()
        self.repository = repository

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        if self.repository is None:
            logger.warning("No bookmark repository configured, skipping save")
            return StepResult.proceed(context, "No repository configured")

        user_id = self.require_user_id(context)
        items = context.items

        try:
            existing = await self.repository.exists_by_urls(user_id, [item.url for item in items])
        except httpx.HTTPError as e:
            logger.error("Failed to check existing bookmarks", error=str(e))
            await self.report_progress(context, items, lambda _i, _n: ItemOutcome.failed(str(e)))
            return StepResult.proceed(context, f"Failed to save bookmarks: {e}")

        to_save: list[Bookmark] = []
        seen: set[str] = set()
        for item in items:
            key = normalize_url_for_dedup(item.url)
            if item.url in existing or key in seen:
                continue
            seen.add(key)
            to_save.append(Bookmark.from_item(item, user_id))

        skipped = len(items) - len(to_save)
        if skipped:
            logger.info("Skipping duplicate URLs", count=skipped)

        saved = 0
        if to_save:
            try:
                saved = await self.repository.save_many(to_save)
            except httpx.HTTPError as e:
                logger.error("Failed to save bookmarks", error=str(e))
                await self.report_progress(
                    context, items, lambda _i, _n: ItemOutcome.failed(str(e))
                )
                return StepResult.proceed(context, f"Failed to save bookmarks: {e}")
            logger.info("Saved bookmarks", count=saved)

        await self.report_progress(context, items)
        return StepResult.proceed(
            context.with_updated_ids(b.url for b in to_save),
            f"Saved {saved} bookmarks, skipped {skipped} duplicates",
        )
