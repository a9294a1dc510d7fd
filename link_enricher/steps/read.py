"""
Read step: produces the initial items from a source reader.
"""

from typing import Any

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.pipeline import BaseWorkflowStep, StepResult, WorkflowContext
from link_enricher.ports import SourceReader, SourceReaderConfig
from link_enricher.steps import keys

logger = get_logger(__name__)


class ReadStep(BaseWorkflowStep[ContentItem]):
    """
    Fetch items from a source.

    Runs even with an empty context. Copies the reader's side-channel data
    (pending record ids, external ids) and the user id into metadata.
    """

    step_name = "read"

    def __init__(
        self,
        reader: SourceReader | None,
        source_name: str = "source",
        limit: int | None = None,
        limit_days: int | None = None,
        options: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.reader = reader
        self.source_name = source_name
        self.limit = limit
        self.limit_days = limit_days
        self.options = options or {}

    def skip_if_empty(self) -> bool:
        return False

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        if self.reader is None:
            logger.warning("No source reader configured", source=self.source_name)
            return StepResult.proceed(
                context.with_items([]), f"No source reader configured for {self.source_name}"
            )

        logger.info("Reading items", source=self.source_name)
        reader_config = SourceReaderConfig(
            user_id=context.user_id,
            source_path=context.source_path,
            limit=self.limit,
            limit_days=self.limit_days,
            options=dict(self.options),
        )
        items = await self.reader.read(reader_config)

        metadata: dict[str, Any] = {}
        if reader_config.pending_content_ids:
            metadata[keys.PENDING_CONTENT_IDS] = dict(reader_config.pending_content_ids)
        external_ids = reader_config.options.get("external_ids")
        if external_ids:
            metadata[keys.EXTERNAL_IDS] = dict(external_ids)
        if context.user_id:
            metadata[keys.USER_ID] = context.user_id

        new_context = context.with_items(items).with_metadata(**metadata)
        await self.report_progress(new_context, items)

        logger.info("Read items", source=self.source_name, count=len(items))
        return StepResult.proceed(
            new_context, f"Read {len(items)} items from {self.source_name}"
        )
