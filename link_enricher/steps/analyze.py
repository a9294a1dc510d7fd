"""
Analyze step: adds tags and a summary to every item.
"""

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.pipeline import BaseWorkflowStep, ItemOutcome, StepResult, WorkflowContext
from link_enricher.ports import ContentAnalyzer
from link_enricher.services.analyzer import HeuristicAnalyzer

logger = get_logger(__name__)


class AnalyzeStep(BaseWorkflowStep[ContentItem]):
    """
    Analyze each item with a ContentAnalyzer.

    Falls back to URL heuristics when no analyzer is given. A failed
    analysis keeps the original item and is reported with success=False.
    """

    step_name = "analyze"

    def __init__(self, analyzer: ContentAnalyzer | None = None):
        super().__init__()
        self.analyzer: ContentAnalyzer = analyzer or HeuristicAnalyzer()

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        items = context.items
        total = len(items)
        logger.info("Analyzing items", count=total)

        analyzed: list[ContentItem] = []
        failed = 0
        for i, item in enumerate(items):
            self.check_cancelled(context)
            try:
                analysis = await self.analyzer.analyze(item.url, item.raw_content or None)
            except Exception as e:
                logger.error("Failed to analyze item", url=item.url, error=str(e))
                analyzed.append(item)
                failed += 1
                await self.report_item(context, item, i, total, ItemOutcome.failed(str(e)))
                continue

            result = item.with_categorization(analysis.tags, analysis.summary or item.summary)
            analyzed.append(result)
            await self.report_item(context, result, i, total)

        logger.info("Analyzed items", count=total - failed, failed=failed)
        return StepResult.proceed(
            context.with_items(analyzed), f"Analyzed {total - failed} of {total} items"
        )
