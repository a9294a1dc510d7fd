"""
Export step: writes the items to an output location.
"""

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem
from link_enricher.pipeline import BaseWorkflowStep, StepResult, WorkflowContext
from link_enricher.ports import Exporter
from link_enricher.services.export import CsvExporter
from link_enricher.steps import keys

logger = get_logger(__name__)


class ExportStep(BaseWorkflowStep[ContentItem]):
    """
    Export items through an Exporter (CSV by default).

    The step's own ``output_path`` wins over the context's. With neither,
    the workflow halts.
    """

    step_name = "export"

    def __init__(self, exporter: Exporter | None = None, output_path: str | None = None):
        super().__init__()
        self.exporter: Exporter = exporter or CsvExporter()
        self.output_path = output_path

    async def run(self, context: WorkflowContext[ContentItem]) -> StepResult[ContentItem]:
        output_path = self.output_path or context.output_path
        if not output_path:
            logger.error("No output path configured for export")
            return StepResult.halt(context, "output_path is required for export")

        logger.info("Exporting items", count=len(context.items), output_path=output_path)
        written_to = await self.exporter.export(list(context.items), output_path)
        await self.report_progress(context, context.items)

        logger.info("Exported items", count=len(context.items), output_path=written_to)
        return StepResult.proceed(
            context.with_metadata(**{keys.EXPORT_PATH: written_to}),
            f"Exported {len(context.items)} items to {written_to}",
        )
