"""
Job status tracking for workflow runs.

Turns the workflow lifecycle hooks into TaskStatusUpdate records so a client
polling the job can render a monotonic percentage.
"""

from collections.abc import Callable
from typing import Any

from link_enricher.logging import get_logger
from link_enricher.models import TaskStatusUpdate
from link_enricher.pipeline import (
    ItemProcessedInfo,
    WorkflowBuilder,
    WorkflowCompleteInfo,
    WorkflowStartInfo,
)
from link_enricher.ports import TaskStatusRepository

logger = get_logger(__name__)

MAX_RUNNING_PROGRESS = 99


def compute_progress(step_index: int, step_count: int, item_index: int, item_total: int) -> int:
    """
    Compute the overall percentage after one item of one step.

    Each step owns an equal share of 100; within a step, items fill the
    share in order. Capped at 99 while the job is still running.

    Parameters
    ----------
    step_index : int
        Zero-based index of the reporting step.
    step_count : int
        Number of steps in the workflow.
    item_index : int
        Zero-based index of the item just processed.
    item_total : int
        Number of items the step processes.

    Returns
    -------
    int
        Percentage in [0, 99].
    """
    if step_count <= 0:
        return 0
    step_share = 100 / step_count
    step_progress = step_index * step_share
    item_progress = ((item_index + 1) / item_total) * step_share if item_total > 0 else 0
    return max(0, min(round(step_progress + item_progress), MAX_RUNNING_PROGRESS))


def _item_key(info: ItemProcessedInfo[Any]) -> str:
    url = getattr(info.item, "url", None)
    return url if url else f"{info.step_name}:{info.index}"


class JobProgressTracker:
    """
    Write job status updates from workflow hooks.

    Percentages never decrease. An item whose latest event failed counts as
    skipped; a later success for the same URL (a retry) clears it.
    """

    def __init__(
        self,
        task_id: str,
        repository: TaskStatusRepository,
        heartbeat: Callable[[ItemProcessedInfo[Any]], None] | None = None,
    ):
        self.task_id = task_id
        self.repository = repository
        self.heartbeat = heartbeat
        self.items_enriched = 0
        self.step_names: tuple[str, ...] = ()
        self.progress = 0
        self.current_step = ""
        self._failed: set[str] = set()

    @property
    def items_skipped(self) -> int:
        return len(self._failed)

    def attach(self, builder: WorkflowBuilder[Any]) -> WorkflowBuilder[Any]:
        """Register this tracker's hooks on a builder."""
        return (
            builder.on_start(self.on_start)
            .on_item_processed(self.on_item_processed)
            .on_complete(self.on_complete)
        )

    async def _write(self, update: TaskStatusUpdate) -> None:
        if not self.task_id:
            return
        await self.repository.update_status(self.task_id, update)

    async def on_start(self, info: WorkflowStartInfo) -> None:
        self.step_names = info.step_names
        self.current_step = info.step_names[0] if info.step_names else ""
        await self._write(
            TaskStatusUpdate(
                status="running",
                progress=0,
                message=f"Starting: {' -> '.join(info.step_names)}",
                current_step=self.current_step,
            )
        )

    async def on_item_processed(self, info: ItemProcessedInfo[Any]) -> None:
        if self.heartbeat is not None:
            self.heartbeat(info)
        key = _item_key(info)
        if info.success:
            self._failed.discard(key)
        else:
            self._failed.add(key)

        step_index = (
            self.step_names.index(info.step_name) if info.step_name in self.step_names else 0
        )
        progress = compute_progress(step_index, len(self.step_names), info.index, info.total)
        self.progress = max(self.progress, progress)
        self.current_step = info.step_name

        await self._write(
            TaskStatusUpdate(
                status="running",
                progress=self.progress,
                message=f"Running step: {info.step_name} ({info.index + 1}/{info.total})",
                current_step=info.step_name,
            )
        )

    async def on_complete(self, info: WorkflowCompleteInfo[Any]) -> None:
        stats = info.stats
        enriched = len(info.context.updated_ids) or sum(
            1 for item in info.processed_items if getattr(item, "is_enriched", lambda: False)()
        )
        self.items_enriched = enriched
        if stats.cancelled:
            status, progress, message = "cancelled", self.progress, "Workflow cancelled"
        elif stats.success:
            status, progress, message = "completed", 100, "Workflow completed successfully"
        elif stats.halt_message:
            status, progress = "failed", self.progress
            message = f"Workflow halted: {stats.halt_message}"
        else:
            status, progress, message = "failed", self.progress, "Workflow failed"

        logger.info(
            "Job finished",
            task_id=self.task_id,
            status=status,
            items_enriched=enriched,
            items_skipped=self.items_skipped,
        )
        await self._write(
            TaskStatusUpdate(
                status=status,
                progress=progress,
                message=message,
                current_step=self.current_step,
                items_enriched=enriched,
                items_skipped=self.items_skipped,
            )
        )
