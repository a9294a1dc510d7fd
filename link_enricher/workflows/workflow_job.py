"""
Workflow Job Workflow.

Runs one preset workflow as a background job. All the work happens in the
run_workflow_job activity; this workflow owns the timeout, the cancellation
boundary and a queryable progress record.
"""

import asyncio
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from link_enricher.activities import run_workflow_job
    from link_enricher.models import WorkflowJobInput, WorkflowJobResult, WorkflowProgress

HEARTBEAT_TIMEOUT = timedelta(minutes=5)


@workflow.defn
class WorkflowJobWorkflow:
    """
    Background job running a single preset.

    The activity is not retried: enrichment archives its source records, so
    a second attempt would not see the same input.
    """

    def __init__(self) -> None:
        self._progress = WorkflowProgress()

    @workflow.query
    def get_progress(self) -> WorkflowProgress:
        """Return current job progress for Temporal Query."""
        return self._progress

    @workflow.run
    async def run(self, input: WorkflowJobInput) -> WorkflowJobResult:
        """
        Run the preset workflow activity.

        Parameters
        ----------
        input : WorkflowJobInput
            Preset, user, task id, paths and options.

        Returns
        -------
        WorkflowJobResult
            Activity result, or an error/cancelled result.
        """
        wf_info = workflow.info()
        now = workflow.now().isoformat()
        self._progress.workflow_id = wf_info.workflow_id
        self._progress.preset = input.preset
        self._progress.started_at = now
        self._progress.updated_at = now
        self._progress.status = "running"
        self._progress.current_step = "run"
        self._progress.message = f"Running preset {input.preset}"

        workflow.logger.info(
            "WorkflowJobWorkflow start",
            extra={"preset": input.preset, "task_id": input.task_id},
        )

        try:
            result: WorkflowJobResult = await workflow.execute_activity(
                run_workflow_job,
                input,
                start_to_close_timeout=timedelta(minutes=input.timeout_minutes),
                heartbeat_timeout=HEARTBEAT_TIMEOUT,
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except asyncio.CancelledError:
            self._finish("cancelled", "Job cancelled")
            workflow.logger.info("WorkflowJobWorkflow cancelled", extra={"preset": input.preset})
            raise
        except Exception as e:
            error_msg = str(e)
            self._finish("error", "Job failed", error=error_msg)
            workflow.logger.error(f"Workflow job failed: {error_msg}")
            return WorkflowJobResult(
                status="error", preset=input.preset, message="Job failed", error=error_msg
            )

        self._progress.items_enriched = result.items_enriched
        self._progress.items_skipped = result.items_skipped
        self._finish(result.status, result.message, error=result.error)

        workflow.logger.info(
            "WorkflowJobWorkflow end",
            extra={
                "status": result.status,
                "items_enriched": result.items_enriched,
                "items_skipped": result.items_skipped,
            },
        )
        return result

    def _finish(self, status: str, message: str, error: str = "") -> None:
        self._progress.status = status
        self._progress.current_step = "done"
        self._progress.message = message
        self._progress.error = error
        self._progress.updated_at = workflow.now().isoformat()
