"""
Tests for WorkflowJobWorkflow.

Runs the workflow against a time-skipping test server with the activity
replaced by a mock registered under the same name.
"""

from datetime import timedelta

import pytest
from temporalio import activity
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import (
    SandboxedWorkflowRunner,
    SandboxRestrictions,
)

from link_enricher.models import WorkflowJobInput, WorkflowJobResult, WorkflowProgress
from link_enricher.workflows import WorkflowJobWorkflow

TASK_QUEUE = "test-queue"


@pytest.fixture
def sandbox_runner() -> SandboxedWorkflowRunner:
    """Create a sandboxed workflow runner with Pydantic passthrough modules."""
    return SandboxedWorkflowRunner(
        restrictions=SandboxRestrictions.default.with_passthrough_modules(
            "annotated_types",
            "pydantic_core",
            "pydantic_core._pydantic_core",
            "pydantic_core.core_schema",
        )
    )


@pytest.fixture
def job_input() -> WorkflowJobInput:
    return WorkflowJobInput(
        preset="bookmark_enrichment",
        user_id="user-1",
        task_id="task-1",
        options={"with_nested": True},
    )


@pytest.mark.asyncio
async def test_successful_job_returns_activity_result(
    job_input: WorkflowJobInput,
    sandbox_runner: SandboxedWorkflowRunner,
    required_env_vars: None,
) -> None:
    """The activity result is returned and mirrored in the progress query."""
    received: list[WorkflowJobInput] = []

    @activity.defn(name="run_workflow_job")
    async def mock_run_workflow_job(input: WorkflowJobInput) -> WorkflowJobResult:
        received.append(input)
        return WorkflowJobResult(
            status="completed",
            preset=input.preset,
            items_processed=3,
            items_enriched=2,
            items_skipped=1,
            executed_steps=["read", "enrich-bookmarks"],
            message="Executed 2/2 steps",
        )

    async with (
        await WorkflowEnvironment.start_time_skipping(
            data_converter=pydantic_data_converter,
        ) as env,
        Worker(
            env.client,
            task_queue=TASK_QUEUE,
            workflow_runner=sandbox_runner,
            workflows=[WorkflowJobWorkflow],
            activities=[mock_run_workflow_job],
        ),
    ):
        handle = await env.client.start_workflow(
            WorkflowJobWorkflow.run,
            job_input,
            id="test-workflow-job-success",
            task_queue=TASK_QUEUE,
            execution_timeout=timedelta(minutes=5),
        )
        result = await handle.result()
        progress = await handle.query(WorkflowJobWorkflow.get_progress)

    assert result.status == "completed"
    assert result.items_enriched == 2
    assert received[0].options == {"with_nested": True}

    assert isinstance(progress, WorkflowProgress)
    assert progress.status == "completed"
    assert progress.preset == "bookmark_enrichment"
    assert progress.current_step == "done"
    assert progress.items_enriched == 2
    assert progress.items_skipped == 1
    assert progress.workflow_id == "test-workflow-job-success"


@pytest.mark.asyncio
async def test_activity_failure_returns_error_result(
    job_input: WorkflowJobInput,
    sandbox_runner: SandboxedWorkflowRunner,
    required_env_vars: None,
) -> None:
    """
    An activity exception ends the job with an error result, not a failure.

    Verifies:
    1. The workflow completes and returns status "error"
    2. The activity is attempted exactly once
    3. The progress query reports the error
    """
    attempts = 0

    @activity.defn(name="run_workflow_job")
    async def mock_run_workflow_job(input: WorkflowJobInput) -> WorkflowJobResult:
        nonlocal attempts
        attempts += 1
        raise RuntimeError("API unavailable")

    async with (
        await WorkflowEnvironment.start_time_skipping(
            data_converter=pydantic_data_converter,
        ) as env,
        Worker(
            env.client,
            task_queue=TASK_QUEUE,
            workflow_runner=sandbox_runner,
            workflows=[WorkflowJobWorkflow],
            activities=[mock_run_workflow_job],
        ),
    ):
        handle = await env.client.start_workflow(
            WorkflowJobWorkflow.run,
            job_input,
            id="test-workflow-job-error",
            task_queue=TASK_QUEUE,
            execution_timeout=timedelta(minutes=5),
        )
        result = await handle.result()
        progress = await handle.query(WorkflowJobWorkflow.get_progress)

    assert result.status == "error"
    assert result.error
    assert attempts == 1
    assert progress.status == "error"
    assert progress.error == result.error
