"""
Temporal connection and job submission.

Shared by the worker and the trigger CLI so both talk to the same namespace
with the Pydantic v2 data converter.
"""

from collections.abc import Sequence

from temporalio.client import Client, Interceptor, WorkflowHandle
from temporalio.contrib.pydantic import pydantic_data_converter
from ulid import ULID

from link_enricher.config import Config
from link_enricher.models import WorkflowJobInput, WorkflowJobResult
from link_enricher.workflows import WorkflowJobWorkflow

WORKFLOW_ID_PREFIX = "workflow-job"


async def connect(config: Config, interceptors: Sequence[Interceptor] | None = None) -> Client:
    """
    Connect to config's Temporal host and namespace.

    Parameters
    ----------
    config : Config
        Worker configuration.
    interceptors : Sequence[Interceptor] | None, optional
        Client interceptors (e.g., TracingInterceptor).

    Returns
    -------
    Client
        Connected client using the Pydantic v2 data converter.
    """
    return await Client.connect(
        config.temporal_host,
        namespace=config.temporal_namespace,
        data_converter=pydantic_data_converter,
        interceptors=interceptors or [],
    )


def job_workflow_id(preset: str) -> str:
    """
    Build a unique, sortable workflow ID for a preset job.

    Examples
    --------
    >>> job_workflow_id("feed").startswith("workflow-job-feed-")
    True
    """
    return f"{WORKFLOW_ID_PREFIX}-{preset}-{ULID()}"


async def start_workflow_job(
    client: Client,
    task_queue: str,
    input: WorkflowJobInput,
    workflow_id: str | None = None,
) -> WorkflowHandle[WorkflowJobWorkflow, WorkflowJobResult]:
    """Start WorkflowJobWorkflow for input; the ID defaults to job_workflow_id(preset)."""
    return await client.start_workflow(
        WorkflowJobWorkflow.run,
        input,
        id=workflow_id or job_workflow_id(input.preset),
        task_queue=task_queue,
    )
