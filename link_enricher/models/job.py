"""
Input/Output models for the background workflow job.

Workflows and activities take a single model argument. Models use Pydantic
with camelCase aliases for JSON serialization via pydantic_data_converter.
"""

from pydantic import Field

from link_enricher.models.base import CamelCaseModel


class WorkflowJobInput(CamelCaseModel):
    """Input for WorkflowJobWorkflow and the run_workflow_job activity."""

    preset: str
    user_id: str
    task_id: str = ""
    source_path: str | None = None
    output_path: str | None = None
    options: dict[str, bool | str | int] = Field(default_factory=dict)
    timeout_minutes: int = 120


class WorkflowJobResult(CamelCaseModel):
    """Result of a workflow job run."""

    status: str  # "completed", "cancelled", "error"
    preset: str
    items_processed: int = 0
    items_enriched: int = 0
    items_skipped: int = 0
    executed_steps: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0
    message: str = ""
    error: str = ""


class WorkflowProgress(CamelCaseModel):
    """
    Progress state returned by Temporal Query.

    The `workflow_type` field is used as a discriminator by API consumers.
    """

    workflow_id: str = ""
    workflow_type: str = "WorkflowJob"
    preset: str = ""

    # Current status
    status: str = "running"  # "running", "completed", "cancelled", "error"
    current_step: str = "idle"

    # Human-readable message
    message: str = ""

    # Timestamps (ISO 8601 format)
    started_at: str = ""
    updated_at: str = ""

    # Counts (set when the job finishes)
    items_enriched: int = 0
    items_skipped: int = 0

    # Error info (only set when status is "error")
    error: str = ""


class TaskStatusUpdate(CamelCaseModel):
    """Job-status record written to the platform API while a workflow runs."""

    status: str  # "running", "completed", "failed", "cancelled"
    progress: int = 0  # 0-100
    message: str = ""
    current_step: str = ""
    items_enriched: int | None = None
    items_skipped: int | None = None
