"""
Workflow execution engine: context, step contract, builder.
"""

from link_enricher.pipeline.builder import (
    ErrorHandlerResult,
    Workflow,
    WorkflowBuilder,
    WorkflowCompleteInfo,
    WorkflowErrorInfo,
    WorkflowExecutionStats,
    WorkflowStartInfo,
)
from link_enricher.pipeline.context import (
    CancellationToken,
    ItemOutcome,
    ItemProcessedInfo,
    StepResult,
    WorkflowContext,
    create_workflow_context,
)
from link_enricher.pipeline.step import BaseWorkflowStep, WorkflowStep

__all__ = [
    "BaseWorkflowStep",
    "CancellationToken",
    "ErrorHandlerResult",
    "ItemOutcome",
    "ItemProcessedInfo",
    "StepResult",
    "Workflow",
    "WorkflowBuilder",
    "WorkflowCompleteInfo",
    "WorkflowContext",
    "WorkflowErrorInfo",
    "WorkflowExecutionStats",
    "WorkflowStartInfo",
    "create_workflow_context",
]
