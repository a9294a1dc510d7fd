"""
Temporal Workflows for Link Enricher.
"""

from link_enricher.workflows.workflow_job import WorkflowJobWorkflow

__all__ = ["WorkflowJobWorkflow"]
