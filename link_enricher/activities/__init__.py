"""
Temporal activities for Link Enricher.
"""

from link_enricher.activities.workflow_job import run_workflow_job

__all__ = ["run_workflow_job"]
