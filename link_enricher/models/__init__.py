"""
Pydantic models for Link Enricher.
"""

from link_enricher.models.analysis import ContentAnalysis, ExtractedUrls
from link_enricher.models.base import CamelCaseModel, FrozenCamelCaseModel
from link_enricher.models.content import (
    Bookmark,
    ContentItem,
    ContentType,
    PendingContent,
    PendingContentStatus,
    SourceAdapter,
)
from link_enricher.models.job import (
    TaskStatusUpdate,
    WorkflowJobInput,
    WorkflowJobResult,
    WorkflowProgress,
)
from link_enricher.models.retry import QueuedItem, RetryResult

__all__ = [
    "Bookmark",
    "CamelCaseModel",
    "ContentAnalysis",
    "ContentItem",
    "ContentType",
    "ExtractedUrls",
    "FrozenCamelCaseModel",
    "PendingContent",
    "PendingContentStatus",
    "QueuedItem",
    "RetryResult",
    "SourceAdapter",
    "TaskStatusUpdate",
    "WorkflowJobInput",
    "WorkflowJobResult",
    "WorkflowProgress",
]
