"""
Workflow steps.
"""

from link_enricher.steps.analyze import AnalyzeStep
from link_enricher.steps.bookmark_enrichment import BookmarkEnrichmentStep
from link_enricher.steps.export import ExportStep
from link_enricher.steps.read import ReadStep
from link_enricher.steps.retry import RetryStep
from link_enricher.steps.save_bookmarks import SaveToBookmarkStep
from link_enricher.steps.save_pending import SaveToPendingContentStep
from link_enricher.steps.twitter_enrichment import TwitterEnrichmentStep

__all__ = [
    "AnalyzeStep",
    "BookmarkEnrichmentStep",
    "ExportStep",
    "ReadStep",
    "RetryStep",
    "SaveToBookmarkStep",
    "SaveToPendingContentStep",
    "TwitterEnrichmentStep",
]
