"""
Link Enricher: content ingestion and enrichment workflows.
"""

__version__ = "0.1.0"
