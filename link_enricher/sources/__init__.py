"""
Source readers and read-cursor repositories.
"""

from link_enricher.sources.bookmark import BookmarkSourceReader
from link_enricher.sources.cursor import (
    FileCursorRepository,
    InMemoryCursorRepository,
    resolve_since,
)
from link_enricher.sources.directory import DirectorySourceReader
from link_enricher.sources.feed import FeedSourceReader
from link_enricher.sources.gmail import GmailSourceReader, MailClient, MailMessage
from link_enricher.sources.pending_content import PendingContentSourceReader

__all__ = [
    "BookmarkSourceReader",
    "DirectorySourceReader",
    "FeedSourceReader",
    "FileCursorRepository",
    "GmailSourceReader",
    "InMemoryCursorRepository",
    "MailClient",
    "MailMessage",
    "PendingContentSourceReader",
    "resolve_since",
]
