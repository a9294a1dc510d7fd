"""
Gmail source reader.

Reads messages through a MailClient port and turns each one into a
content item whose URL is the first link found in the message body.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, ContentType, SourceAdapter
from link_enricher.ports import CursorRepository, SourceReaderConfig
from link_enricher.sources.cursor import resolve_since
from link_enricher.utils.url import extract_first_url

logger = get_logger(__name__)

SOURCE_TYPE = "gmail"
DEFAULT_LOOKBACK_DAYS = 7


@dataclass(frozen=True)
class MailMessage:
    """One message as returned by a MailClient."""

    id: str
    subject: str
    raw_content: str
    snippet: str = ""
    received_at: datetime | None = None


class MailClient(Protocol):
    async def fetch_messages_since(
        self, since: datetime, sender: str | None = None, with_url: bool = False
    ) -> list[MailMessage]: ...


class GmailSourceReader:
    """Incremental reader over a mailbox."""

    def __init__(
        self,
        client: MailClient,
        cursors: CursorRepository | None = None,
        default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ):
        self.client = client
        self.cursors = cursors
        self.default_lookback_days = default_lookback_days

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        """
        Fetch messages received since the last run.

        Parameters
        ----------
        config : SourceReaderConfig
            ``limit_days`` overrides the cursor; ``options["email"]`` filters
            by sender and ``options["with_url"]`` keeps only messages with a
            link.

        Returns
        -------
        list[ContentItem]
            One item per message, ``external_id`` recorded in
            ``config.options["external_ids"]`` (url -> message id).
        """
        now = datetime.now(UTC)
        since = await resolve_since(
            config, self.cursors, SOURCE_TYPE, self.default_lookback_days, now=now
        )
        logger.info("Fetching Gmail messages", since=since.isoformat())

        messages = await self.client.fetch_messages_since(
            since,
            sender=config.options.get("email"),
            with_url=bool(config.options.get("with_url", False)),
        )
        if config.limit:
            messages = messages[: config.limit]
        logger.info("Found Gmail messages", count=len(messages))

        if self.cursors is not None and config.user_id:
            await self.cursors.save(SOURCE_TYPE, config.user_id, now)

        external_ids: dict[str, str] = config.options.setdefault("external_ids", {})
        items: list[ContentItem] = []
        for message in messages:
            body = message.raw_content or message.snippet
            url = extract_first_url(body) or message.id
            received = message.received_at or now
            items.append(
                ContentItem(
                    url=url,
                    source_adapter=SourceAdapter.GMAIL,
                    summary=message.subject,
                    raw_content=body,
                    created_at=received,
                    updated_at=received,
                    content_type=ContentType.EMAIL,
                )
            )
            external_ids[url] = message.id
        return items
