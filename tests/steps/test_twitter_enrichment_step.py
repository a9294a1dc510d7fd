"""
Tests for TwitterEnrichmentStep.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from link_enricher.models import ContentItem, ContentType, QueuedItem
from link_enricher.pipeline import ItemProcessedInfo
from link_enricher.steps import TwitterEnrichmentStep, keys

TWEET_A = "https://x.com/alice/status/1"
TWEET_B = "https://twitter.com/bob/status/2"
ARTICLE = "https://example.com/article"


class ScriptedTwitterClient:
    """RateLimitedClient whose fetch results are scripted per URL."""

    def __init__(
        self,
        tweets: dict[str, str | Exception | None],
        limited_after: set[str] | None = None,
    ):
        self.tweets = tweets
        self.limited_after = limited_after or set()
        self.limited = False
        self.calls: list[str] = []

    async def fetch_content(self, url: str) -> str | None:
        self.calls.append(url)
        if url in self.limited_after:
            self.limited = True
            return None
        result = self.tweets.get(url)
        if isinstance(result, Exception):
            raise result
        return result

    def is_rate_limited(self) -> bool:
        return self.limited

    def get_rate_limit_reset_time(self) -> float | None:
        return 1_700_000_900.0 if self.limited else None

    def clear_rate_limit(self) -> None:
        self.limited = False


@pytest.mark.asyncio
async def test_tweets_enriched_and_other_items_untouched(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    client = ScriptedTwitterClient({TWEET_A: "hello from alice"})
    items = [make_item(ARTICLE, summary="keep"), make_item(TWEET_A)]

    result = await TwitterEnrichmentStep(client, mock_analyzer).execute(make_context(items))

    article, tweet = result.context.items
    assert article == items[0]
    assert tweet.tags == ("ai", "news")
    assert tweet.raw_content == "hello from alice"
    assert tweet.content_type == ContentType.TWEET
    mock_analyzer.analyze.assert_awaited_once_with(TWEET_A, "hello from alice")
    assert client.calls == [TWEET_A]
    assert keys.RETRY_QUEUE not in result.context.metadata
    assert [e.success for e in progress_events] == [True, True]


@pytest.mark.asyncio
async def test_rate_limited_tweets_are_queued(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    """Once rate limited, this and later tweets are queued without calling the API."""
    client = ScriptedTwitterClient({}, limited_after={TWEET_A})
    items = [make_item(TWEET_A), make_item(ARTICLE), make_item(TWEET_B)]

    result = await TwitterEnrichmentStep(client, mock_analyzer).execute(make_context(items))

    queue: tuple[QueuedItem, ...] = result.context.metadata[keys.RETRY_QUEUE]
    assert [(q.item.url, q.index, q.attempts) for q in queue] == [(TWEET_A, 0, 0), (TWEET_B, 2, 0)]
    assert client.calls == [TWEET_A]
    assert [e.success for e in progress_events] == [False, True, False]
    assert progress_events[0].error == "Rate limited, queued for retry"


@pytest.mark.asyncio
async def test_unavailable_tweet_is_not_queued(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    client = ScriptedTwitterClient({TWEET_A: None})

    result = await TwitterEnrichmentStep(client, mock_analyzer).execute(
        make_context([make_item(TWEET_A)])
    )

    assert keys.RETRY_QUEUE not in result.context.metadata
    assert progress_events[0].error == "Tweet content unavailable"


@pytest.mark.asyncio
async def test_without_client_items_pass_through(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    context = make_context([make_item(TWEET_A)])

    result = await TwitterEnrichmentStep(None).execute(context)

    assert result.context is context
    assert len(progress_events) == 1


@pytest.mark.asyncio
async def test_analysis_error_keeps_item(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    client = ScriptedTwitterClient({TWEET_A: "text"})
    mock_analyzer.analyze.side_effect = RuntimeError("llm down")
    item = make_item(TWEET_A)

    result = await TwitterEnrichmentStep(client, mock_analyzer).execute(make_context([item]))

    assert result.context.items == (item,)
    assert progress_events[0].error == "llm down"


@pytest.mark.asyncio
async def test_fetch_error_fails_only_that_tweet(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    """A tweet whose fetch raises is reported failed; the next tweet is still enriched."""
    client = ScriptedTwitterClient(
        {TWEET_A: ValueError("Expecting value"), TWEET_B: "hello from bob"}
    )
    items = [make_item(TWEET_A), make_item(TWEET_B)]

    result = await TwitterEnrichmentStep(client, mock_analyzer).execute(make_context(items))

    first, second = result.context.items
    assert first == items[0]
    assert second.raw_content == "hello from bob"
    assert client.calls == [TWEET_A, TWEET_B]
    assert keys.RETRY_QUEUE not in result.context.metadata
    assert [(e.success, e.error) for e in progress_events] == [
        (False, "Expecting value"),
        (True, None),
    ]
