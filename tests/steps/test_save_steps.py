"""
Tests for SaveToBookmarkStep and SaveToPendingContentStep.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from link_enricher.errors import MissingUserIdError
from link_enricher.models import ContentItem
from link_enricher.pipeline import ItemProcessedInfo
from link_enricher.steps import SaveToBookmarkStep, SaveToPendingContentStep, keys

# =============================================================================
# SaveToBookmarkStep
# =============================================================================


@pytest.mark.asyncio
async def test_save_bookmarks_skips_existing_and_batch_duplicates(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    bookmark_repository: Any,
) -> None:
    bookmark_repository.existing_urls = {"https://a.com/old"}
    items = [
        make_item("https://a.com/old"),
        make_item("https://a.com/new"),
        make_item("https://a.com/new/?utm_source=mail"),
    ]

    result = await SaveToBookmarkStep(bookmark_repository).execute(make_context(items))

    assert [b.url for b in bookmark_repository.saved] == ["https://a.com/new"]
    assert bookmark_repository.saved[0].user_id == "user-1"
    assert result.context.updated_ids == frozenset({"https://a.com/new"})
    assert result.message == "Saved 1 bookmarks, skipped 2 duplicates"


@pytest.mark.asyncio
async def test_save_bookmarks_requires_user(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    bookmark_repository: Any,
) -> None:
    with pytest.raises(MissingUserIdError):
        await SaveToBookmarkStep(bookmark_repository).execute(
            make_context([make_item()], user_id=None)
        )


@pytest.mark.asyncio
async def test_save_bookmarks_without_repository_proceeds(
    make_context: Callable[..., Any], make_item: Callable[..., ContentItem]
) -> None:
    result = await SaveToBookmarkStep(None).execute(make_context([make_item()]))

    assert result.should_continue is True


@pytest.mark.asyncio
async def test_save_bookmarks_api_error_reports_failures(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    repository = AsyncMock()
    repository.exists_by_urls.return_value = set()
    repository.save_many.side_effect = httpx.ConnectError("refused")

    result = await SaveToBookmarkStep(repository).execute(make_context([make_item()]))

    assert result.should_continue is True
    assert result.context.updated_ids == frozenset()
    assert progress_events[0].success is False


# =============================================================================
# SaveToPendingContentStep
# =============================================================================


@pytest.mark.asyncio
async def test_save_pending_skips_known_external_ids(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    pending_repository: Any,
) -> None:
    pending_repository.existing_external_ids = {"msg-1"}
    items = [make_item("https://a.com/1"), make_item("https://a.com/2")]
    context = make_context(
        items, **{keys.EXTERNAL_IDS: {"https://a.com/1": "msg-1", "https://a.com/2": "msg-2"}}
    )

    result = await SaveToPendingContentStep(pending_repository).execute(context)

    assert pending_repository.save_calls == 1
    assert [(r.url, r.external_id) for r in pending_repository.saved] == [
        ("https://a.com/2", "msg-2")
    ]
    assert pending_repository.saved[0].is_pending()
    assert result.message == "Saved 1 items to pending content, skipped 1 duplicates"


@pytest.mark.asyncio
async def test_save_pending_uses_external_id_getter(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    pending_repository: Any,
) -> None:
    step = SaveToPendingContentStep(pending_repository, get_external_id=lambda item: item.url)

    await step.execute(make_context([make_item("https://a.com/1")]))

    assert pending_repository.saved[0].external_id == "https://a.com/1"


@pytest.mark.asyncio
async def test_save_pending_all_duplicates_saves_nothing(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    pending_repository: Any,
) -> None:
    pending_repository.existing_external_ids = {"msg-1"}
    context = make_context(
        [make_item("https://a.com/1")], **{keys.EXTERNAL_IDS: {"https://a.com/1": "msg-1"}}
    )

    await SaveToPendingContentStep(pending_repository).execute(context)

    assert pending_repository.save_calls == 0


@pytest.mark.asyncio
async def test_save_pending_without_user_halts(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    pending_repository: Any,
) -> None:
    result = await SaveToPendingContentStep(pending_repository).execute(
        make_context([make_item()], user_id=None)
    )

    assert result.should_continue is False
    assert pending_repository.saved == []


@pytest.mark.asyncio
async def test_save_pending_api_error_proceeds(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    repository = AsyncMock()
    repository.exists_by_external_id.return_value = False
    repository.save_many.side_effect = httpx.ReadTimeout("timed out")

    result = await SaveToPendingContentStep(repository).execute(make_context([make_item()]))

    assert result.should_continue is True
    assert "Failed to save pending content" in result.message
    assert progress_events[0].success is False
