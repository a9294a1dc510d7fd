"""
Tests for ReadStep and AnalyzeStep.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from link_enricher.models import ContentItem
from link_enricher.pipeline import ItemProcessedInfo
from link_enricher.ports import SourceReaderConfig
from link_enricher.steps import AnalyzeStep, ReadStep, keys

# =============================================================================
# ReadStep
# =============================================================================


class RecordingReader:
    """SourceReader returning fixed items and filling the side channels."""

    def __init__(self, items: list[ContentItem]):
        self.items = items
        self.configs: list[SourceReaderConfig] = []

    async def read(self, config: SourceReaderConfig) -> list[ContentItem]:
        self.configs.append(config)
        for item in self.items:
            config.pending_content_ids[item.url] = f"pc-{item.url[-1]}"
        config.options.setdefault("external_ids", {})["https://a.com/1"] = "msg-1"
        return self.items


@pytest.mark.asyncio
async def test_read_step_runs_on_empty_context(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    """The read step produces items and records side-channel data."""
    items = [make_item("https://a.com/1"), make_item("https://a.com/2")]
    reader = RecordingReader(items)
    step = ReadStep(reader, source_name="gmail", limit=5, limit_days=2, options={"email": "x"})

    result = await step.execute(make_context([]))

    config = reader.configs[0]
    assert config.user_id == "user-1"
    assert config.limit == 5
    assert config.limit_days == 2
    assert config.options["email"] == "x"
    assert result.context.items == tuple(items)
    assert result.context.metadata[keys.PENDING_CONTENT_IDS] == {
        "https://a.com/1": "pc-1",
        "https://a.com/2": "pc-2",
    }
    assert result.context.metadata[keys.EXTERNAL_IDS] == {"https://a.com/1": "msg-1"}
    assert result.context.metadata[keys.USER_ID] == "user-1"
    assert len(progress_events) == 2
    assert result.message == "Read 2 items from gmail"


@pytest.mark.asyncio
async def test_read_step_does_not_share_options_between_runs(
    make_context: Callable[..., Any], make_item: Callable[..., ContentItem]
) -> None:
    reader = RecordingReader([make_item("https://a.com/1")])
    step = ReadStep(reader, options={})

    await step.execute(make_context([]))

    assert step.options == {}


@pytest.mark.asyncio
async def test_read_step_without_reader_yields_no_items(
    make_context: Callable[..., Any],
) -> None:
    result = await ReadStep(None, source_name="gmail").execute(make_context([]))

    assert result.should_continue is True
    assert result.context.items == ()
    assert "gmail" in result.message


# =============================================================================
# AnalyzeStep
# =============================================================================


@pytest.mark.asyncio
async def test_analyze_step_categorizes_items(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
) -> None:
    items = [make_item("https://a.com/1", raw_content="body"), make_item("https://a.com/2")]

    result = await AnalyzeStep(mock_analyzer).execute(make_context(items))

    assert all(item.tags == ("ai", "news") for item in result.context.items)
    assert mock_analyzer.analyze.await_args_list[0].args == ("https://a.com/1", "body")
    assert mock_analyzer.analyze.await_args_list[1].args == ("https://a.com/2", None)


@pytest.mark.asyncio
async def test_analyze_step_keeps_item_on_error(
    make_context: Callable[..., Any],
    make_item: Callable[..., ContentItem],
    mock_analyzer: AsyncMock,
    progress_events: list[ItemProcessedInfo[Any]],
) -> None:
    items = [make_item("https://a.com/1"), make_item("https://a.com/2")]
    mock_analyzer.analyze.side_effect = [RuntimeError("boom"), mock_analyzer.analyze.return_value]

    result = await AnalyzeStep(mock_analyzer).execute(make_context(items))

    assert result.context.items[0] == items[0]
    assert result.context.items[1].summary == "Analyzed"
    assert [(e.success, e.error) for e in progress_events] == [(False, "boom"), (True, None)]
    assert result.message == "Analyzed 1 of 2 items"


@pytest.mark.asyncio
async def test_analyze_step_defaults_to_heuristics(
    make_context: Callable[..., Any], make_item: Callable[..., ContentItem]
) -> None:
    result = await AnalyzeStep().execute(make_context([make_item("https://github.com/a/b")]))

    assert result.context.items[0].tags == ("code", "opensource")
    assert result.context.items[0].summary == "Content from github.com"
