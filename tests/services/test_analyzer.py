"""
Tests for LLMEnricher, HeuristicAnalyzer and extracted URL filtering.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from link_enricher.models import ContentAnalysis, ExtractedUrls
from link_enricher.services.analyzer import (
    HeuristicAnalyzer,
    LLMEnricher,
    filter_extracted_urls,
)


def make_enricher(
    analysis: ContentAnalysis | Exception | None = None,
    extracted: ExtractedUrls | Exception | None = None,
    max_content_chars: int = 10000,
    max_extracted_urls: int = 3,
) -> tuple[LLMEnricher, MagicMock, MagicMock]:
    """Build an LLMEnricher whose chains are mocks."""
    analysis_chain = MagicMock()
    analysis_chain.ainvoke = AsyncMock(
        side_effect=analysis if isinstance(analysis, Exception) else None,
        return_value=analysis or ContentAnalysis(),
    )
    extraction_chain = MagicMock()
    extraction_chain.ainvoke = AsyncMock(
        side_effect=extracted if isinstance(extracted, Exception) else None,
        return_value=extracted or ExtractedUrls(),
    )
    enricher = LLMEnricher(
        api_key="test-key",
        base_url=None,
        model="test-model",
        max_content_chars=max_content_chars,
        max_extracted_urls=max_extracted_urls,
        analysis_chain=analysis_chain,
        extraction_chain=extraction_chain,
    )
    return enricher, analysis_chain, extraction_chain


# =============================================================================
# filter_extracted_urls
# =============================================================================


def test_filter_drops_source_duplicates_and_non_http() -> None:
    """Only distinct http(s) URLs other than the source survive."""
    urls = [
        "https://example.com/page/",
        "mailto:someone@example.com",
        "https://other.com/a",
        "https://other.com/a#section",
        "/relative/path",
        "https://third.com/b",
    ]

    result = filter_extracted_urls("https://example.com/page", urls, max_urls=5)

    assert result == ["https://other.com/a", "https://third.com/b"]


def test_filter_truncates_to_max_urls() -> None:
    urls = [f"https://site{i}.com/" for i in range(10)]

    result = filter_extracted_urls("https://example.com", urls, max_urls=3)

    assert result == urls[:3]


def test_filter_with_single_url_cap() -> None:
    result = filter_extracted_urls(
        "https://example.com", ["https://a.com/", "https://b.com/"], max_urls=1
    )

    assert result == ["https://a.com/"]


# =============================================================================
# LLMEnricher
# =============================================================================


@pytest.mark.asyncio
async def test_analyze_content_normalizes_tags() -> None:
    """Tags are stripped, lowercased and emptied ones dropped."""
    enricher, chain, _ = make_enricher(
        analysis=ContentAnalysis(tags=[" Python ", "", "AsyncIO"], summary=" About async. ")
    )

    result = await enricher.analyze_content("https://example.com", "page text")

    assert result.tags == ["python", "asyncio"]
    assert result.summary == "About async."
    chain.ainvoke.assert_awaited_once_with(
        {"url": "https://example.com", "content": "page text"}
    )


@pytest.mark.asyncio
async def test_analyze_content_truncates_input() -> None:
    enricher, chain, _ = make_enricher(max_content_chars=5)

    await enricher.analyze_content("https://example.com", "0123456789")

    assert chain.ainvoke.await_args.args[0]["content"] == "01234"


@pytest.mark.asyncio
async def test_analyze_content_error_returns_empty_analysis() -> None:
    """LLM failures degrade to an empty analysis instead of raising."""
    enricher, _, _ = make_enricher(analysis=RuntimeError("LLM unavailable"))

    result = await enricher.analyze_content("https://example.com", "text")

    assert result == ContentAnalysis()


@pytest.mark.asyncio
async def test_analyze_uses_context_as_content() -> None:
    enricher, chain, _ = make_enricher(analysis=ContentAnalysis(tags=["a"], summary="s"))

    await enricher.analyze("https://example.com")

    assert chain.ainvoke.await_args.args[0]["content"] == ""


@pytest.mark.asyncio
async def test_extract_urls_filters_and_caps() -> None:
    """Extraction output is filtered and capped at max_extracted_urls."""
    enricher, _, chain = make_enricher(
        extracted=ExtractedUrls(
            urls=[
                "https://example.com/post",
                "https://a.com/1",
                "https://b.com/2",
                "https://c.com/3",
            ]
        ),
        max_extracted_urls=2,
    )

    result = await enricher.extract_urls("https://example.com/post", "page")

    assert result == ["https://a.com/1", "https://b.com/2"]
    assert chain.ainvoke.await_args.args[0]["max_urls"] == 2


@pytest.mark.asyncio
async def test_extract_urls_error_returns_empty_list() -> None:
    enricher, _, _ = make_enricher(extracted=ValueError("bad json"))

    assert await enricher.extract_urls("https://example.com", "page") == []


# =============================================================================
# HeuristicAnalyzer
# =============================================================================


@pytest.mark.parametrize(
    ("url", "tags"),
    [
        ("https://github.com/org/repo", ["code", "opensource"]),
        ("https://x.com/user/status/1", ["social", "twitter"]),
        ("https://news.ycombinator.com/item?id=1", ["news", "tech"]),
        ("https://blog.example.com/post", ["article"]),
    ],
)
def test_heuristic_tags_by_keyword(url: str, tags: list[str]) -> None:
    assert HeuristicAnalyzer().analyze_url(url).tags == tags


@pytest.mark.asyncio
async def test_heuristic_summary_names_host() -> None:
    result = await HeuristicAnalyzer().analyze("https://blog.example.com/post")

    assert result.summary == "Content from blog.example.com"


@pytest.mark.asyncio
async def test_heuristic_never_extracts_urls() -> None:
    assert await HeuristicAnalyzer().extract_urls("https://example.com", "<a href=x>") == []
