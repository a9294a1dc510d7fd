"""
Page content extraction.

Turns HTML into readable Markdown with Crawl4AI, either from markup that was
already downloaded (WebScraper, feed entries) or by crawling the page in a
headless browser (BrowserPageFetcher).
"""

import asyncio
import re
from typing import Any

from crawl4ai import AsyncWebCrawler, CrawlerRunConfig
from crawl4ai.content_filter_strategy import PruningContentFilter
from crawl4ai.markdown_generation_strategy import DefaultMarkdownGenerator

from link_enricher.logging import get_logger

logger = get_logger(__name__)

# Minimum pruned length before falling back to the unfiltered markdown (characters)
MIN_CONTENT_LENGTH = 500

# PruningContentFilter settings
FILTER_THRESHOLD = 0.3
FILTER_THRESHOLD_TYPE = "dynamic"
FILTER_MIN_WORDS: int | None = None

EXCLUDED_TAGS = [
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "script",
    "style",
    "noscript",
    "iframe",
    "button",
    "input",
    "select",
    "textarea",
]
EXCLUDED_SELECTORS = [
    "[class*='advertisement']",
    "[class*='ad-slot']",
    "[class*='cookie']",
]

_BLANK_LINES = re.compile(r"\n\s*\n+")


def _post_process_content(content: str) -> str:
    """
    Trim trailing spaces and collapse runs of blank lines.

    Examples
    --------
    >>> _post_process_content("  Title  \\n\\n\\n\\nBody  ")
    'Title\\n\\nBody'
    """
    if not content:
        return ""
    lines = [line.rstrip() for line in content.strip().split("\n")]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def _pruning_filter() -> PruningContentFilter:
    return PruningContentFilter(
        threshold=FILTER_THRESHOLD,
        threshold_type=FILTER_THRESHOLD_TYPE,
        min_word_threshold=FILTER_MIN_WORDS,  # type: ignore[arg-type]
    )


def _select_content(raw_markdown: str, filtered_markdown: str) -> str:
    """Prefer the pruned markdown unless pruning removed nearly everything."""
    processed_raw = _post_process_content(raw_markdown)
    processed_filtered = _post_process_content(filtered_markdown)
    use_filtered = (
        len(processed_filtered) >= MIN_CONTENT_LENGTH
        and len(processed_filtered) >= len(processed_raw) * 0.1
    )
    return processed_filtered if use_filtered else processed_raw


def html_to_markdown(html: str) -> str:
    """
    Convert an HTML fragment to Markdown without pruning.

    Used for short markup such as feed entry bodies.

    Parameters
    ----------
    html : str
        HTML content to convert.

    Returns
    -------
    str
        Converted Markdown, or "" when the input is empty or unparseable.
    """
    if not html or not html.strip():
        return ""

    try:
        generator = DefaultMarkdownGenerator(options={"body_width": 0})
        result = generator.generate_markdown(input_html=html, citations=False)
        return _post_process_content(result.raw_markdown or "")
    except Exception as e:
        logger.warning(
            "Failed to convert HTML to Markdown",
            error=str(e),
            error_type=type(e).__name__,
        )
        return ""


def extract_page_content(html: str) -> str:
    """
    Extract the readable content of a full page as Markdown.

    Generates both the raw and the pruned Markdown and keeps the pruned
    version when it is long enough.

    Parameters
    ----------
    html : str
        Page HTML.

    Returns
    -------
    str
        Markdown content ("" when the page has no text).
    """
    if not html or not html.strip():
        return ""

    try:
        raw_result = DefaultMarkdownGenerator(options={"body_width": 0}).generate_markdown(
            input_html=html, citations=False
        )
        filtered_result = DefaultMarkdownGenerator(
            content_filter=_pruning_filter(), options={"body_width": 0}
        ).generate_markdown(input_html=html, citations=False)
    except Exception as e:
        logger.warning(
            "Failed to extract page content",
            error=str(e),
            error_type=type(e).__name__,
        )
        return ""

    return _select_content(raw_result.raw_markdown or "", filtered_result.fit_markdown or "")


class BrowserPageFetcher:
    """
    ContentFetcher that renders pages in a headless browser.

    For sites that need JavaScript to show their content. Each fetch opens
    its own crawler; failures and timeouts yield None.
    """

    def __init__(self, timeout: float = 30.0):
        """
        Initialize BrowserPageFetcher.

        Parameters
        ----------
        timeout : float, optional
            Per-page crawl timeout in seconds (default: 30.0).
        """
        self.timeout = timeout

    def _run_config(self) -> CrawlerRunConfig:
        return CrawlerRunConfig(
            word_count_threshold=10,
            exclude_external_links=False,
            remove_overlay_elements=True,
            process_iframes=False,
            excluded_tags=EXCLUDED_TAGS,
            excluded_selector=",".join(EXCLUDED_SELECTORS),
            markdown_generator=DefaultMarkdownGenerator(
                content_filter=_pruning_filter(), options={"body_width": 0}
            ),
        )

    async def fetch(self, url: str) -> str | None:
        """
        Crawl url and return its content as Markdown.

        Parameters
        ----------
        url : str
            Page URL.

        Returns
        -------
        str | None
            Markdown content, or None if the crawl failed, timed out or
            found no text.
        """
        try:
            async with AsyncWebCrawler() as crawler:
                result: Any = await asyncio.wait_for(
                    crawler.arun(url=url, config=self._run_config()),
                    timeout=self.timeout,
                )
        except Exception as e:
            logger.warning(
                "Crawl failed",
                url=url,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return None

        # CrawlResultContainer is iterable, the first entry is the page
        crawl_result: Any = result[0] if result else None
        if not crawl_result or not crawl_result.success:
            error = getattr(crawl_result, "error_message", None) if crawl_result else None
            logger.info("Page unavailable", url=url, error=error)
            return None

        content = _select_content(
            crawl_result.markdown.raw_markdown or "",
            crawl_result.markdown.fit_markdown or "",
        )
        if not content:
            logger.info("Page has no text content", url=url)
            return None

        logger.debug("Crawled page", url=url, content_length=len(content))
        return content
