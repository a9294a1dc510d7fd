"""
Content analyzers.

LLMEnricher implements ContentAnalyzer, UrlExtractor and BookmarkEnricher
with LangChain structured-output chains. HeuristicAnalyzer derives tags
from the URL alone and is used when no LLM is configured.
"""

from urllib.parse import urlparse

from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from link_enricher.chains.bookmark_enrichment import (
    create_content_analysis_chain,
    create_url_extraction_chain,
)
from link_enricher.config import DEFAULT_MAX_EXTRACTED_URLS
from link_enricher.logging import get_logger
from link_enricher.models.analysis import ContentAnalysis, ExtractedUrls
from link_enricher.utils.text import truncate
from link_enricher.utils.url import is_http_url, normalize_url_for_dedup

logger = get_logger(__name__)

# Page text sent to the URL extraction chain is capped separately
MAX_EXTRACTION_CONTENT_CHARS = 15000


def filter_extracted_urls(source_url: str, urls: list[str], max_urls: int) -> list[str]:
    """
    Clean up URLs proposed for nested enrichment.

    Keeps http(s) URLs only, drops the source URL and duplicates (compared
    after normalization), preserves order and truncates to max_urls.

    Parameters
    ----------
    source_url : str
        URL of the page the candidates were found in.
    urls : list[str]
        Candidate URLs, most relevant first.
    max_urls : int
        Hard cap on the number of URLs returned.

    Returns
    -------
    list[str]
        At most max_urls distinct candidate URLs.
    """
    seen = {normalize_url_for_dedup(source_url)} if is_http_url(source_url) else set()
    result: list[str] = []
    for url in urls:
        url = url.strip()
        if not is_http_url(url):
            continue
        key = normalize_url_for_dedup(url)
        if key in seen:
            continue
        seen.add(key)
        result.append(url)
        if len(result) >= max_urls:
            break
    return result


class LLMEnricher:
    """LLM-backed tag/summary analysis and URL extraction."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None,
        model: str,
        max_content_chars: int = 10000,
        max_extracted_urls: int = DEFAULT_MAX_EXTRACTED_URLS,
        analysis_chain: Runnable | None = None,
        extraction_chain: Runnable | None = None,
    ):
        """
        Initialize the enricher.

        Parameters
        ----------
        api_key : str
            API key for LLM service.
        base_url : str | None
            Base URL for LLM API (None for OpenAI direct).
        model : str
            Model name to use.
        max_content_chars : int, optional
            Max characters of content sent for analysis, 0 for no limit
            (default: 10000).
        max_extracted_urls : int, optional
            Max URLs returned by extract_urls (default: 3).
        analysis_chain : Runnable | None, optional
            Prebuilt analysis chain (default: built from the model).
        extraction_chain : Runnable | None, optional
            Prebuilt URL extraction chain (default: built from the model).
        """
        self.max_content_chars = max_content_chars
        self.max_extracted_urls = max_extracted_urls

        if analysis_chain is None or extraction_chain is None:
            llm = ChatOpenAI(
                model=model,
                base_url=base_url or None,
                api_key=SecretStr(api_key),
                temperature=0,
            )
            analysis_chain = analysis_chain or create_content_analysis_chain(llm)
            extraction_chain = extraction_chain or create_url_extraction_chain(llm)

        self._analysis_chain = analysis_chain
        self._extraction_chain = extraction_chain

    async def analyze_content(self, url: str, content: str) -> ContentAnalysis:
        """
        Generate tags and a summary for already-fetched content.

        Returns an empty analysis when the LLM call fails.
        """
        try:
            result: ContentAnalysis = await self._analysis_chain.ainvoke(
                {"url": url, "content": truncate(content, self.max_content_chars)}
            )
        except Exception as e:
            logger.error("Content analysis failed", url=url, error=str(e))
            return ContentAnalysis()

        tags = [tag.strip().lower() for tag in result.tags if tag.strip()]
        return ContentAnalysis(tags=tags, summary=result.summary.strip())

    async def analyze(self, url: str, context: str | None = None) -> ContentAnalysis:
        """ContentAnalyzer entry point; context is the item's raw content."""
        return await self.analyze_content(url, context or "")

    async def extract_urls(self, url: str, page_content: str) -> list[str]:
        """
        Find bookmark-worthy URLs in a page.

        Returns an empty list when the LLM call fails.
        """
        try:
            result: ExtractedUrls = await self._extraction_chain.ainvoke(
                {
                    "url": url,
                    "content": truncate(page_content, MAX_EXTRACTION_CONTENT_CHARS),
                    "max_urls": self.max_extracted_urls,
                }
            )
        except Exception as e:
            logger.error("URL extraction failed", url=url, error=str(e))
            return []

        urls = filter_extracted_urls(url, result.urls, self.max_extracted_urls)
        logger.info("Extracted URLs", url=url, count=len(urls), urls=urls)
        return urls


class HeuristicAnalyzer:
    """Derive tags and a summary from the URL alone."""

    async def analyze(self, url: str, context: str | None = None) -> ContentAnalysis:
        return self.analyze_url(url)

    async def analyze_content(self, url: str, content: str) -> ContentAnalysis:
        return self.analyze_url(url)

    async def extract_urls(self, url: str, page_content: str) -> list[str]:
        return []

    def analyze_url(self, url: str) -> ContentAnalysis:
        """
        Classify a URL by keywords it contains.

        Examples
        --------
        >>> HeuristicAnalyzer().analyze_url("https://github.com/a/b").tags
        ['code', 'opensource']
        """
        lowered = url.lower()
        if "github" in lowered:
            tags = ["code", "opensource"]
        elif "twitter" in lowered or "x.com" in lowered:
            tags = ["social", "twitter"]
        elif "news" in lowered or "hn" in lowered or "ycombinator" in lowered:
            tags = ["news", "tech"]
        else:
            tags = ["article"]

        hostname = urlparse(url).hostname or ""
        summary = f"Content from {hostname}" if hostname else ""
        return ContentAnalysis(tags=tags, summary=summary)
