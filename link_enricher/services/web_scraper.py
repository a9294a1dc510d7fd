"""
Web page scraper.

Implements ContentFetcher by downloading HTML through CachedHttpClient and
extracting its readable content as Markdown.
"""

from typing import Any

import httpx

from link_enricher.logging import get_logger
from link_enricher.services.http_client import CachedHttpClient
from link_enricher.services.content import extract_page_content

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; LinkEnricher/1.0)"
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class WebScraper:
    """
    Fetch web pages as Markdown text.

    Must be used as an async context manager so the underlying HTTP
    connection pool is closed.
    """

    def __init__(
        self,
        http_client: CachedHttpClient[str] | None = None,
        timeout: float = 30.0,
        follow_redirects: bool = True,
    ):
        """
        Initialize the scraper.

        Parameters
        ----------
        http_client : CachedHttpClient[str] | None, optional
            Shared caching/throttling wrapper (default: 1s throttle, 2 retries,
            1 hour cache).
        timeout : float, optional
            Request timeout in seconds (default: 30.0).
        follow_redirects : bool, optional
            Whether to follow HTTP redirects (default: True).
        """
        self.http = http_client or CachedHttpClient[str](
            throttle_seconds=1.0, retries=2, cache_ttl_seconds=3600
        )
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "WebScraper":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=self.follow_redirects,
            headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("WebScraper must be used as async context manager")
        return self._client

    async def fetch_html(self, url: str) -> str | None:
        """Download raw HTML, or None when unavailable."""
        client = self._get_client()

        async def _download() -> str:
            response = await client.get(url)
            response.raise_for_status()
            return response.text

        return await self.http.fetch(f"html:{url}", _download)

    async def fetch(self, url: str) -> str | None:
        """
        Fetch a page and return its readable content.

        Parameters
        ----------
        url : str
            Page URL.

        Returns
        -------
        str | None
            Markdown content, or None if the page could not be fetched or
            has no text.
        """
        markup = await self.fetch_html(url)
        if markup is None:
            logger.info("Page unavailable", url=url)
            return None

        text = extract_page_content(markup)
        if not text:
            logger.info("Page has no text content", url=url)
            return None

        logger.debug("Fetched page", url=url, content_length=len(text))
        return text
