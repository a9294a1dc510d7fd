"""
Twitter API v2 client for tweet content.

Implements RateLimitedClient: ``fetch_content`` returns None both when a
tweet is unavailable and when the API is rate limited; ``is_rate_limited``
tells them apart.

Recommended throttle_seconds by X API tier:
- Free: 60.0
- Basic: 4.0
- Pro: 1.0 (default)
"""

import re
from typing import Any

import httpx

from link_enricher.logging import get_logger
from link_enricher.services.http_client import CachedHttpClient
from link_enricher.utils.url import is_twitter_url

logger = get_logger(__name__)

TWITTER_API_BASE = "https://api.twitter.com/2"

_TWEET_ID_PATTERN = re.compile(r"(?:twitter\.com|x\.com)/(?:[^/\s]+/)*status(?:es)?/(\d+)")


def extract_tweet_id(url: str) -> str | None:
    """
    Extract the tweet ID from a Twitter/X status URL.

    Examples
    --------
    >>> extract_tweet_id("https://x.com/user/status/1234567890")
    '1234567890'
    >>> extract_tweet_id("https://example.com/status/1") is None
    True
    """
    match = _TWEET_ID_PATTERN.search(url)
    return match.group(1) if match else None


class TwitterClient:
    """
    Fetch tweet text with caching, throttling and rate-limit tracking.

    Must be used as an async context manager.
    """

    def __init__(
        self,
        bearer_token: str,
        throttle_seconds: float = 1.0,
        http_client: CachedHttpClient[str] | None = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the client.

        Parameters
        ----------
        bearer_token : str
            Twitter API v2 bearer token.
        throttle_seconds : float, optional
            Minimum time between API requests (default: 1.0).
        http_client : CachedHttpClient[str] | None, optional
            Caching/throttling wrapper; tweets are cached without expiry by
            default.
        timeout : float, optional
            Request timeout in seconds (default: 30.0).
        """
        self.bearer_token = bearer_token
        self.timeout = timeout
        self.http = http_client or CachedHttpClient[str](
            throttle_seconds=throttle_seconds, retries=2, cache_ttl_seconds=0
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TwitterClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.bearer_token}"},
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("TwitterClient must be used as async context manager")
        return self._client

    @staticmethod
    def is_tweet_url(url: str) -> bool:
        return is_twitter_url(url)

    def is_rate_limited(self) -> bool:
        return self.http.is_rate_limited()

    def get_rate_limit_reset_time(self) -> float | None:
        return self.http.get_rate_limit_reset_time()

    def clear_rate_limit(self) -> None:
        self.http.clear_rate_limit()

    async def fetch_content(self, url: str) -> str | None:
        """
        Fetch the text of the tweet at url.

        Parameters
        ----------
        url : str
            twitter.com / x.com status URL or t.co short link.

        Returns
        -------
        str | None
            Tweet text, or None if unavailable or rate limited.

        Raises
        ------
        RuntimeError
            If called outside the async context.
        """
        self._get_client()
        resolved = url
        if "t.co/" in url.lower():
            resolved = await self.resolve_short_url(url)
            if resolved is None:
                logger.warning("Could not resolve t.co URL", url=url)
                return None

        tweet_id = extract_tweet_id(resolved)
        if tweet_id is None:
            logger.warning("Could not extract tweet ID", url=resolved)
            return None

        return await self.http.fetch(tweet_id, lambda: self._fetch_tweet(tweet_id))

    async def _fetch_tweet(self, tweet_id: str) -> str:
        client = self._get_client()
        response = await client.get(
            f"{TWITTER_API_BASE}/tweets/{tweet_id}",
            params={"tweet.fields": "text,author_id,created_at"},
        )
        response.raise_for_status()
        data = response.json()
        text = (data.get("data") or {}).get("text")
        if not text:
            # Deleted or protected tweets come back as 200 with an errors list
            raise httpx.HTTPStatusError(
                f"No tweet text for {tweet_id}", request=response.request, response=response
            )
        return text

    async def resolve_short_url(self, short_url: str) -> str | None:
        """Follow a t.co redirect and return the final Twitter/X URL, or None."""
        client = self._get_client()
        try:
            response = await client.head(short_url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning("Error resolving URL", url=short_url, error=str(e))
            return None

        final_url = str(response.url)
        if "twitter.com/" in final_url or "x.com/" in final_url:
            return final_url
        return None
