"""
Cached HTTP client with throttling, retries and rate-limit tracking.

Wraps an arbitrary async fetch function. Results are cached per key, calls
are spaced by a minimum interval, transient failures (5xx, transport
errors) are retried with exponential backoff, and HTTP 429 responses put
the client into a rate-limited state until the reported reset time.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import httpx

from link_enricher.errors import RateLimitedError
from link_enricher.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Used when a 429 response carries no reset information
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60.0
MAX_RETRY_DELAY_SECONDS = 5.0


@dataclass
class _CacheEntry(Generic[T]):
    data: T
    timestamp: float


def exponential_backoff(attempt: int) -> float:
    """Return the retry delay in seconds: min(2^attempt, 5)."""
    return min(float(2**attempt), MAX_RETRY_DELAY_SECONDS)


def is_retryable_error(error: Exception) -> bool:
    """Retry transport errors and 5xx responses, never other 4xx."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


def parse_rate_limit_reset(headers: httpx.Headers, now: float) -> float:
    """
    Return the epoch time at which a 429 rate limit resets.

    Honors ``x-rate-limit-reset`` (epoch seconds, Twitter style) and
    ``retry-after`` (delta seconds), falling back to a fixed window.
    """
    reset = headers.get("x-rate-limit-reset")
    if reset and reset.isdigit():
        return float(reset)
    retry_after = headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return now + float(retry_after)
    return now + DEFAULT_RATE_LIMIT_WINDOW_SECONDS


class CachedHttpClient(Generic[T]):
    """
    Generic HTTP fetch wrapper with caching, throttling and retry logic.

    ``fetch`` never raises: failures, including rate limiting, yield None.
    Use ``is_rate_limited`` to tell a rate-limited None from a failed one.
    """

    def __init__(
        self,
        throttle_seconds: float = 1.0,
        retries: int = 2,
        cache_ttl_seconds: float = 0,
        retry_delay: Callable[[int], float] = exponential_backoff,
        should_retry: Callable[[Exception], bool] = is_retryable_error,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Parameters
        ----------
        throttle_seconds : float, optional
            Minimum time between requests (default: 1.0).
        retries : int, optional
            Maximum retry attempts after the first call (default: 2).
        cache_ttl_seconds : float, optional
            Cache entry lifetime; 0 means entries never expire (default: 0).
        retry_delay : Callable[[int], float], optional
            Delay before retry attempt n (default: exponential backoff).
        should_retry : Callable[[Exception], bool], optional
            Decides whether an error is transient (default: 5xx/transport).
        clock : Callable[[], float], optional
            Epoch-seconds clock (default: time.time).
        sleep : Callable[[float], Awaitable[None]], optional
            Async sleep function (default: asyncio.sleep).
        """
        self.throttle_seconds = throttle_seconds
        self.retries = retries
        self.cache_ttl_seconds = cache_ttl_seconds
        self._retry_delay = retry_delay
        self._should_retry = should_retry
        self._clock = clock
        self._sleep = sleep
        self._cache: dict[str, _CacheEntry[T]] = {}
        self._last_request_time = 0.0
        self._rate_limit_reset_time = 0.0

    async def fetch(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> T | None:
        """
        Fetch data for key, using the cache when possible.

        Parameters
        ----------
        key : str
            Unique cache key for this request.
        fetcher : Callable[[], Awaitable[T]]
            Performs the actual request. May raise httpx errors or
            RateLimitedError.

        Returns
        -------
        T | None
            The fetched data, or None if rate limited or all attempts failed.
        """
        cached = self._get_from_cache(key)
        if cached is not None:
            logger.debug("Using cached data", key=key)
            return cached

        if self.is_rate_limited():
            wait_seconds = int(self._rate_limit_reset_time - self._clock()) + 1
            logger.warning("Rate limited, skipping request", key=key, resets_in=wait_seconds)
            return None

        data = await self._fetch_with_retry(key, fetcher)
        if data is not None:
            self._cache[key] = _CacheEntry(data=data, timestamp=self._clock())
        return data

    async def _fetch_with_retry(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> T | None:
        await self._apply_throttle()

        for attempt in range(self.retries + 1):
            if attempt > 0:
                delay = self._retry_delay(attempt)
                logger.info("Retrying request", key=key, attempt=attempt, delay=delay)
                await self._sleep(delay)

            self._last_request_time = self._clock()
            try:
                return await fetcher()
            except RateLimitedError as e:
                self._mark_rate_limited(e.reset_at)
                return None
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429:
                    self._mark_rate_limited(
                        parse_rate_limit_reset(e.response.headers, self._clock())
                    )
                    return None
                if attempt < self.retries and self._should_retry(e):
                    logger.warning(
                        "Request failed", key=key, attempt=attempt + 1, error=str(e)
                    )
                    continue
                logger.error("Request failed", key=key, attempts=attempt + 1, error=str(e))
                return None
            except httpx.HTTPError as e:
                if attempt < self.retries and self._should_retry(e):
                    logger.warning(
                        "Request failed", key=key, attempt=attempt + 1, error=str(e)
                    )
                    continue
                logger.error("Request failed", key=key, attempts=attempt + 1, error=str(e))
                return None
            except Exception as e:
                # Malformed responses (bad JSON, missing fields) are not transient
                logger.error("Unexpected fetch error", key=key, error=str(e))
                return None

        return None

    async def _apply_throttle(self) -> None:
        if self._last_request_time <= 0:
            return
        elapsed = self._clock() - self._last_request_time
        if elapsed < self.throttle_seconds:
            wait = self.throttle_seconds - elapsed
            logger.debug("Throttling request", wait_seconds=round(wait, 3))
            await self._sleep(wait)

    def _mark_rate_limited(self, reset_at: float | None) -> None:
        now = self._clock()
        self._rate_limit_reset_time = (
            reset_at if reset_at is not None else now + DEFAULT_RATE_LIMIT_WINDOW_SECONDS
        )
        logger.warning(
            "Rate limited",
            reset_at=self._rate_limit_reset_time,
            resets_in=int(self._rate_limit_reset_time - now),
        )

    def _get_from_cache(self, key: str) -> T | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self.cache_ttl_seconds > 0 and self._clock() - entry.timestamp > self.cache_ttl_seconds:
            del self._cache[key]
            return None
        return entry.data

    def is_rate_limited(self) -> bool:
        """Return True while the last reported rate limit has not reset."""
        return self._rate_limit_reset_time > self._clock()

    def get_rate_limit_reset_time(self) -> float | None:
        """Return the reset time as epoch seconds, or None if never rate limited."""
        return self._rate_limit_reset_time or None

    def clear_rate_limit(self) -> None:
        self._rate_limit_reset_time = 0.0

    def clear_cache(self) -> None:
        self._cache.clear()
