"""
Retry scheduler for rate-limited enrichment.

Re-drives a queue of items whose enrichment call reported "rate limited"
(transient) rather than "unavailable" (permanent). Each cycle waits for the
client's rate-limit reset, then retries every queued item once.

Termination is guaranteed: ``run`` stops as soon as a cycle leaves the
queue size unchanged, when the per-item attempt cap drains the queue, when
a reset is further away than ``max_wait_seconds``, or when the next wait
would exceed the overall ``max_total_seconds`` budget.
"""

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from link_enricher.config import (
    DEFAULT_RATE_LIMIT_BUFFER_SECONDS,
    DEFAULT_RATE_LIMIT_COUNTDOWN_INTERVAL,
    DEFAULT_RATE_LIMIT_MAX_ATTEMPTS,
    DEFAULT_RATE_LIMIT_MAX_TOTAL_SECONDS,
    DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS,
    Config,
)
from link_enricher.logging import get_logger
from link_enricher.models import ContentItem, QueuedItem, RetryResult
from link_enricher.pipeline.context import CancellationToken, invoke_callback
from link_enricher.ports import ContentAnalyzer, RateLimitedClient

logger = get_logger(__name__)

CountdownCallback = Callable[[int], Awaitable[None] | None]


@dataclass(frozen=True)
class RetrySettings:
    """Bounds for the retry scheduler."""

    max_wait_seconds: float = DEFAULT_RATE_LIMIT_MAX_WAIT_SECONDS
    buffer_seconds: float = DEFAULT_RATE_LIMIT_BUFFER_SECONDS
    countdown_interval: float = DEFAULT_RATE_LIMIT_COUNTDOWN_INTERVAL
    max_attempts: int = DEFAULT_RATE_LIMIT_MAX_ATTEMPTS
    max_total_seconds: float = DEFAULT_RATE_LIMIT_MAX_TOTAL_SECONDS  # 0 = no limit

    @classmethod
    def from_config(cls, config: Config) -> "RetrySettings":
        return cls(
            max_wait_seconds=config.rate_limit_max_wait_seconds,
            buffer_seconds=config.rate_limit_buffer_seconds,
            countdown_interval=config.rate_limit_countdown_interval,
            max_attempts=config.rate_limit_max_attempts,
            max_total_seconds=config.rate_limit_max_total_seconds,
        )


class _RetryOutcome(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


class RetryHandlerService:
    """Multi-cycle retry scheduler over a queue of rate-limited items."""

    def __init__(
        self,
        client: RateLimitedClient,
        analyzer: ContentAnalyzer,
        settings: RetrySettings | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_countdown: CountdownCallback | None = None,
        cancellation: CancellationToken | None = None,
    ):
        """
        Initialize the scheduler.

        Parameters
        ----------
        client : RateLimitedClient
            Client whose fetch_content is re-driven.
        analyzer : ContentAnalyzer
            Produces tags/summary from fetched content.
        settings : RetrySettings | None, optional
            Wait ceiling, buffer, countdown interval and caps.
        clock : Callable[[], float], optional
            Epoch-seconds clock (default: time.time).
        sleep : Callable[[float], Awaitable[None]], optional
            Async sleep function (default: asyncio.sleep).
        on_countdown : CountdownCallback | None, optional
            Called with the remaining seconds once per countdown interval.
        cancellation : CancellationToken | None, optional
            Checked between sleep slices and between items.
        """
        self.client = client
        self.analyzer = analyzer
        self.settings = settings or RetrySettings()
        self._clock = clock
        self._sleep = sleep
        self._on_countdown = on_countdown
        self._cancellation = cancellation

    def get_wait_seconds(self) -> int:
        """Seconds until the client's rate limit resets (0 if not limited)."""
        reset_time = self.client.get_rate_limit_reset_time()
        if reset_time is None:
            return 0
        return max(0, math.ceil(reset_time - self._clock()))

    async def handle_retry_queue(self, queue: list[QueuedItem]) -> RetryResult:
        """
        Run one retry cycle.

        Parameters
        ----------
        queue : list[QueuedItem]
            Items to retry.

        Returns
        -------
        RetryResult
            Enriched items by original index, their URLs, and the items to
            retry in a further cycle. ``cycles`` is 0 when the queue was
            abandoned without retrying.
        """
        if not queue:
            return RetryResult()

        wait_seconds = self.get_wait_seconds()
        if wait_seconds > self.settings.max_wait_seconds:
            logger.warning(
                "Rate limit wait exceeds ceiling, abandoning retry queue",
                wait_seconds=wait_seconds,
                max_wait_seconds=self.settings.max_wait_seconds,
                queued=len(queue),
            )
            return RetryResult(
                given_up=len(queue),
                abandoned_reason=f"Wait of {wait_seconds}s exceeds "
                f"{int(self.settings.max_wait_seconds)}s ceiling",
            )

        logger.info("Items rate limited", queued=len(queue), reset_in=wait_seconds)
        await self.wait_for_rate_limit_reset()
        return await self._retry_queued_items(queue)

    async def run(self, queue: list[QueuedItem]) -> RetryResult:
        """
        Run retry cycles until the queue is drained or progress stops.

        Parameters
        ----------
        queue : list[QueuedItem]
            Initial retry queue.

        Returns
        -------
        RetryResult
            Accumulated result across all cycles.
        """
        start = self._clock()
        result = RetryResult()
        current = list(queue)

        while current:
            wait = self.get_wait_seconds()
            if self.client.get_rate_limit_reset_time() is not None:
                wait += self.settings.buffer_seconds
            elapsed = self._clock() - start
            budget = self.settings.max_total_seconds
            if budget > 0 and elapsed + wait > budget:
                logger.warning(
                    "Retry budget exhausted",
                    elapsed_seconds=round(elapsed, 1),
                    next_wait_seconds=wait,
                    max_total_seconds=budget,
                    queued=len(current),
                )
                result.given_up += len(current)
                result.abandoned_reason = f"Retry budget of {int(budget)}s exhausted"
                current = []
                break

            cycle = await self.handle_retry_queue(current)
            result.cycles += cycle.cycles
            result.updated_urls |= cycle.updated_urls
            result.enriched.update(cycle.enriched)
            result.given_up += cycle.given_up

            if cycle.abandoned_reason:
                result.abandoned_reason = cycle.abandoned_reason
                current = []
                break

            if len(cycle.remaining_queue) == len(current):
                logger.warning(
                    "Retry cycle made no progress, stopping",
                    cycle=result.cycles,
                    queued=len(current),
                )
                current = cycle.remaining_queue
                break

            current = cycle.remaining_queue
            if current:
                logger.info("Starting next retry cycle", cycle=result.cycles + 1, queued=len(current))

        result.remaining_queue = current
        logger.info(
            "Retry complete",
            cycles=result.cycles,
            enriched=len(result.enriched),
            remaining=len(result.remaining_queue),
            given_up=result.given_up,
        )
        return result

    async def wait_for_rate_limit_reset(self) -> None:
        """
        Sleep until the reset time plus buffer, then clear the rate limit.

        Sleeps in countdown-interval slices and emits one countdown update
        per slice.
        """
        reset_time = self.client.get_rate_limit_reset_time()
        if reset_time is not None:
            remaining = max(0.0, reset_time + self.settings.buffer_seconds - self._clock())
            interval = max(self.settings.countdown_interval, 1)
            while remaining > 0:
                if self._cancellation:
                    self._cancellation.raise_if_cancelled()
                remaining_seconds = math.ceil(remaining)
                logger.info("Waiting for rate limit reset", remaining_seconds=remaining_seconds)
                await invoke_callback(self._on_countdown, remaining_seconds)
                step = min(interval, remaining)
                await self._sleep(step)
                remaining -= step

        self.client.clear_rate_limit()
        logger.info("Rate limit reset, retrying")

    async def _retry_queued_items(self, queue: list[QueuedItem]) -> RetryResult:
        result = RetryResult(cycles=1)
        max_attempts = self.settings.max_attempts

        for i, queued in enumerate(queue):
            if self._cancellation:
                self._cancellation.raise_if_cancelled()

            url = queued.item.url
            logger.info(
                "Retrying item",
                index=i + 1,
                total=len(queue),
                url=url,
                attempt=queued.attempts + 1,
                max_attempts=max_attempts,
            )
            outcome, enriched = await self._retry_item(queued)

            if outcome == _RetryOutcome.SUCCESS and enriched is not None:
                result.enriched[queued.index] = enriched
                result.updated_urls.add(url)
            elif outcome == _RetryOutcome.RATE_LIMITED and queued.attempts + 1 < max_attempts:
                result.remaining_queue.append(queued.next_attempt())
                logger.warning("Still rate limited, re-queued", url=url, attempts=queued.attempts + 1)
            elif outcome == _RetryOutcome.RATE_LIMITED:
                result.given_up += 1
                logger.warning("Max retry attempts reached, giving up", url=url)
            else:
                result.given_up += 1
                logger.warning("Content unavailable, giving up", url=url)

        logger.info(
            "Retry cycle complete",
            enriched=len(result.enriched),
            total=len(queue),
            requeued=len(result.remaining_queue),
        )
        return result

    async def _retry_item(self, queued: QueuedItem) -> tuple[_RetryOutcome, ContentItem | None]:
        url = queued.item.url
        try:
            content = await self.client.fetch_content(url)
        except Exception as e:
            logger.error("Fetch failed during retry", url=url, error=str(e))
            return _RetryOutcome.FAILED, None
        if not content:
            if self.client.is_rate_limited():
                return _RetryOutcome.RATE_LIMITED, None
            return _RetryOutcome.FAILED, None

        try:
            analysis = await self.analyzer.analyze(url, content)
        except Exception as e:
            logger.error("Analysis failed during retry", url=url, error=str(e))
            return _RetryOutcome.FAILED, None

        return _RetryOutcome.SUCCESS, queued.item.with_categorization(
            analysis.tags, analysis.summary
        )
