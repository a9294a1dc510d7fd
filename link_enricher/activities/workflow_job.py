"""
Workflow job activity.

Builds the requested preset against the configured adapters, runs it once
and reports job status through the platform API. Heartbeats on every
processed item so Temporal can detect a stuck job.
"""

import asyncio
import contextlib
from typing import Any

from temporalio import activity

from link_enricher.config import Config, get_config
from link_enricher.errors import StepConfigurationError
from link_enricher.jobs.progress import JobProgressTracker
from link_enricher.logging import get_logger, job_context
from link_enricher.models import TaskStatusUpdate, WorkflowJobInput, WorkflowJobResult
from link_enricher.pipeline import ErrorHandlerResult, ItemProcessedInfo, WorkflowErrorInfo
from link_enricher.ports import ContentAnalyzer, ContentFetcher, CursorRepository
from link_enricher.presets import (
    SOURCE_BOOKMARK,
    SOURCE_DIRECTORY,
    SOURCE_FEED,
    SOURCE_PENDING_CONTENT,
    PresetDependencies,
    PresetOptions,
    build_preset,
    get_preset,
)
from link_enricher.services.analyzer import HeuristicAnalyzer, LLMEnricher
from link_enricher.services.api import (
    APIClient,
    ApiBookmarkRepository,
    ApiCursorRepository,
    ApiPendingContentRepository,
    ApiTaskStatusRepository,
)
from link_enricher.services.content import BrowserPageFetcher
from link_enricher.services.export import CsvExporter
from link_enricher.services.http_client import CachedHttpClient
from link_enricher.services.retry_handler import RetryHandlerService, RetrySettings
from link_enricher.services.twitter import TwitterClient
from link_enricher.services.web_scraper import WebScraper
from link_enricher.sources import (
    BookmarkSourceReader,
    DirectorySourceReader,
    FeedSourceReader,
    FileCursorRepository,
    PendingContentSourceReader,
)

logger = get_logger(__name__)


def _heartbeat_item(info: ItemProcessedInfo[Any]) -> None:
    activity.heartbeat(f"{info.step_name}: {info.index + 1}/{info.total}")


def _heartbeat_countdown(remaining: int) -> None:
    activity.heartbeat(f"Waiting for rate limit reset: {remaining}s")


def _continue_unless_structural(info: WorkflowErrorInfo[Any]) -> ErrorHandlerResult[Any]:
    """Keep going after unexpected step errors; stop on configuration errors."""
    if isinstance(info.error, StepConfigurationError):
        return ErrorHandlerResult(should_continue=False)
    logger.error("Step failed, continuing", step=info.step_name, error=str(info.error))
    return ErrorHandlerResult(should_continue=True)


async def _build_dependencies(
    config: Config,
    api: APIClient,
    stack: contextlib.AsyncExitStack,
    output_path: str | None,
) -> PresetDependencies:
    cursors: CursorRepository = (
        FileCursorRepository(config.cursor_dir) if config.cursor_dir else ApiCursorRepository(api)
    )
    bookmark_repository = ApiBookmarkRepository(api)
    pending_repository = ApiPendingContentRepository(api)

    fetcher: ContentFetcher
    if config.scraper_use_browser:
        fetcher = BrowserPageFetcher(timeout=config.scraper_timeout)
    else:
        fetcher = await stack.enter_async_context(
            WebScraper(
                CachedHttpClient[str](
                    throttle_seconds=config.scraper_throttle_seconds,
                    retries=config.scraper_retries,
                    cache_ttl_seconds=config.scraper_cache_ttl_seconds,
                ),
                timeout=config.scraper_timeout,
            )
        )

    analyzer: ContentAnalyzer
    enricher: LLMEnricher | HeuristicAnalyzer
    if config.openai_api_key:
        enricher = LLMEnricher(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            model=config.llm_model,
            max_content_chars=config.max_content_chars,
            max_extracted_urls=config.max_extracted_urls,
        )
        analyzer = enricher
    else:
        logger.warning("OPENAI_API_KEY not set, using URL heuristics for analysis")
        enricher = HeuristicAnalyzer()
        analyzer = enricher

    twitter_client: TwitterClient | None = None
    retry_handler: RetryHandlerService | None = None
    if config.twitter_bearer_token:
        twitter_client = await stack.enter_async_context(
            TwitterClient(
                config.twitter_bearer_token, throttle_seconds=config.twitter_throttle_seconds
            )
        )
        retry_handler = RetryHandlerService(
            twitter_client,
            analyzer,
            settings=RetrySettings.from_config(config),
            on_countdown=_heartbeat_countdown,
        )

    return PresetDependencies(
        readers={
            SOURCE_PENDING_CONTENT: PendingContentSourceReader(pending_repository),
            SOURCE_BOOKMARK: BookmarkSourceReader(bookmark_repository, cursors),
            SOURCE_FEED: FeedSourceReader(cursors, config.default_lookback_days),
            SOURCE_DIRECTORY: DirectorySourceReader(),
        },
        analyzer=analyzer,
        fetcher=fetcher,
        enricher=enricher,
        twitter_client=twitter_client,
        retry_handler=retry_handler,
        bookmark_repository=bookmark_repository,
        pending_repository=pending_repository,
        exporter=CsvExporter(),
        output_path=output_path,
    )


async def _run_job(input: WorkflowJobInput) -> WorkflowJobResult:
    config = get_config()
    get_preset(input.preset)  # fail fast on unknown presets
    options = PresetOptions.from_mapping(input.options)

    logger.info("Starting workflow job", source_path=input.source_path)

    async with contextlib.AsyncExitStack() as stack:
        api = await stack.enter_async_context(APIClient(config.api_url, config.api_token))
        task_status = ApiTaskStatusRepository(api)
        tracker = JobProgressTracker(input.task_id, task_status, heartbeat=_heartbeat_item)

        deps = await _build_dependencies(config, api, stack, input.output_path)
        builder = build_preset(input.preset, deps, options)
        workflow = tracker.attach(builder).on_error(_continue_unless_structural).build()

        try:
            complete = await workflow.execute(input.user_id, input.source_path, input.output_path)
        except asyncio.CancelledError:
            logger.info("Workflow job cancelled")
            if input.task_id:
                await task_status.update_status(
                    input.task_id,
                    TaskStatusUpdate(
                        status="cancelled", progress=tracker.progress, message="Job cancelled"
                    ),
                )
            raise
        except Exception as e:
            logger.error("Workflow job failed", error=str(e))
            return WorkflowJobResult(
                status="error",
                preset=input.preset,
                items_skipped=tracker.items_skipped,
                message="Workflow failed",
                error=str(e),
            )

    stats = complete.stats
    if stats.cancelled:
        status = "cancelled"
    elif stats.success:
        status = "completed"
    else:
        status = "error"
    return WorkflowJobResult(
        status=status,
        preset=input.preset,
        items_processed=stats.items_processed,
        items_enriched=tracker.items_enriched,
        items_skipped=tracker.items_skipped,
        executed_steps=list(stats.executed_step_names),
        duration_ms=stats.duration_ms,
        message=f"Executed {stats.completed_steps}/{stats.total_steps} steps",
        error=stats.halt_message or "",
    )


@activity.defn
async def run_workflow_job(input: WorkflowJobInput) -> WorkflowJobResult:
    """
    Run one preset workflow for a user.

    Log lines emitted during the run carry the job's task_id, preset and
    user_id.

    Parameters
    ----------
    input : WorkflowJobInput
        Preset name, user, task id, paths and loosely typed options.

    Returns
    -------
    WorkflowJobResult
        Final status with enriched and skipped counts.
    """
    with job_context(input.task_id, input.preset, input.user_id):
        return await _run_job(input)
