#!/usr/bin/env python
"""CLI tool to trigger Link Enricher workflow jobs.

Usage:
    # Enrich pending content for a user (scrape + analyze + save bookmarks)
    uv run scripts/trigger_workflow.py run bookmark_enrichment --user-id USER_ID

    # Same, also bookmarking up to MAX_EXTRACTED_URLS links found in each page
    uv run scripts/trigger_workflow.py run bookmark_enrichment --user-id USER_ID --with-nested

    # Read a feed, analyze entries and stage them for enrichment
    uv run scripts/trigger_workflow.py run feed --user-id USER_ID --source-path https://example.com/feed.xml \
        --save-to database

    # Scan a directory for URLs and export them to CSV
    uv run scripts/trigger_workflow.py run csv_only --user-id USER_ID --source-path ./links \
        --output-path ./out/links.csv

    # Show progress of a running job
    uv run scripts/trigger_workflow.py progress WORKFLOW_ID

    # Cancel a running job
    uv run scripts/trigger_workflow.py cancel WORKFLOW_ID
"""

import argparse
import asyncio
import logging

from temporalio.client import Client

from link_enricher.config import get_config
from link_enricher.models import WorkflowJobInput, WorkflowJobResult
from link_enricher.presets import PRESETS
from link_enricher.temporal import connect, job_workflow_id, start_workflow_job
from link_enricher.workflows import WorkflowJobWorkflow

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger("trigger_workflow")


async def run_job(
    client: Client,
    task_queue: str,
    input: WorkflowJobInput,
    wait: bool = True,
) -> None:
    """Start a workflow job and optionally wait for its result."""
    workflow_id = job_workflow_id(input.preset)

    logger.info(f"Starting WorkflowJobWorkflow: {workflow_id}")
    logger.info(f"  preset: {input.preset}")
    logger.info(f"  user_id: {input.user_id}")
    if input.options:
        logger.info(f"  options: {input.options}")

    handle = await start_workflow_job(client, task_queue, input, workflow_id=workflow_id)

    if not wait:
        logger.info("Workflow started")
        return

    logger.info("Workflow started, waiting for result...")
    result: WorkflowJobResult = await handle.result()

    logger.info("\n" + "=" * 60)
    logger.info("WORKFLOW JOB RESULT:")
    logger.info("=" * 60)
    logger.info(f"  Status: {result.status}")
    logger.info(f"  Steps: {' -> '.join(result.executed_steps)}")
    logger.info(f"  Items processed: {result.items_processed}")
    logger.info(f"  Items enriched: {result.items_enriched}")
    logger.info(f"  Items skipped: {result.items_skipped}")
    logger.info(f"  Duration: {result.duration_ms / 1000:.1f}s")
    if result.error:
        logger.error(f"  Error: {result.error}")


async def show_progress(client: Client, workflow_id: str) -> None:
    """Query and print a job's progress."""
    handle = client.get_workflow_handle(workflow_id)
    progress = await handle.query(WorkflowJobWorkflow.get_progress)
    logger.info(f"  Status: {progress.status}")
    logger.info(f"  Step: {progress.current_step}")
    logger.info(f"  Message: {progress.message}")
    logger.info(f"  Enriched: {progress.items_enriched}, skipped: {progress.items_skipped}")


async def cancel_job(client: Client, workflow_id: str) -> None:
    """Request cancellation of a running job."""
    handle = client.get_workflow_handle(workflow_id)
    await handle.cancel()
    logger.info(f"Cancellation requested for {workflow_id}")


def _build_options(args: argparse.Namespace) -> dict[str, bool | str | int]:
    options: dict[str, bool | str | int] = {}
    if args.limit:
        options["limit"] = args.limit
    if args.limit_days:
        options["limit_days"] = args.limit_days
    if args.skip_analysis:
        options["skip_analysis"] = True
    if args.skip_twitter:
        options["skip_twitter"] = True
    if args.with_nested:
        options["with_nested"] = True
    if args.save_to:
        options["save_to"] = args.save_to
    for pair in args.option or []:
        key, _, value = pair.partition("=")
        options[key] = value
    return options


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Trigger Link Enricher workflow jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a preset workflow job")
    run_parser.add_argument("preset", choices=sorted(PRESETS), help="Preset name")
    run_parser.add_argument("--user-id", required=True, help="User the job runs for")
    run_parser.add_argument("--task-id", default="", help="Task record to update")
    run_parser.add_argument("--source-path", help="Directory, archive or feed URL")
    run_parser.add_argument("--output-path", help="Export destination")
    run_parser.add_argument("--limit", type=int, help="Max items to read")
    run_parser.add_argument("--limit-days", type=int, help="Only read items from the last N days")
    run_parser.add_argument("--skip-analysis", action="store_true", help="Skip analysis")
    run_parser.add_argument("--skip-twitter", action="store_true", help="Skip Twitter enrichment")
    run_parser.add_argument(
        "--with-nested", action="store_true", help="Also bookmark links found in pages"
    )
    run_parser.add_argument("--save-to", choices=["database"], help="Save destination")
    run_parser.add_argument(
        "--option", action="append", metavar="KEY=VALUE", help="Extra source reader option"
    )
    run_parser.add_argument(
        "--no-wait", action="store_true", help="Return after starting the workflow"
    )

    progress_parser = subparsers.add_parser("progress", help="Show job progress")
    progress_parser.add_argument("workflow_id", help="Workflow ID")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel a running job")
    cancel_parser.add_argument("workflow_id", help="Workflow ID")

    args = parser.parse_args()

    config = get_config()
    client = await connect(config)

    if args.command == "run":
        await run_job(
            client,
            config.task_queue,
            WorkflowJobInput(
                preset=args.preset,
                user_id=args.user_id,
                task_id=args.task_id,
                source_path=args.source_path,
                output_path=args.output_path,
                options=_build_options(args),
            ),
            wait=not args.no_wait,
        )
    elif args.command == "progress":
        await show_progress(client, args.workflow_id)
    elif args.command == "cancel":
        await cancel_job(client, args.workflow_id)


def cli() -> None:
    """CLI entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
