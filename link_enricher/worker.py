"""
Temporal Worker for Link Enricher.

Runs the Temporal worker that executes workflow jobs.
"""

import asyncio
import logging
import os

import click
import temporalio.api.workflowservice.v1
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import (
    SandboxedWorkflowRunner,
    SandboxRestrictions,
)

from link_enricher.activities import run_workflow_job
from link_enricher.config import get_config
from link_enricher.health import HealthServer
from link_enricher.logging import configure_logging as configure_structlog
from link_enricher.logging import get_logger
from link_enricher.temporal import connect
from link_enricher.tracing import init_tracing, shutdown_tracing
from link_enricher.workflows import WorkflowJobWorkflow

# Consecutive health check failures tolerated before reporting unhealthy
MAX_CONSECUTIVE_HEALTH_FAILURES = 2


def configure_logging() -> None:
    """Configure logging for the worker."""
    # LOG_LEVEL controls link_enricher loggers; third-party libraries stay at WARNING
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    environment = os.getenv("ENVIRONMENT", "development")

    configure_structlog(
        json_logs=environment != "development",
        log_level=log_level,
    )

    # Filters on loggers don't apply to child loggers, so add to the handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.addFilter(WorkflowLogFilter())

    temporal_log_level = os.getenv("TEMPORAL_LOG_LEVEL", "WARNING").upper()
    logging.getLogger("temporalio").setLevel(getattr(logging, temporal_log_level))
    logging.getLogger("temporalio.workflow").setLevel(getattr(logging, log_level))

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class WorkflowLogFilter(logging.Filter):
    """Filter to remove Temporal context dict from workflow log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Remove trailing context dict from workflow log messages."""
        msg = record.getMessage()
        # Temporal SDK appends " ({'attempt': ..., ...})" or " ({...})" to messages
        if msg.endswith(")"):
            for pattern in (" ({'", ' ({"'):
                if pattern in msg:
                    idx = msg.rfind(pattern)
                    if idx > 0:
                        record.msg = msg[:idx]
                        record.args = ()
                        break
        return True


async def run_worker() -> None:
    """Run the Temporal worker."""
    config = get_config()
    logger = get_logger("link_enricher.worker")

    tracing_interceptor = init_tracing()
    interceptors = [tracing_interceptor] if tracing_interceptor else []

    logger.info(
        "Connecting to Temporal",
        host=config.temporal_host,
        namespace=config.temporal_namespace,
    )
    client = await connect(config, interceptors=interceptors)

    health_check_failures = 0

    async def temporal_health_check() -> bool:
        nonlocal health_check_failures
        try:
            await asyncio.wait_for(
                client.service_client.workflow_service.describe_namespace(
                    temporalio.api.workflowservice.v1.DescribeNamespaceRequest(
                        namespace=client.namespace
                    )
                ),
                timeout=5.0,
            )
            health_check_failures = 0
            return True
        except asyncio.CancelledError:
            # Happens during shutdown
            logger.warning("Temporal health check was cancelled")
            return True
        except Exception as e:
            health_check_failures += 1
            logger.warning(
                "Temporal health check failed",
                error=str(e) or type(e).__name__,
                failures=health_check_failures,
            )
            return health_check_failures < MAX_CONSECUTIVE_HEALTH_FAILURES

    health_port = int(os.getenv("HEALTH_PORT", "8080"))
    health_server = HealthServer(port=health_port, health_check=temporal_health_check)
    await health_server.start()

    # Passthrough Pydantic's lazy-loaded modules
    sandbox_runner = SandboxedWorkflowRunner(
        restrictions=SandboxRestrictions.default.with_passthrough_modules(
            "annotated_types",
            "pydantic_core",
            "pydantic_core._pydantic_core",
            "pydantic_core.core_schema",
        )
    )

    worker = Worker(
        client,
        task_queue=config.task_queue,
        workflow_runner=sandbox_runner,
        interceptors=interceptors,
        workflows=[WorkflowJobWorkflow],
        activities=[run_workflow_job],
    )

    logger.info("Worker started, waiting for tasks...", task_queue=config.task_queue)
    try:
        await worker.run()
    finally:
        await health_server.stop()
        shutdown_tracing()


@click.command()
def main() -> None:
    """Start the Temporal worker."""
    configure_logging()
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
