"""
OpenTelemetry tracing configuration for the Link Enricher worker.

Tracing is optional. When enabled, spans are exported over OTLP and the
Temporal interceptor propagates trace context from the client that started
the job, so log lines carry the caller's trace_id.
"""

import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from temporalio.contrib.opentelemetry import TracingInterceptor

from link_enricher.logging import get_logger

logger = get_logger(__name__)


def is_tracing_enabled() -> bool:
    """Check if tracing is enabled via environment variable."""
    return os.getenv("OTEL_TRACING_ENABLED", "false").lower() == "true"


def init_tracing() -> TracingInterceptor | None:
    """
    Initialize OpenTelemetry tracing if enabled.

    Returns
    -------
    TracingInterceptor | None
        Temporal tracing interceptor if enabled, None otherwise.
    """
    if not is_tracing_enabled():
        logger.info("Tracing disabled (OTEL_TRACING_ENABLED != true)")
        return None

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    service_name = os.getenv("OTEL_SERVICE_NAME", "link-enricher-worker")
    logger.info("Initializing tracing", service=service_name, endpoint=endpoint)

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": os.getenv("APP_VERSION", "0.1.0"),
            "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
        }
    )

    # The global provider can only be set once per process
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=endpoint,
                insecure=os.getenv("OTEL_EXPORTER_OTLP_INSECURE", "true").lower() == "true",
            )
        )
    )
    return TracingInterceptor()


def shutdown_tracing() -> None:
    """Flush pending spans and shut the provider down."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()
        logger.info("Tracing shut down")
