"""
Tracer initialization and configuration for OpenTelemetry.

Provides setup functions for distributed tracing with OTLP exporters.
Until initialize_tracing() is called, spans go to the global (no-op)
tracer provider, so library use has no export side effects.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

TRACER_NAME = "tablediff"

_tracer: trace.Tracer | None = None
_is_initialized = False


def initialize_tracing(
    service_name: str = "tablediff",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
    sampling_rate: float = 1.0
) -> trace.Tracer:
    """
    Initialize distributed tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (e.g., "localhost:4317");
            falls back to the OTLP_ENDPOINT environment variable
        console_export: If True, also export traces to console (debug)
        sampling_rate: Sampling rate 0.0-1.0 (1.0 = trace everything)

    Returns:
        Configured tracer instance
    """
    global _tracer, _is_initialized

    if _is_initialized:
        logger.warning("Tracing already initialized, returning existing tracer")
        return _tracer

    resource = Resource(attributes={
        SERVICE_NAME: service_name
    })
    provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(sampling_rate),
    )

    exporters = []

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTLP_ENDPOINT")

    if otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        exporters.append("OTLP")
        logger.info(f"OTLP exporter configured: {otlp_endpoint}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    if not exporters:
        logger.warning("No trace exporters configured, tracing will be a no-op")

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(TRACER_NAME)
    _is_initialized = True

    logger.info(
        f"Tracing initialized: {service_name} "
        f"(exporters: {', '.join(exporters) or 'none'}, sampling: {sampling_rate})"
    )

    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Get the tracer instance.

    Returns the configured tracer, or a tracer from the global provider
    (a no-op unless an application configured one) when tracing was never
    initialized.
    """
    if _tracer is not None:
        return _tracer
    return trace.get_tracer(TRACER_NAME)


def shutdown_tracing() -> None:
    """
    Shutdown tracing and flush pending spans.

    Should be called before application exit.
    """
    global _is_initialized, _tracer

    if not _is_initialized:
        return

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()
    _is_initialized = False
    _tracer = None
    logger.info("Tracing shutdown complete")
