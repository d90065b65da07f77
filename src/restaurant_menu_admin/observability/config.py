"""OpenTelemetry and logging configuration.

Exporters are skipped when ENVIRONMENT=test; spans and instruments are still
created against in-process providers so instrumented code runs unchanged.
"""

import logging
import os
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "menu-admin"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4318"
METRIC_EXPORT_INTERVAL_MILLIS = 60000

# Not worth a span per load balancer health check
UNTRACED_URLS = "health"


def service_name() -> str:
    return os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)


def environment() -> str:
    return os.getenv("ENVIRONMENT", "development")


def get_service_resource() -> Resource:
    """Create OpenTelemetry resource with service identification."""
    return Resource.create(
        {
            "service.name": service_name(),
            "deployment.environment": environment(),
        }
    )


def backend_resource(path: str) -> str | None:
    """Name the backend table or auth endpoint a request path targets.

    Examples:
        "/rest/v1/menu_items" -> "menu_items"
        "/auth/v1/token" -> "auth/token"
    """
    for prefix, label in (("/rest/v1/", ""), ("/auth/v1/", "auth/")):
        if path.startswith(prefix):
            return label + path.removeprefix(prefix)
    return None


def _tag_backend_request(span: Any, request: Any) -> None:
    """httpx request hook: label spans for backend calls with their resource."""
    if span is None or not span.is_recording():
        return
    resource = backend_resource(request.url.path)
    if resource is not None:
        span.set_attribute("backend.resource", resource)


async def _async_tag_backend_request(span: Any, request: Any) -> None:
    _tag_backend_request(span, request)


def setup_exporters(resource: Resource) -> None:
    """Install tracer and meter providers that ship to the OTLP endpoint."""
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT).rstrip("/")

    tracer_provider = TracerProvider(resource=resource)
    span_exporter = OTLPSpanExporter(endpoint=f"{otlp_endpoint}/v1/traces")
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{otlp_endpoint}/v1/metrics"),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MILLIS,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(f"OpenTelemetry exporting traces and metrics to {otlp_endpoint}")


def setup_observability(app: Any = None, enable_exporters: bool = True) -> None:
    """Initialize tracing, metrics and auto-instrumentation.

    Args:
        app: Optional FastAPI application to instrument
        enable_exporters: Whether to ship telemetry over OTLP; forced off when
            ENVIRONMENT=test
    """
    if environment() == "test":
        enable_exporters = False

    resource = get_service_resource()
    if enable_exporters:
        setup_exporters(resource)
    else:
        trace.set_tracer_provider(TracerProvider(resource=resource))
        metrics.set_meter_provider(MeterProvider(resource=resource))

    # Every data and auth call to the hosted backend goes through httpx
    httpx_instrumentor = HTTPXClientInstrumentor()
    if not httpx_instrumentor.is_instrumented_by_opentelemetry:
        httpx_instrumentor.instrument(
            request_hook=_tag_backend_request,
            async_request_hook=_async_tag_backend_request,
        )

    if app is not None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=UNTRACED_URLS)
        logger.info("FastAPI application instrumented")

    logger.info(f"OpenTelemetry observability configured for {service_name()} ({environment()})")


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger.

    Each record carries the service name and deployment environment so logs
    from the API and the Lambda deployment can be told apart.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            LOG_LEVEL takes precedence
    """
    level_name = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        timestamp=True,
        static_fields={"service": service_name(), "environment": environment()},
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Request lines from httpx would duplicate the backend spans at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    logger.info(f"Structured JSON logging configured at {level_name} level")
