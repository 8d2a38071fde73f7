"""
Logging, tracing and metrics bootstrap shared by every service app.

Several apps are mounted into one process, so process-wide state (the
structlog configuration, the tracer provider) is set up once and reused;
per-app pieces (request context, FastAPI instrumentation, /metrics) are
attached to each app.
"""
import logging
import os

import structlog
from fastapi import FastAPI, Request
from prometheus_fastapi_instrumentator import Instrumentator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

_tracer_provider: TracerProvider | None = None


def _enabled(name: str) -> bool:
    return os.getenv(name, "true").lower() in ("1", "true", "yes")


def add_otel_ids(logger, log_method, event_dict):
    """Structlog processor: stamp the active span's ids onto the event."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def configure_logging():
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(app: FastAPI, service_name: str):
    """Every log line emitted while serving a request names the service and route."""

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            service=service_name,
            method=request.method,
            path=request.url.path,
        )
        return await call_next(request)


def configure_tracing(app: FastAPI, service_name: str):
    global _tracer_provider

    if _tracer_provider is None:
        _tracer_provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
        trace.set_tracer_provider(_tracer_provider)
        # OTLP gRPC to the collector (Jaeger locally)
        exporter = OTLPSpanExporter(
            endpoint=os.getenv("OTLP_ENDPOINT", "http://localhost:4317"), insecure=True
        )
        _tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    FastAPIInstrumentor.instrument_app(app, tracer_provider=_tracer_provider)


def configure_metrics(app: FastAPI):
    # Request latency and status codes, exposed at /metrics
    Instrumentator().instrument(app).expose(app)


def setup_observability(app: FastAPI, service_name: str):
    """
    Call once per service app, before it starts serving.

    TRACING_ENABLED / METRICS_ENABLED switch the exporters off for local runs
    and tests; logging is always configured.
    """
    configure_logging()
    bind_request_context(app, service_name)
    if _enabled("TRACING_ENABLED"):
        configure_tracing(app, service_name)
    if _enabled("METRICS_ENABLED"):
        configure_metrics(app)
