import importlib
import logging

from opentelemetry import trace

from app.config import settings

logger = logging.getLogger(__name__)

_TRACER_NAME = "estateplan_crm"

# (module, class, label); each is optional and skipped when not installed.
_INSTRUMENTORS = (
    ("opentelemetry.instrumentation.sqlalchemy", "SQLAlchemyInstrumentor", "sqlalchemy"),
    ("opentelemetry.instrumentation.httpx", "HTTPXClientInstrumentor", "httpx"),
    ("opentelemetry.instrumentation.logging", "LoggingInstrumentor", "logging"),
)


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return an OTel tracer.

    Without a configured TracerProvider the API hands out no-op spans, so
    template instantiation and the due-date cascade can always open spans.
    """
    return trace.get_tracer(name or _TRACER_NAME)


def _instrument(module_name: str, class_name: str, label: str) -> None:
    try:
        instrumentor = getattr(importlib.import_module(module_name), class_name)()
        if label == "sqlalchemy":
            from app.db import get_engine

            instrumentor.instrument(engine=get_engine())
        elif label == "logging":
            instrumentor.instrument(set_logging_format=True)
        else:
            instrumentor.instrument()
        logger.info("otel_instrumented target=%s", label)
    except Exception:
        logger.warning("otel_instrumentation_unavailable target=%s", label, exc_info=True)


def setup_otel(app) -> None:
    """Send traces to an OTLP collector when ``OTEL_ENABLED`` is set."""
    if not settings.otel_enabled:
        return

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except Exception:
        logger.exception("otel_sdk_unavailable")
        return

    provider = TracerProvider(resource=Resource.create({"service.name": settings.otel_service_name}))
    endpoint = settings.otel_exporter_endpoint
    exporter = OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces") if endpoint else OTLPSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)
        logger.info("otel_instrumented target=fastapi")
    except Exception:
        logger.warning("otel_instrumentation_unavailable target=fastapi", exc_info=True)

    for module_name, class_name, label in _INSTRUMENTORS:
        _instrument(module_name, class_name, label)

    logger.info("otel_enabled service=%s", settings.otel_service_name)
