"""Optional OpenTelemetry tracing for the HTTP transport."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import unquote

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider

_tracer_provider: Optional["TracerProvider"] = None
_otel_initialized = False

HEALTH_EXCLUDED_URLS = "health"


def _is_truthy_env(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def is_otel_enabled() -> bool:
    return _is_truthy_env(os.getenv("ENABLE_OTEL"))


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``OTEL_EXPORTER_OTLP_HEADERS`` (``k=v,k2=v2``, values URL-encoded)."""
    headers: dict[str, str] = {}
    if not raw:
        return headers

    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "=" not in entry:
            logger.warning("otel_header_malformed entry=%r", entry)
            continue
        key, value = entry.split("=", 1)
        key = key.strip()
        if not key:
            logger.warning("otel_header_malformed entry=%r", entry)
            continue
        headers[key] = unquote(value.strip())
    return headers


def init_otel(service_name: Optional[str] = None, environment: Optional[str] = None) -> bool:
    """
    Initialize tracing with an OTLP/HTTP exporter.

    Returns True when initialized, False when disabled or failed.
    """
    global _tracer_provider, _otel_initialized

    if _otel_initialized:
        return True

    if not is_otel_enabled():
        logger.debug("otel_disabled")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.logging import LoggingInstrumentor
        from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        from . import __version__

        svc_name = service_name or os.getenv("OTEL_SERVICE_NAME", "travel-expense-mcp")
        env_name = environment or os.getenv("ENVIRONMENT", "development")
        resource = Resource.create(
            {
                SERVICE_NAME: svc_name,
                SERVICE_VERSION: __version__,
                "deployment.environment": env_name,
            }
        )

        _tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(_tracer_provider)

        base_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318").rstrip("/")
        otlp_endpoint = f"{base_endpoint}/v1/traces"
        exporter = OTLPSpanExporter(
            endpoint=otlp_endpoint,
            headers=parse_otlp_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
        )
        _tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

        LoggingInstrumentor().instrument(set_logging_format=False)

        _otel_initialized = True
        logger.info(
            "otel_initialized service=%s environment=%s endpoint=%s",
            svc_name,
            env_name,
            otlp_endpoint,
        )
        return True
    except Exception as exc:
        logger.error("otel_init_failed: %s", exc, exc_info=True)
        return False


def instrument_app(app: Any) -> Any:
    """Wrap the ASGI app with OpenTelemetry middleware when tracing is active."""
    if not _otel_initialized:
        return app

    from opentelemetry.instrumentation.asgi import OpenTelemetryMiddleware

    return OpenTelemetryMiddleware(app, excluded_urls=HEALTH_EXCLUDED_URLS)
