"""OpenTelemetry tracing with Starlette middleware."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcOTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpOTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode

from cangjie_docs_mcp.observability.context import (
    bound_tool,
    generate_span_id,
    generate_trace_id,
    set_trace_context,
    trace_id_from_headers,
    update_span_id,
)
from cangjie_docs_mcp.observability.metrics import SERVICE_NAME


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer
    from starlette.requests import Request
    from starlette.responses import Response

    from cangjie_docs_mcp.config import Settings

logger = logging.getLogger(__name__)

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(service_name: str = SERVICE_NAME) -> TracerProvider:
    """Initialize OpenTelemetry tracing."""
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer(__name__)
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def configure_trace_exporter(settings: Settings, provider: TracerProvider | None = None) -> None:
    """Attach an OTLP span exporter when a collector endpoint is configured."""
    if not settings.otlp_enabled():
        return

    active_provider = provider or trace.get_tracer_provider()
    if not isinstance(active_provider, TracerProvider):
        active_provider = init_tracing()

    try:
        if settings.otel_protocol == "grpc":
            exporter = GrpcOTLPSpanExporter(
                endpoint=settings.otel_collector_endpoint,
                timeout=settings.otel_timeout_seconds,
                insecure=settings.otel_insecure,
            )
        else:
            exporter = HttpOTLPSpanExporter(
                endpoint=settings.otel_collector_endpoint,
                timeout=settings.otel_timeout_seconds,
            )
    except Exception as exc:
        logger.error("Failed to configure OTLP exporter: %s", exc, exc_info=True)
        return

    active_provider.add_span_processor(BatchSpanProcessor(exporter))
    logger.info(
        "OTLP trace export enabled (%s) to %s",
        settings.otel_protocol,
        settings.otel_collector_endpoint,
    )


def get_tracer() -> Tracer:
    """Get the configured tracer."""
    if _tracer_holder["tracer"] is None:
        init_tracing()
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a traced span and mirror its id into the log context."""
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind) as span:
        if tool := bound_tool():
            span.set_attribute("mcp.tool", tool)
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)

        ctx = span.get_span_context()
        update_span_id(format(ctx.span_id, "016x"))

        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise


class TraceContextMiddleware:
    """ASGI middleware that starts a fresh trace context per HTTP request.

    The caller's id from `traceparent` or `x-trace-id` is reused when valid.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        trace_id = trace_id_from_headers(
            headers.get(b"traceparent", b"").decode("latin-1"),
            headers.get(b"x-trace-id", b"").decode("latin-1"),
        )
        set_trace_context(trace_id or generate_trace_id(), generate_span_id())
        await self.app(scope, receive, send)


async def trace_request(request: Request, call_next: Any) -> Response:
    """Wrap each HTTP request in a server span."""
    attributes = {
        "http.method": request.method,
        "http.url": str(request.url),
        "http.route": request.url.path,
    }
    if request.url.path.startswith("/mcp"):
        attributes["mcp.transport"] = "http"

    with create_span("http.request", kind=SpanKind.SERVER, attributes=attributes) as span:
        response: Response = await call_next(request)
        span.set_attribute("http.status_code", response.status_code)
        if response.status_code >= 400:
            span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
        return response
