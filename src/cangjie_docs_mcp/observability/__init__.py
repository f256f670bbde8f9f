"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from cangjie_docs_mcp.observability.context import bind_tool, get_trace_context, set_trace_context, trace_context
from cangjie_docs_mcp.observability.logging import JsonFormatter, configure_logging
from cangjie_docs_mcp.observability.metrics import (
    CORPUS_REBUILDS,
    INDEX_DOC_COUNT,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SEARCH_LATENCY,
    configure_metrics_exporter,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from cangjie_docs_mcp.observability.tracing import (
    TraceContextMiddleware,
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
    trace_request,
)


__all__ = [
    "CORPUS_REBUILDS",
    "INDEX_DOC_COUNT",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "TraceContextMiddleware",
    "bind_tool",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "trace_request",
    "track_latency",
]
