"""Prometheus metrics for the documentation server, bridged to OpenTelemetry."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcOTLPMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpOTLPMetricExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator

    from cangjie_docs_mcp.config import Settings


SERVICE_NAME = "cangjie-docs-mcp"

_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = SERVICE_NAME,
    metric_readers: list[PeriodicExportingMetricReader] | None = None,
) -> MeterProvider:
    """Initialize OpenTelemetry metrics."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    resource = Resource.create({"service.name": service_name})
    provider = MeterProvider(resource=resource, metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def configure_metrics_exporter(settings: Settings) -> None:
    """Export metrics over OTLP when a collector endpoint is configured.

    Must run before the first metric is recorded; instruments bind to the
    provider that exists at that moment.
    """
    if not settings.otlp_enabled():
        return

    endpoint = settings.otel_collector_endpoint
    if settings.otel_protocol == "grpc":
        exporter = GrpcOTLPMetricExporter(
            endpoint=endpoint,
            timeout=settings.otel_timeout_seconds,
            insecure=settings.otel_insecure,
        )
    else:
        if endpoint.endswith("/v1/traces"):
            endpoint = endpoint.removesuffix("/v1/traces")
        exporter = HttpOTLPMetricExporter(
            endpoint=endpoint.rstrip("/") + "/v1/metrics",
            timeout=settings.otel_timeout_seconds,
        )

    init_metrics(metric_readers=[PeriodicExportingMetricReader(exporter)])


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


class _LabelledSeries:
    """One label combination of a :class:`MetricBridge`."""

    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.record(self._labels, amount)

    def observe(self, value: float) -> None:
        self._bridge.record(self._labels, value)

    def set(self, value: float) -> None:
        self._bridge.record(self._labels, value)


class MetricBridge:
    """A Prometheus series mirrored into an OTel instrument.

    The Prometheus side is always live and backs ``/metrics``. The OTel
    instrument is created on first use so it binds to whichever meter
    provider :func:`configure_metrics_exporter` installed.
    """

    _PROMETHEUS_TYPES = {"counter": Counter, "histogram": Histogram, "gauge": Gauge}

    def __init__(
        self,
        kind: str,
        name: str,
        description: str,
        labelnames: tuple[str, ...],
        buckets: tuple[float, ...] | None = None,
    ) -> None:
        if kind not in self._PROMETHEUS_TYPES:
            raise ValueError(f"Unknown metric kind: {kind}")
        extra = {"buckets": buckets} if buckets else {}
        self.kind = kind
        self.name = name
        self.description = description
        self._series = self._PROMETHEUS_TYPES[kind](name, description, list(labelnames), **extra)
        self._instrument = None
        self._gauge_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _LabelledSeries:
        return _LabelledSeries(self, labels)

    def record(self, labels: dict[str, str], value: float) -> None:
        series = self._series.labels(**labels)
        instrument = self._otel_instrument()
        if self.kind == "counter":
            series.inc(value)
            instrument.add(value, labels)
        elif self.kind == "histogram":
            series.observe(value)
            instrument.record(value, labels)
        else:
            series.set(value)
            key = tuple(sorted(labels.items()))
            delta = value - self._gauge_values.get(key, 0.0)
            if delta:
                instrument.add(delta, labels)
            self._gauge_values[key] = value

    def _otel_instrument(self):
        if self._instrument is None:
            meter = _get_meter()
            if self.kind == "counter":
                self._instrument = meter.create_counter(self.name, description=self.description)
            elif self.kind == "histogram":
                self._instrument = meter.create_histogram(self.name, description=self.description)
            else:
                self._instrument = meter.create_up_down_counter(self.name, description=self.description)
        return self._instrument


REQUEST_LATENCY = MetricBridge(
    "histogram",
    "mcp_request_latency_seconds",
    "Tool request latency in seconds",
    ("tool",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
REQUEST_COUNT = MetricBridge("counter", "mcp_requests_total", "Total MCP tool requests", ("tool", "status"))
SEARCH_LATENCY = MetricBridge(
    "histogram",
    "search_latency_seconds",
    "Query engine latency",
    ("category",),
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
)
INDEX_DOC_COUNT = MetricBridge("gauge", "index_document_count", "Documents in the active corpus snapshot", ("kind",))
CORPUS_REBUILDS = MetricBridge("counter", "corpus_rebuilds_total", "Corpus snapshot rebuild attempts", ("status",))


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
