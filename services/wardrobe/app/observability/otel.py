"""OpenTelemetry tracing and tool metrics for the wardrobe agents service."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..config import ObservabilitySettings, get_settings

INSTRUMENTATION_NAME = "wardrobe.agents"


@dataclass(frozen=True)
class ToolMetrics:
    calls: metrics.Counter
    latency_ms: metrics.Histogram

    def record(self, tool_name: str, success: bool, latency_ms: float) -> None:
        attributes = {"tool": tool_name, "success": success}
        self.calls.add(1, attributes)
        self.latency_ms.record(latency_ms, attributes)


def configure_telemetry(settings: ObservabilitySettings | None = None) -> None:
    """Install tracer and meter providers; spans and metrics only leave the process when an OTLP endpoint is set."""
    settings = settings or get_settings().observability
    resource = Resource(attributes={SERVICE_NAME: settings.otel_service_name})
    tracer_provider = TracerProvider(resource=resource)

    endpoint = settings.otel_exporter_otlp_endpoint
    if endpoint:
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
        reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"))
        metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))
    trace.set_tracer_provider(tracer_provider)


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


@lru_cache(maxsize=1)
def tool_metrics() -> ToolMetrics:
    meter = metrics.get_meter(INSTRUMENTATION_NAME)
    return ToolMetrics(
        calls=meter.create_counter("wardrobe.tool.calls", description="Tool invocations by outcome"),
        latency_ms=meter.create_histogram("wardrobe.tool.latency", unit="ms", description="Tool call latency"),
    )


__all__ = ["ToolMetrics", "configure_telemetry", "get_tracer", "tool_metrics"]
