from __future__ import annotations

import logging
import os
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

logger = logging.getLogger(__name__)

_tracer_provider: Optional[TracerProvider] = None
_meter_provider: Optional[MeterProvider] = None


def _build_resource(service_name: str) -> Resource:
    """
    Common Resource for both traces and metrics.

    The version comes from FLOWCTL_SERVICE_VERSION so it can follow the
    deployed function's version.
    """
    service_version = os.getenv("FLOWCTL_SERVICE_VERSION", "dev")
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
        }
    )


def _span_exporter(exporter: str) -> Optional[SpanExporter]:
    kind = exporter.lower()
    if kind == "console":
        return ConsoleSpanExporter()
    # OTLP exporters ship in the "otlp" extra; import lazily.
    try:
        if kind == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        else:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    except ImportError:
        logger.warning("OTLP %s span exporter not installed; tracing not initialized", kind)
        return None
    return OTLPSpanExporter()


def _metric_exporter(exporter: str) -> Optional[MetricExporter]:
    kind = exporter.lower()
    if kind == "console":
        return ConsoleMetricExporter()
    try:
        if kind == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )
        else:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
                OTLPMetricExporter,
            )
    except ImportError:
        logger.warning("OTLP %s metric exporter not installed; metrics not initialized", kind)
        return None
    return OTLPMetricExporter()


# ---------------------------------------------------------------------------
# Traces
# ---------------------------------------------------------------------------


def init_tracer(service_name: str = "flowctl-core", exporter: str = "http") -> None:
    """
    Initialize a TracerProvider + exporter and install it globally.

    :param service_name: logical service name (appears in Jaeger, Tempo, etc.)
    :param exporter: "http" (default), "grpc" or "console"
    """
    global _tracer_provider

    if _tracer_provider is not None:
        # already initialized
        return

    span_exporter = _span_exporter(exporter)
    if span_exporter is None:
        return

    provider = TracerProvider(resource=_build_resource(service_name))
    provider.add_span_processor(BatchSpanProcessor(span_exporter))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider


def get_tracer(instrumentation_name: str = "flowctl_core.otel_runtime"):
    """
    Helper to get a tracer.

    Falls back to the global provider (often a no-op) when init_tracer()
    was never called.
    """
    if _tracer_provider is None:
        return trace.get_tracer(instrumentation_name)
    return _tracer_provider.get_tracer(instrumentation_name)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def init_metrics(service_name: str = "flowctl-core", exporter: str = "http") -> None:
    """
    Initialize a MeterProvider + metrics exporter and install it globally.

    :param service_name: logical service name
    :param exporter: "http" (default), "grpc" or "console"
    """
    global _meter_provider

    if _meter_provider is not None:
        return

    metric_exporter = _metric_exporter(exporter)
    if metric_exporter is None:
        return

    reader = PeriodicExportingMetricReader(metric_exporter)
    provider = MeterProvider(resource=_build_resource(service_name), metric_readers=[reader])

    metrics.set_meter_provider(provider)
    _meter_provider = provider


def get_meter(instrumentation_name: str = "flowctl_core.otel_runtime"):
    """
    Helper to get a meter.

    Returns None if metrics are not initialized, so callers can simply skip
    recording metrics in that case.
    """
    if _meter_provider is None:
        return None
    return _meter_provider.get_meter(instrumentation_name)
