"""Tracing helpers built on OpenTelemetry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig


_TRACERS: dict[str, Tracer] = {}
_TRACER_PROVIDER: TracerProvider | None = None


def get_tracer(name: str = "salvo") -> Tracer:
    """Return the tracer called ``name``.

    Before :func:`init_tracing` runs, tracers come from the global provider,
    whose proxies start recording once a real provider is installed.
    """
    tracer = _TRACERS.get(name)
    if tracer is None:
        if _TRACER_PROVIDER is not None:
            tracer = _TRACER_PROVIDER.get_tracer(name)
        else:
            tracer = trace.get_tracer(name)
        _TRACERS[name] = tracer
    return tracer


def span_processor(config: TelemetryConfig) -> SpanProcessor:
    """Batch spans to the OTLP endpoint, or print each one when there is none."""
    if config.otlp_traces_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True)
        return BatchSpanProcessor(exporter)
    return SimpleSpanProcessor(ConsoleSpanExporter())


def init_tracing(config: TelemetryConfig) -> Tracer:
    """Install a TracerProvider for ``config`` and return the service tracer."""
    global _TRACER_PROVIDER

    provider = TracerProvider(resource=Resource.create(config.resource))
    provider.add_span_processor(span_processor(config))
    trace.set_tracer_provider(provider)

    _TRACER_PROVIDER = provider
    _TRACERS.clear()
    return get_tracer(config.service_name)
