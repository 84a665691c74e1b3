"""
OpenTelemetry integration for run tracing.

Wraps the build and publish phases of a run in spans carrying subtangle
attributes (record counts, mode, node). Tracing is optional: without the
OpenTelemetry SDK installed, or with tracing disabled, spans are no-ops.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from pydantic import BaseModel, ConfigDict


class TracingConfig(BaseModel):
    """Configuration for tracing."""

    model_config = ConfigDict(frozen=True)

    service_name: str = "subtangle"
    endpoint: str = "http://localhost:4317"
    enabled: bool = False
    export_format: str = "otlp"  # "otlp" or "console"


class TracingManager:
    """
    OpenTelemetry tracing manager.

    Args:
        config: Tracing configuration.
        exporter: Span exporter to use instead of the one named by
            ``config.export_format``. Spans are exported as they end.
    """

    def __init__(
        self, config: TracingConfig | None = None, exporter: Any = None
    ) -> None:
        self._config = config or TracingConfig()
        self._exporter = exporter
        self._tracer = None
        self._provider = None

        if self._config.enabled:
            self._setup_tracer()

    @property
    def enabled(self) -> bool:
        return self._tracer is not None

    def _setup_tracer(self) -> None:
        """Initialize the OpenTelemetry tracer."""
        try:
            from opentelemetry import trace
            from opentelemetry.sdk.resources import Resource
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import (
                BatchSpanProcessor,
                ConsoleSpanExporter,
                SimpleSpanProcessor,
            )
        except ImportError:
            self._tracer = None
            return

        resource = Resource.create({"service.name": self._config.service_name})
        self._provider = TracerProvider(resource=resource)

        if self._exporter is not None:
            processor = SimpleSpanProcessor(self._exporter)
        elif self._config.export_format == "console":
            processor = BatchSpanProcessor(ConsoleSpanExporter())
        else:
            try:
                from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                    OTLPSpanExporter,
                )
                processor = BatchSpanProcessor(
                    OTLPSpanExporter(endpoint=self._config.endpoint)
                )
            except ImportError:
                processor = BatchSpanProcessor(ConsoleSpanExporter())

        self._provider.add_span_processor(processor)
        trace.set_tracer_provider(self._provider)
        self._tracer = self._provider.get_tracer("subtangle")

    @asynccontextmanager
    async def span(self, name: str, **attrs: Any) -> AsyncIterator[Any]:
        """
        Create an async span for an operation.

        Yields:
            The OpenTelemetry span, or a no-op span if tracing is off.
        """
        if self._tracer is None:
            yield _NoOpSpan()
            return

        attributes = {f"subtangle.{k}": v for k, v in attrs.items() if v is not None}
        with self._tracer.start_as_current_span(name, attributes=attributes) as otel_span:
            try:
                yield otel_span
            except Exception as e:
                otel_span.set_attribute("subtangle.error", str(e))
                otel_span.record_exception(e)
                raise

    def shutdown(self) -> None:
        """Flush and shut down the tracer provider."""
        if self._provider:
            self._provider.shutdown()


class _NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def record_exception(self, exception: Exception) -> None:
        pass
