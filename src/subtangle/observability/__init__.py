"""Observability: structured logging, broadcast metrics and tracing."""

from subtangle.observability.logging import StructuredLogger
from subtangle.observability.metrics import SubmissionMetrics
from subtangle.observability.tracing import TracingManager

__all__ = [
    "StructuredLogger",
    "SubmissionMetrics",
    "TracingManager",
]
