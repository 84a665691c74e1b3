"""
Broadcast metrics.

Tracks how publication went unit by unit: attempts used, whether the unit
was finally accepted, and how long each attempt took. The summary feeds
the publish report and the final log line.
"""

from __future__ import annotations

import time
from typing import Any

import numpy as np
from pydantic import BaseModel


class SubmissionSummary(BaseModel):
    """Aggregated submission metrics for one publish run."""

    total_units: int = 0
    confirmed: int = 0
    failed: int = 0
    total_attempts: int = 0
    retried_units: int = 0
    avg_latency_ms: float = 0.0
    p50_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    elapsed_s: float = 0.0


class SubmissionMetrics:
    """
    Collects per-unit submission outcomes.

    Latencies are recorded per attempt, successful or not.
    """

    def __init__(self) -> None:
        self._latencies: list[float] = []
        self._attempts: list[int] = []
        self._outcomes: list[bool] = []
        self._start_time = time.time()

    def record_attempt(self, latency_ms: float) -> None:
        self._latencies.append(latency_ms)

    def record_unit(self, attempts: int, success: bool) -> None:
        """Record the final outcome of one wire unit."""
        self._attempts.append(attempts)
        self._outcomes.append(success)

    @property
    def attempts(self) -> list[int]:
        return list(self._attempts)

    def summary(self) -> SubmissionSummary:
        """Summarize everything recorded so far."""
        if self._latencies:
            arr = np.array(self._latencies)
            avg = float(np.mean(arr))
            p50 = float(np.percentile(arr, 50))
            p95 = float(np.percentile(arr, 95))
            p99 = float(np.percentile(arr, 99))
        else:
            avg = p50 = p95 = p99 = 0.0

        confirmed = sum(self._outcomes)
        return SubmissionSummary(
            total_units=len(self._outcomes),
            confirmed=confirmed,
            failed=len(self._outcomes) - confirmed,
            total_attempts=sum(self._attempts),
            retried_units=sum(1 for a in self._attempts if a > 1),
            avg_latency_ms=avg,
            p50_latency_ms=p50,
            p95_latency_ms=p95,
            p99_latency_ms=p99,
            elapsed_s=time.time() - self._start_time,
        )

    def as_log_fields(self) -> dict[str, Any]:
        s = self.summary()
        return {
            "confirmed": s.confirmed,
            "failed": s.failed,
            "attempts": s.total_attempts,
            "p95_ms": round(s.p95_latency_ms, 2),
        }
