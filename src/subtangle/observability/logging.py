"""
Structured logging for subtangle runs.

Every component logs through a StructuredLogger so that build progress,
checkpoint activity and per-unit broadcast failures carry machine-readable
context (record counts, attempt numbers, hashes). JSON output is meant for
log collection during long load-generation runs; console output is the
default for interactive use.

When an OpenTelemetry span is active, its trace and span IDs are attached
to every entry.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from pydantic import BaseModel, ConfigDict


class LogConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "console"  # "json" or "console"
    include_trace_context: bool = True
    log_file: str | None = None


class StructuredLogger:
    """
    Structured logger with bound context.

    Wraps Python's standard logging with structured output formatting.
    In JSON mode, outputs machine-parseable log lines. In console mode,
    outputs human-readable colored output on stderr so that it does not
    interleave with progress lines on stdout.

    Args:
        name: Logger name.
        config: Logging configuration.
    """

    def __init__(
        self,
        name: str = "subtangle",
        config: LogConfig | None = None,
    ) -> None:
        self._config = config or LogConfig()
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, self._config.level.upper()))
        self._logger.propagate = False
        self._context: dict[str, Any] = {}

        self._setup_handler()

    @property
    def name(self) -> str:
        return self._logger.name

    def _setup_handler(self) -> None:
        """Configure the logging handler and formatter."""
        self._logger.handlers.clear()

        if self._config.format == "json":
            formatter: logging.Formatter = _JSONFormatter()
        else:
            formatter = _ConsoleFormatter()

        if self._config.log_file:
            handler: logging.Handler = logging.FileHandler(self._config.log_file)
        else:
            handler = logging.StreamHandler(sys.stderr)

        handler.setFormatter(formatter)
        self._logger.addHandler(handler)

    def bind(self, **kwargs: Any) -> StructuredLogger:
        """
        Create a child logger with additional context fields.

        Args:
            **kwargs: Context fields to bind.

        Returns:
            A new StructuredLogger with the bound context.
        """
        child = StructuredLogger.__new__(StructuredLogger)
        child._config = self._config
        child._logger = self._logger
        child._context = {**self._context, **kwargs}
        return child

    def child(self, suffix: str) -> StructuredLogger:
        """Create a logger for a sub-component sharing this configuration."""
        return StructuredLogger(f"{self._logger.name}.{suffix}", self._config).bind(
            **self._context
        )

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, **kwargs)

    def _log(self, level: int, msg: str, **kwargs: Any) -> None:
        """Internal log method that merges context."""
        # Per-record debug lines are hot in retain mode.
        if not self._logger.isEnabledFor(level):
            return

        extra = {**self._context, **kwargs}

        if self._config.include_trace_context:
            extra.update(self._get_trace_context())

        self._logger.log(level, msg, extra={"structured": extra})

    @staticmethod
    def _get_trace_context() -> dict[str, str]:
        """Extract OpenTelemetry trace context if available."""
        try:
            from opentelemetry import trace
        except ImportError:
            return {}

        ctx = trace.get_current_span().get_span_context()
        if ctx and ctx.trace_id:
            return {
                "trace_id": format(ctx.trace_id, "032x"),
                "span_id": format(ctx.span_id, "016x"),
            }
        return {}


class _JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        import json
        import time

        output = {
            "timestamp": time.strftime(
                "%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)
            ),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        structured = getattr(record, "structured", None)
        if structured:
            output.update(structured)

        return json.dumps(output, default=str)


class _ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[31;1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")

        parts = [
            f"{color}[{record.levelname:>8}]{self.RESET}",
            record.getMessage(),
        ]

        structured = getattr(record, "structured", None)
        if structured:
            ctx_parts = [f"{k}={v}" for k, v in structured.items()]
            parts.append(f"  ({', '.join(ctx_parts)})")

        return " ".join(parts)
