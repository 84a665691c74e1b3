"""
Command-line entry point.

Example::

    subtangle --txs 200 --wideness 10 --node https://nodes.example.org:14265
    subtangle --retain            # generate until enter, then broadcast
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Iterable
from typing import TextIO

from subtangle.core.builder import BuilderConfig
from subtangle.core.generator import (
    DEFAULT_NODE,
    DEFAULT_TAG,
    GenerationResult,
    GeneratorConfig,
    SubtangleGenerator,
)
from subtangle.core.publisher import PublisherConfig
from subtangle.exceptions import SubtangleError
from subtangle.execution.checkpointing import CheckpointConfig
from subtangle.observability.logging import LogConfig, StructuredLogger
from subtangle.observability.tracing import TracingConfig, TracingManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtangle",
        description="Build a subtangle on top of the current tangle frontier and broadcast it.",
    )
    parser.add_argument(
        "--txs",
        type=int,
        default=50,
        help="number of txs of the subtangle",
    )
    parser.add_argument("--node", default=DEFAULT_NODE, help="the node to use")
    parser.add_argument("--tag", default=DEFAULT_TAG, help="the tag to use")
    parser.add_argument(
        "--remote",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="whether to do remote PoW",
    )
    parser.add_argument(
        "--broadcast-interval",
        type=int,
        default=10,
        help="the interval (ms) between sending off txs of the built subtangle",
    )
    parser.add_argument(
        "--retain",
        action="store_true",
        help="generate txs indefinitely and broadcast them on enter",
    )
    parser.add_argument(
        "--wideness",
        type=int,
        default=30,
        help="wideness of the subtangle",
    )
    parser.add_argument(
        "--snapshot",
        default=CheckpointConfig().path,
        help="checkpoint file for resuming an unpublished subtangle",
    )
    parser.add_argument("--seed", type=int, default=None, help="seed for parent selection")
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
    )
    parser.add_argument("--log-format", choices=("console", "json"), default="console")
    parser.add_argument(
        "--trace",
        choices=("otlp", "console"),
        default=None,
        help="emit OpenTelemetry spans for the build and publish phases",
    )
    parser.add_argument(
        "--trace-endpoint",
        default=TracingConfig().endpoint,
        help="OTLP collector endpoint used with --trace otlp",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> GeneratorConfig:
    """Translate parsed flags into a run configuration."""
    return GeneratorConfig(
        node=args.node,
        tag=args.tag,
        remote_pow=args.remote,
        builder=BuilderConfig(
            target_count=args.txs,
            window_width=args.wideness,
            retain=args.retain,
            seed=args.seed,
        ),
        publisher=PublisherConfig(broadcast_interval_ms=args.broadcast_interval),
        checkpoint=CheckpointConfig(path=args.snapshot),
        log=LogConfig(level=args.log_level, format=args.log_format),
        tracing=TracingConfig(
            enabled=args.trace is not None,
            export_format=args.trace or "otlp",
            endpoint=args.trace_endpoint,
        ),
    )


class _ProgressPrinter:
    """Rewrites a single progress line in place."""

    def __init__(self, out: TextIO) -> None:
        self._out = out

    def building(self, count: int, total: int | None) -> None:
        if total is None:
            self._out.write(f"\rgenerating txs {count}")
        else:
            self._out.write(f"\rgenerating txs {count}/{total}")
        self._out.flush()

    def broadcasting(self, count: int, total: int) -> None:
        if count == 1:
            self._out.write("\n")
        self._out.write(f"\rbroadcasting txs {count}/{total}")
        self._out.flush()

    def done(self, result: GenerationResult) -> None:
        self._out.write(f"\npublished {result.published} txs to the Tangle\n")
        self._out.flush()


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    logger = StructuredLogger("subtangle", config.log)
    progress = _ProgressPrinter(sys.stdout)

    try:
        from subtangle.integrations.iota import IotaLedgerClient

        client = IotaLedgerClient(config.node, local_pow=not config.remote_pow)
    except ImportError as e:
        logger.error(
            "PyOTA is not available; install subtangle[iota]", error=str(e)
        )
        return 1

    tracer = TracingManager(config.tracing)
    if config.tracing.enabled and not tracer.enabled:
        logger.warning("Tracing requested but OpenTelemetry is not installed")

    try:
        generator = SubtangleGenerator(config, client, logger=logger, tracer=tracer)
        result = asyncio.run(
            generator.run(
                on_build_progress=progress.building,
                on_publish_progress=progress.broadcasting,
            )
        )
    except SubtangleError as e:
        logger.error("Run aborted", error=str(e))
        return 1
    finally:
        tracer.shutdown()

    progress.done(result)
    if not result.report.fully_published:
        logger.warning(
            "Some txs were not accepted by the node",
            failed=len(result.report.failed_indices),
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
