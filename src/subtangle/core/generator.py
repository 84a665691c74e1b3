"""
Run orchestration: resume a saved subtangle or build a fresh one, then
publish it.

A run is one of two modes:

    - RESUME: a checkpoint exists, so a previous run built a subtangle and
      never finished publishing it. The saved records are published as-is
      and the builder is never invoked.
    - FRESH: no checkpoint. Fetch the network frontier, build a new
      subtangle (checkpointed on completion), then publish it.

Both modes end in the publisher. The first fatal error ends the run.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, TextIO

from pydantic import BaseModel, ConfigDict, Field

from subtangle.core.builder import BuilderConfig, SubtangleBuilder
from subtangle.core.publisher import PublishReport, Publisher, PublisherConfig
from subtangle.execution.checkpointing import CheckpointConfig, CheckpointStore
from subtangle.execution.interrupt import InterruptSignal, listen_for_keypress
from subtangle.integrations.base import make_linker
from subtangle.observability.logging import LogConfig, StructuredLogger
from subtangle.observability.tracing import TracingConfig, TracingManager

if TYPE_CHECKING:
    from collections.abc import Callable

    from subtangle.core.records import Subtangle
    from subtangle.integrations.base import LedgerClient


DEFAULT_NODE = "https://trinity.iota-tangle.io:14265"
DEFAULT_TAG = "SUBGEN"


class RunMode(str, Enum):
    """How a run obtained the subtangle it publishes."""

    RESUME = "resume"
    FRESH = "fresh"


class GeneratorConfig(BaseModel):
    """Complete, immutable configuration for one run."""

    model_config = ConfigDict(frozen=True)

    node: str = DEFAULT_NODE
    tag: str = Field(default=DEFAULT_TAG, max_length=27, pattern=r"^[A-Z9]*$")
    remote_pow: bool = True
    builder: BuilderConfig = Field(default_factory=BuilderConfig)
    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)


class GenerationResult(BaseModel):
    """Summary of a completed run."""

    mode: RunMode
    built: int = 0
    resumed: int = 0
    report: PublishReport

    @property
    def published(self) -> int:
        return self.report.total


class SubtangleGenerator:
    """
    Drives checkpoint lookup, building and publishing for one run.

    Args:
        config: Run configuration.
        client: Ledger client for the target node.
        store: Checkpoint store. Built from ``config.checkpoint`` if omitted.
        builder: Subtangle builder. Built from ``config.builder`` if omitted.
        publisher: Publisher. Built from ``config.publisher`` if omitted.
        interrupt: Stop signal for retain mode. When omitted in retain
            mode, one is created and fired by a stdin listener.
        input_stream: Stream the retain-mode listener waits on.
        logger: Optional logger.
        tracer: Optional tracing manager.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        client: LedgerClient,
        store: CheckpointStore | None = None,
        builder: SubtangleBuilder | None = None,
        publisher: Publisher | None = None,
        interrupt: InterruptSignal | None = None,
        input_stream: TextIO | None = None,
        logger: StructuredLogger | None = None,
        tracer: TracingManager | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._log = logger or StructuredLogger("subtangle", config.log)
        self._store = store or CheckpointStore(
            config.checkpoint, logger=self._log.child("checkpoint")
        )
        self._builder = builder or SubtangleBuilder(
            config.builder, store=self._store, logger=self._log.child("builder")
        )
        self._publisher = publisher or Publisher(
            config.publisher, store=self._store, logger=self._log.child("publisher")
        )
        self._interrupt = interrupt
        self._input_stream = input_stream
        self._tracer = tracer or TracingManager(config.tracing)

    @property
    def config(self) -> GeneratorConfig:
        return self._config

    async def run(
        self,
        on_build_progress: Callable[[int, int | None], None] | None = None,
        on_publish_progress: Callable[[int, int], None] | None = None,
    ) -> GenerationResult:
        """
        Execute one run: resume or build, then publish.

        Returns:
            GenerationResult with the mode taken and the publish report.
        """
        existing = await self._store.load()

        if existing is not None:
            mode = RunMode.RESUME
            subtangle = existing
            self._log.info("Resuming from checkpoint", records=len(subtangle))
        else:
            mode = RunMode.FRESH
            subtangle = await self._build(on_build_progress)

        async with self._tracer.span(
            "subtangle.publish", mode=mode.value, records=len(subtangle)
        ):
            report = await self._publisher.publish(
                subtangle, self._client, on_progress=on_publish_progress
            )

        return GenerationResult(
            mode=mode,
            built=len(subtangle) if mode == RunMode.FRESH else 0,
            resumed=len(subtangle) if mode == RunMode.RESUME else 0,
            report=report,
        )

    async def _build(
        self,
        on_progress: Callable[[int, int | None], None] | None,
    ) -> Subtangle:
        """Fetch the frontier and build a fresh subtangle."""
        interrupt = self._interrupt
        if self._config.builder.retain and interrupt is None:
            interrupt = InterruptSignal()
            listen_for_keypress(interrupt, self._input_stream)
            self._log.info("Retain mode: generating until enter is pressed")

        async with self._tracer.span("subtangle.build", node=self._config.node):
            frontier = await self._client.get_frontier(self._config.publisher.tip_depth)
            link = make_linker(
                self._client,
                self._config.tag,
                self._config.publisher.min_weight_magnitude,
            )
            return await self._builder.build(
                link,
                frontier,
                interrupt=interrupt,
                on_progress=on_progress,
            )
