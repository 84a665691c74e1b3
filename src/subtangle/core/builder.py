"""
Subtangle construction with windowed-random tip selection.

The builder grows a chain of records where the first record approves two
real network tips and every later record approves two records drawn from
the fragment itself. Parents are drawn uniformly from the most recent
``window_width`` records, which keeps the fragment narrow and lets older
records be confirmed by newer ones instead of leaving a wide, flat fan of
tips behind.

The loop supports:

    - Bounded generation (stop after ``target_count`` records)
    - Unbounded generation stopped by an InterruptSignal
    - Reproducible shapes via a seeded numpy Generator
    - A checkpoint on every exit, including a failed link
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from subtangle.observability.logging import StructuredLogger

if TYPE_CHECKING:
    from collections.abc import Callable

    from subtangle.core.records import FrontierReference, Subtangle
    from subtangle.execution.checkpointing import CheckpointStore
    from subtangle.execution.interrupt import InterruptSignal
    from subtangle.integrations.base import Linker


RETAIN_TARGET_COUNT = 1_000_000


class BuilderConfig(BaseModel):
    """Configuration for the subtangle builder."""

    model_config = ConfigDict(frozen=True)

    target_count: int = Field(default=50, ge=0)
    window_width: int = Field(default=30, ge=1)
    retain: bool = False
    seed: int | None = None

    @property
    def effective_target(self) -> int:
        """Records to build: effectively unbounded in retain mode."""
        return RETAIN_TARGET_COUNT if self.retain else self.target_count


class SubtangleBuilder:
    """
    Builds a subtangle by repeatedly linking new records into it.

    Example::

        builder = SubtangleBuilder(BuilderConfig(target_count=100), store=store)
        frontier = await client.get_frontier(depth=3)
        subtangle = await builder.build(make_linker(client, "SUBGEN", 14), frontier)

    Args:
        config: Builder configuration.
        store: Checkpoint store written when the build ends.
        logger: Optional logger.
        rng: Random source for parent selection. Seeded from
            ``config.seed`` if omitted.
    """

    def __init__(
        self,
        config: BuilderConfig | None = None,
        store: CheckpointStore | None = None,
        logger: StructuredLogger | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self._config = config or BuilderConfig()
        self._store = store
        self._log = logger or StructuredLogger("subtangle.builder")
        self._rng = rng or np.random.default_rng(self._config.seed)

    @property
    def config(self) -> BuilderConfig:
        return self._config

    async def build(
        self,
        link: Linker,
        frontier: FrontierReference,
        target_count: int | None = None,
        interrupt: InterruptSignal | None = None,
        on_progress: Callable[[int, int | None], None] | None = None,
    ) -> Subtangle:
        """
        Grow a new subtangle.

        The interrupt signal is checked before each record; once set, the
        loop stops without starting another link. Records already appended
        are kept. Errors from ``link`` propagate unchanged.

        Args:
            link: Attaches a new record to ``(trunk, branch)``.
            frontier: Network tips approved by the first record.
            target_count: Records to build. Defaults to the configured
                effective target.
            interrupt: Optional stop signal.
            on_progress: Called with ``(built, total)`` after every record.
                ``total`` is None in retain mode.

        Returns:
            The built records in creation order.
        """
        total = self._config.effective_target if target_count is None else target_count
        shown_total = None if self._config.retain and target_count is None else total

        subtangle: Subtangle = []
        interrupted = False
        self._log.info(
            "Building subtangle",
            target=shown_total,
            window=self._config.window_width,
        )

        try:
            for _ in range(total):
                if interrupt is not None and interrupt.is_set():
                    interrupted = True
                    break

                trunk, branch = self.select_parents(subtangle, frontier)
                record = await link(trunk, branch)
                subtangle.append(record)

                self._log.debug(
                    "Linked record",
                    index=len(subtangle) - 1,
                    hash=record.hash,
                    trunk=trunk,
                    branch=branch,
                )
                if on_progress is not None:
                    on_progress(len(subtangle), shown_total)
        finally:
            self._log.info(
                "Subtangle build finished",
                records=len(subtangle),
                interrupted=interrupted,
            )
            if self._store is not None:
                await self._store.save(subtangle)

        return subtangle

    def select_parents(
        self,
        subtangle: Subtangle,
        frontier: FrontierReference,
    ) -> tuple[str, str]:
        """
        Choose trunk and branch for the next record.

        The first record approves the network frontier. Later records
        approve two independently drawn records from the trailing window.
        Both draws may land on the same record.
        """
        n = len(subtangle)
        if n == 0:
            return frontier.trunk, frontier.branch

        trunk_idx, branch_idx = self.draw_indices(n)
        return subtangle[trunk_idx].hash, subtangle[branch_idx].hash

    def draw_indices(self, n: int) -> tuple[int, int]:
        """Draw two parent indices from ``[max(0, n - w), n)``."""
        if n < 1:
            raise ValueError("Cannot draw parents from an empty subtangle")

        w = self._config.window_width
        low = 0 if n < w else n - w
        trunk_idx, branch_idx = self._rng.integers(low, n, size=2)
        return int(trunk_idx), int(branch_idx)
