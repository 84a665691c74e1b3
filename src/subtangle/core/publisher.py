"""
Subtangle publication.

Publishing closes the fragment and broadcasts it in causal order:

    1. Attach one closing record approving a fresh network tip (trunk) and
       the last record of the subtangle (branch), so the fragment is
       reachable from the live tangle.
    2. Convert every record to its wire form, in sequence order.
    3. Broadcast each unit with a fixed number of immediate retries.
       A unit that keeps failing is logged and skipped.
    4. Pause between units so the receiving node is not flooded.

The checkpoint is removed once publication ends, whatever the outcome,
so a half-published fragment is never broadcast a second time next to a
freshly built one.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from subtangle.core.records import Record
from subtangle.exceptions import EmptySubtangleError, LedgerClientError
from subtangle.observability.logging import StructuredLogger
from subtangle.observability.metrics import SubmissionMetrics, SubmissionSummary

if TYPE_CHECKING:
    from collections.abc import Callable

    from subtangle.core.records import Subtangle
    from subtangle.execution.checkpointing import CheckpointStore
    from subtangle.integrations.base import LedgerClient


class PublisherConfig(BaseModel):
    """Configuration for the publisher."""

    model_config = ConfigDict(frozen=True)

    broadcast_interval_ms: int = Field(default=10, ge=0)
    max_attempts: int = Field(default=5, ge=1)
    tip_depth: int = Field(default=3, ge=1)
    min_weight_magnitude: int = Field(default=14, ge=1)
    closing_tag: str = ""


class PublishReport(BaseModel):
    """Outcome of publishing one subtangle."""

    total: int
    confirmed: int
    failed_indices: list[int] = Field(default_factory=list)
    attempts: list[int] = Field(default_factory=list)
    closing_record: Record
    metrics: SubmissionSummary = Field(default_factory=SubmissionSummary)

    @property
    def fully_published(self) -> bool:
        return not self.failed_indices


class Publisher:
    """
    Closes a subtangle and broadcasts it to the network.

    Args:
        config: Publisher configuration.
        store: Checkpoint store cleared when publication ends.
        logger: Optional logger.
    """

    def __init__(
        self,
        config: PublisherConfig | None = None,
        store: CheckpointStore | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._config = config or PublisherConfig()
        self._store = store
        self._log = logger or StructuredLogger("subtangle.publisher")

    @property
    def config(self) -> PublisherConfig:
        return self._config

    async def publish(
        self,
        subtangle: Subtangle,
        client: LedgerClient,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> PublishReport:
        """
        Close and broadcast a subtangle.

        Errors while building the closing record are fatal and propagate.
        Broadcast failures are not: each unit gets ``max_attempts`` tries
        and the batch moves on regardless.

        Args:
            subtangle: Records to publish, in creation order. Not modified.
            client: Ledger client used for the closing record and broadcast.
            on_progress: Called with ``(sent, total)`` after every unit.

        Returns:
            PublishReport for the closed subtangle.
        """
        try:
            closed = await self.close(subtangle, client)
            units = client.to_wire(closed)
            metrics = SubmissionMetrics()
            failed: list[int] = []

            for index, unit in enumerate(units):
                if not await self._submit_unit(client, unit, index, metrics):
                    failed.append(index)
                if on_progress is not None:
                    on_progress(index + 1, len(units))
                await asyncio.sleep(self._config.broadcast_interval_ms / 1000)

            summary = metrics.summary()
            self._log.info(
                "Published subtangle",
                total=len(units),
                **metrics.as_log_fields(),
            )
            return PublishReport(
                total=len(units),
                confirmed=summary.confirmed,
                failed_indices=failed,
                attempts=metrics.attempts,
                closing_record=closed[-1],
                metrics=summary,
            )
        finally:
            if self._store is not None:
                await self._store.clear()

    async def close(self, subtangle: Subtangle, client: LedgerClient) -> Subtangle:
        """
        Append the record linking the subtangle back to the network.

        Returns:
            A new list: the input records followed by the closing record.
        """
        if not subtangle:
            raise EmptySubtangleError("Cannot close an empty subtangle")

        prepared = await client.prepare_transfer(self._config.closing_tag)
        frontier = await client.get_frontier(self._config.tip_depth)
        last = subtangle[-1]

        attached = await client.attach(
            frontier.trunk,
            last.hash,
            prepared,
            self._config.min_weight_magnitude,
        )
        if not attached:
            raise LedgerClientError("attach returned no records for the closing record")

        closing = attached[0]
        self._log.debug(
            "Attached closing record",
            hash=closing.hash,
            trunk=frontier.trunk,
            branch=last.hash,
        )
        return [*subtangle, closing]

    async def _submit_unit(
        self,
        client: LedgerClient,
        unit: str,
        index: int,
        metrics: SubmissionMetrics,
    ) -> bool:
        """Broadcast one unit, retrying immediately on failure."""
        last_error: str | None = None

        for attempt in range(1, self._config.max_attempts + 1):
            start = time.perf_counter()
            try:
                await client.submit(unit)
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                metrics.record_attempt((time.perf_counter() - start) * 1000)
                continue

            metrics.record_attempt((time.perf_counter() - start) * 1000)
            metrics.record_unit(attempt, success=True)
            return True

        metrics.record_unit(self._config.max_attempts, success=False)
        self._log.warning(
            "Giving up on unit",
            index=index,
            attempts=self._config.max_attempts,
            error=last_error,
        )
        return False
