"""Shared fixtures: an in-memory ledger client and a temp checkpoint store."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from subtangle.core.records import FrontierReference, Record
from subtangle.exceptions import LedgerClientError
from subtangle.execution.checkpointing import CheckpointConfig, CheckpointStore
from subtangle.observability.logging import LogConfig, StructuredLogger


INITIAL_FRONTIER = FrontierReference(trunk="A", branch="B")
FRESH_FRONTIER = FrontierReference(trunk="FRESH_TIP", branch="FRESH_OTHER")


# -- Mock ledger client ------------------------------------------------------

class FakeLedgerClient:
    """
    In-memory ledger.

    The first frontier request returns (A, B); later ones return the fresh
    frontier. Attached records are hashed H0, H1, ... in attach order.
    """

    def __init__(
        self,
        frontiers: Sequence[FrontierReference] = (INITIAL_FRONTIER, FRESH_FRONTIER),
        fail_all_submits: bool = False,
        submit_failures: dict[str, int] | None = None,
        fail_attach_at: int | None = None,
        fail_frontier: bool = False,
    ) -> None:
        self._frontiers = list(frontiers)
        self._fail_all_submits = fail_all_submits
        self._submit_failures = dict(submit_failures or {})
        self._fail_attach_at = fail_attach_at
        self._fail_frontier = fail_frontier

        self.frontier_depths: list[int] = []
        self.prepared_tags: list[str] = []
        self.attach_calls: list[tuple[str, str, int]] = []
        self.submit_attempts: list[str] = []
        self.submitted: list[str] = []

    @property
    def attach_count(self) -> int:
        return len(self.attach_calls)

    async def get_frontier(self, depth: int) -> FrontierReference:
        if self._fail_frontier:
            raise LedgerClientError("node unreachable")
        self.frontier_depths.append(depth)
        index = min(len(self.frontier_depths) - 1, len(self._frontiers) - 1)
        return self._frontiers[index]

    async def prepare_transfer(self, tag: str) -> list[str]:
        self.prepared_tags.append(tag)
        return [f"PREP:{tag}"]

    async def attach(
        self,
        trunk: str,
        branch: str,
        prepared: list[str],
        min_weight_magnitude: int,
    ) -> list[Record]:
        if self._fail_attach_at is not None and self.attach_count == self._fail_attach_at:
            raise LedgerClientError("attach rejected")

        record_hash = f"H{self.attach_count}"
        self.attach_calls.append((trunk, branch, min_weight_magnitude))
        return [
            Record(
                hash=record_hash,
                trunk=trunk,
                branch=branch,
                tag=prepared[0].removeprefix("PREP:"),
                trytes=f"TRYTES:{record_hash}",
            )
        ]

    def to_wire(self, records: Sequence[Record]) -> list[str]:
        return [r.trytes for r in records]

    async def submit(self, unit: str) -> None:
        self.submit_attempts.append(unit)
        if self._fail_all_submits:
            raise LedgerClientError("broadcast rejected")
        remaining = self._submit_failures.get(unit, 0)
        if remaining > 0:
            self._submit_failures[unit] = remaining - 1
            raise LedgerClientError("transient broadcast failure")
        self.submitted.append(unit)


def make_records(n: int, prefix: str = "S") -> list[Record]:
    """A simple linear chain of records for checkpoint and publish tests."""
    records = []
    for i in range(n):
        parent = records[-1].hash if records else "A"
        records.append(
            Record(
                hash=f"{prefix}{i}",
                trunk=parent,
                branch="B" if i == 0 else parent,
                tag="SUBGEN",
                trytes=f"TRYTES:{prefix}{i}",
            )
        )
    return records


# -- Fixtures ----------------------------------------------------------------

@pytest.fixture
def quiet_logger() -> StructuredLogger:
    return StructuredLogger("subtangle.test", LogConfig(level="WARNING"))


@pytest.fixture
def client() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    return tmp_path / "subtangle.snap"


@pytest.fixture
def store(snapshot_path: Path, quiet_logger: StructuredLogger) -> CheckpointStore:
    return CheckpointStore(
        CheckpointConfig(path=str(snapshot_path)),
        logger=quiet_logger,
    )
