"""Tests for closing and broadcasting a subtangle."""

from __future__ import annotations

import time

import pytest

from subtangle.core.builder import BuilderConfig, SubtangleBuilder
from subtangle.core.publisher import Publisher, PublisherConfig
from subtangle.exceptions import EmptySubtangleError, LedgerClientError
from subtangle.execution.checkpointing import CheckpointStore
from subtangle.integrations.base import make_linker
from subtangle.observability.logging import StructuredLogger

from conftest import FRESH_FRONTIER, INITIAL_FRONTIER, FakeLedgerClient, make_records


def _publisher(
    quiet_logger: StructuredLogger,
    store: CheckpointStore | None = None,
    **config: object,
) -> Publisher:
    config.setdefault("broadcast_interval_ms", 0)
    return Publisher(PublisherConfig(**config), store=store, logger=quiet_logger)


class TestClosingRecord:
    @pytest.mark.asyncio
    async def test_closing_record_links_back_to_network(
        self, quiet_logger: StructuredLogger
    ) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        records = make_records(4)
        report = await _publisher(quiet_logger).publish(records, client)

        closing = report.closing_record
        assert closing.trunk == FRESH_FRONTIER.trunk
        assert closing.branch == records[-1].hash
        assert client.frontier_depths == [3]

    @pytest.mark.asyncio
    async def test_input_is_not_modified(self, quiet_logger: StructuredLogger) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        records = make_records(3)
        await _publisher(quiet_logger).publish(records, client)
        assert len(records) == 3

    @pytest.mark.asyncio
    async def test_empty_subtangle_is_fatal(
        self, client: FakeLedgerClient, quiet_logger: StructuredLogger
    ) -> None:
        with pytest.raises(EmptySubtangleError):
            await _publisher(quiet_logger).publish([], client)
        assert client.submit_attempts == []

    @pytest.mark.asyncio
    async def test_frontier_failure_is_fatal_and_clears_checkpoint(
        self, store: CheckpointStore, quiet_logger: StructuredLogger
    ) -> None:
        records = make_records(3)
        await store.save(records)
        client = FakeLedgerClient(fail_frontier=True)

        with pytest.raises(LedgerClientError):
            await _publisher(quiet_logger, store=store).publish(records, client)

        assert client.submit_attempts == []
        assert await store.load() is None


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_build_then_publish_scenario(
        self, client: FakeLedgerClient, quiet_logger: StructuredLogger
    ) -> None:
        builder = SubtangleBuilder(
            BuilderConfig(target_count=3, window_width=30), logger=quiet_logger
        )
        frontier = await client.get_frontier(3)
        assert frontier == INITIAL_FRONTIER
        subtangle = await builder.build(make_linker(client, "SUBGEN", 14), frontier)
        report = await _publisher(quiet_logger).publish(subtangle, client)

        assert report.closing_record.parents == (FRESH_FRONTIER.trunk, subtangle[2].hash)
        assert client.submitted == [
            "TRYTES:H0",
            "TRYTES:H1",
            "TRYTES:H2",
            "TRYTES:H3",
        ]
        assert report.total == 4
        assert report.confirmed == 4
        assert report.fully_published

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, quiet_logger: StructuredLogger) -> None:
        client = FakeLedgerClient(
            frontiers=[FRESH_FRONTIER],
            submit_failures={"TRYTES:S1": 2},
        )
        report = await _publisher(quiet_logger).publish(make_records(3), client)

        assert report.attempts == [1, 3, 1, 1]
        assert report.fully_published
        assert client.submitted == ["TRYTES:S0", "TRYTES:S1", "TRYTES:S2", "TRYTES:H0"]

    @pytest.mark.asyncio
    async def test_unit_gives_up_after_five_attempts(
        self, quiet_logger: StructuredLogger
    ) -> None:
        client = FakeLedgerClient(
            frontiers=[FRESH_FRONTIER],
            submit_failures={"TRYTES:S0": 10},
        )
        report = await _publisher(quiet_logger).publish(make_records(2), client)

        assert client.submit_attempts.count("TRYTES:S0") == 5
        assert report.failed_indices == [0]
        assert client.submitted == ["TRYTES:S1", "TRYTES:H0"]
        assert report.confirmed == 2

    @pytest.mark.asyncio
    async def test_always_failing_node_terminates_and_clears(
        self, store: CheckpointStore, quiet_logger: StructuredLogger
    ) -> None:
        records = make_records(4)
        await store.save(records)
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER], fail_all_submits=True)

        report = await _publisher(quiet_logger, store=store).publish(records, client)

        assert len(client.submit_attempts) == 5 * 5
        assert report.confirmed == 0
        assert report.failed_indices == [0, 1, 2, 3, 4]
        assert report.metrics.total_attempts == 25
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_submission_follows_sequence_order(
        self, quiet_logger: StructuredLogger
    ) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        records = make_records(10)
        await _publisher(quiet_logger).publish(records, client)
        assert client.submitted == [r.trytes for r in records] + ["TRYTES:H0"]

    @pytest.mark.asyncio
    async def test_custom_attempt_limit(self, quiet_logger: StructuredLogger) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER], fail_all_submits=True)
        report = await _publisher(quiet_logger, max_attempts=2).publish(
            make_records(1), client
        )
        assert report.attempts == [2, 2]

    @pytest.mark.asyncio
    async def test_successful_publish_clears_checkpoint(
        self, store: CheckpointStore, quiet_logger: StructuredLogger
    ) -> None:
        records = make_records(3)
        await store.save(records)
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        await _publisher(quiet_logger, store=store).publish(records, client)
        assert await store.load() is None


class TestPacing:
    @pytest.mark.asyncio
    async def test_waits_between_units(self, quiet_logger: StructuredLogger) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        publisher = _publisher(quiet_logger, broadcast_interval_ms=20)

        start = time.perf_counter()
        await publisher.publish(make_records(3), client)
        elapsed = time.perf_counter() - start

        assert elapsed >= 4 * 0.02 * 0.9

    @pytest.mark.asyncio
    async def test_progress_reports_every_unit(self, quiet_logger: StructuredLogger) -> None:
        client = FakeLedgerClient(frontiers=[FRESH_FRONTIER])
        seen: list[tuple[int, int]] = []
        await _publisher(quiet_logger).publish(
            make_records(2),
            client,
            on_progress=lambda sent, total: seen.append((sent, total)),
        )
        assert seen == [(1, 3), (2, 3), (3, 3)]
