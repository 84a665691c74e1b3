"""
Subtangle Quick Start Example

Demonstrates one full run against an in-memory ledger:
  1. Configure the run
  2. Build a subtangle on top of the (fake) network frontier
  3. Publish it, closing the loop back to the network
  4. Inspect the report
"""

import asyncio
import hashlib
import tempfile
from pathlib import Path

from subtangle.core.builder import BuilderConfig
from subtangle.core.generator import GeneratorConfig, SubtangleGenerator
from subtangle.core.publisher import PublisherConfig
from subtangle.core.records import FrontierReference, Record
from subtangle.execution.checkpointing import CheckpointConfig


# -- A ledger that lives in memory -------------------------------------------

class MemoryLedger:
    """Accepts every record and hashes it from its parents and position."""

    def __init__(self) -> None:
        self.records: dict[str, Record] = {}
        self.broadcast: list[str] = []

    async def get_frontier(self, depth: int) -> FrontierReference:
        return FrontierReference(trunk="GENESIS_TRUNK", branch="GENESIS_BRANCH")

    async def prepare_transfer(self, tag: str) -> list[str]:
        return [tag]

    async def attach(self, trunk, branch, prepared, min_weight_magnitude):
        seed = f"{trunk}:{branch}:{len(self.records)}".encode()
        digest = hashlib.sha256(seed).hexdigest()[:16].upper()
        record = Record(hash=digest, trunk=trunk, branch=branch, tag=prepared[0], trytes=digest)
        self.records[digest] = record
        return [record]

    def to_wire(self, records):
        return [r.trytes for r in records]

    async def submit(self, unit: str) -> None:
        self.broadcast.append(unit)


# -- Main --------------------------------------------------------------------

async def main() -> None:
    workdir = Path(tempfile.mkdtemp())

    # 1. Configure
    config = GeneratorConfig(
        tag="QUICKSTART",
        builder=BuilderConfig(target_count=25, window_width=5, seed=42),
        publisher=PublisherConfig(broadcast_interval_ms=1),
        checkpoint=CheckpointConfig(path=str(workdir / "subtangle.snap")),
    )
    ledger = MemoryLedger()

    # 2 + 3. Build and publish
    generator = SubtangleGenerator(config, ledger)
    result = await generator.run()

    # 4. Inspect
    print(f"Mode:        {result.mode.value}")
    print(f"Built:       {result.built} records")
    print(f"Published:   {result.published} units")
    print(f"Closing:     {result.report.closing_record.hash}")
    print(f"  trunk  ->  {result.report.closing_record.trunk}")
    print(f"  branch ->  {result.report.closing_record.branch}")
    print(f"Attempts:    {result.report.metrics.total_attempts}")


if __name__ == "__main__":
    asyncio.run(main())
