"""
Shape benchmark: how the window width changes the subtangle.

For each window width, builds subtangles against an in-memory ledger and
reports:
  - Records per second through the builder
  - Tips left behind (records nobody approves)
  - Mean parent distance (how far back records reach)
"""

import asyncio
import time

import numpy as np

from subtangle.core.builder import BuilderConfig, SubtangleBuilder
from subtangle.core.records import FrontierReference, Record
from subtangle.observability.logging import LogConfig, StructuredLogger


FRONTIER = FrontierReference(trunk="T", branch="B")


def make_link():
    counter = {"n": 0}

    async def link(trunk: str, branch: str) -> Record:
        counter["n"] += 1
        return Record(hash=f"R{counter['n']}", trunk=trunk, branch=branch)

    return link


def analyze(subtangle: list[Record]) -> tuple[int, float]:
    position = {r.hash: i for i, r in enumerate(subtangle)}
    approved: set[str] = set()
    distances = []
    for i, record in enumerate(subtangle[1:], start=1):
        for parent in record.parents:
            approved.add(parent)
            distances.append(i - position[parent])
    tips = sum(1 for r in subtangle if r.hash not in approved)
    return tips, float(np.mean(distances)) if distances else 0.0


async def bench(window: int, size: int, runs: int) -> dict[str, float]:
    logger = StructuredLogger("subtangle.bench", LogConfig(level="ERROR"))
    rates, tips, reach = [], [], []
    for seed in range(runs):
        builder = SubtangleBuilder(
            BuilderConfig(target_count=size, window_width=window, seed=seed),
            logger=logger,
        )
        start = time.perf_counter()
        subtangle = await builder.build(make_link(), FRONTIER)
        rates.append(size / (time.perf_counter() - start))
        t, d = analyze(subtangle)
        tips.append(t)
        reach.append(d)
    return {
        "records_per_s": float(np.mean(rates)),
        "tips": float(np.mean(tips)),
        "mean_distance": float(np.mean(reach)),
    }


async def main() -> None:
    size, runs = 2_000, 5
    print(f"{'window':>8} {'rec/s':>12} {'tips':>8} {'distance':>10}")
    print("-" * 42)
    for window in (1, 2, 5, 10, 30, 100):
        r = await bench(window, size, runs)
        print(
            f"{window:>8} {r['records_per_s']:>12.0f} "
            f"{r['tips']:>8.1f} {r['mean_distance']:>10.2f}"
        )


if __name__ == "__main__":
    asyncio.run(main())
