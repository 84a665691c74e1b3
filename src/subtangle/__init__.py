"""
Subtangle -- synthetic subtangle generator for IOTA-style tangles.

Builds a chain of linked records anchored to the live network frontier
using windowed-random tip selection, checkpoints it, and broadcasts it
back to the network in causal order.
"""

from subtangle.core.builder import BuilderConfig, SubtangleBuilder
from subtangle.core.generator import GeneratorConfig, RunMode, SubtangleGenerator
from subtangle.core.publisher import Publisher, PublisherConfig, PublishReport
from subtangle.core.records import FrontierReference, Record, Subtangle
from subtangle.execution.checkpointing import CheckpointStore

__version__ = "0.1.0"

__all__ = [
    "BuilderConfig",
    "CheckpointStore",
    "FrontierReference",
    "GeneratorConfig",
    "PublishReport",
    "Publisher",
    "PublisherConfig",
    "Record",
    "RunMode",
    "Subtangle",
    "SubtangleBuilder",
    "SubtangleGenerator",
    "__version__",
]
