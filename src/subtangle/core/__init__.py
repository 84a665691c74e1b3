"""Core pipeline: records, builder, publisher and run orchestration."""

from subtangle.core.builder import SubtangleBuilder
from subtangle.core.generator import SubtangleGenerator
from subtangle.core.publisher import Publisher
from subtangle.core.records import FrontierReference, Record

__all__ = [
    "FrontierReference",
    "Publisher",
    "Record",
    "SubtangleBuilder",
    "SubtangleGenerator",
]
