"""Execution support: checkpointing and cooperative interruption."""

from subtangle.execution.checkpointing import CheckpointStore
from subtangle.execution.interrupt import InterruptSignal, listen_for_keypress

__all__ = [
    "CheckpointStore",
    "InterruptSignal",
    "listen_for_keypress",
]
