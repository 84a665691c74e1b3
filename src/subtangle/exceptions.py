"""Exceptions that abort a generation run."""

from __future__ import annotations


class SubtangleError(Exception):
    """Base class for fatal subtangle errors."""


class CheckpointCorruptError(SubtangleError):
    """The checkpoint file exists but cannot be decoded."""


class LedgerClientError(SubtangleError):
    """A call to the ledger network failed."""


class EmptySubtangleError(SubtangleError):
    """A subtangle with no records cannot be closed or published."""
