"""Ledger network integrations."""

from subtangle.integrations.base import LedgerClient, make_linker

__all__ = [
    "LedgerClient",
    "make_linker",
]
