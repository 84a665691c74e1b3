"""
Ledger client interface.

The builder and publisher never talk to the network directly. They depend
on this protocol, which a concrete client (see ``integrations.iota``)
implements against a real node and tests implement in memory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from subtangle.exceptions import LedgerClientError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from subtangle.core.records import FrontierReference, Record

    Linker = Callable[[str, str], Awaitable[Record]]


@runtime_checkable
class LedgerClient(Protocol):
    """Operations the subtangle pipeline needs from a ledger node."""

    async def get_frontier(self, depth: int) -> FrontierReference:
        """Return two current tips to approve."""
        ...

    async def prepare_transfer(self, tag: str) -> list[str]:
        """Prepare an unattached zero-value transfer carrying ``tag``."""
        ...

    async def attach(
        self,
        trunk: str,
        branch: str,
        prepared: list[str],
        min_weight_magnitude: int,
    ) -> list[Record]:
        """Attach a prepared transfer to the given parents."""
        ...

    def to_wire(self, records: Sequence[Record]) -> list[str]:
        """Convert records to their broadcastable form, preserving order."""
        ...

    async def submit(self, unit: str) -> None:
        """Broadcast one wire unit. Raises LedgerClientError on failure."""
        ...


def make_linker(
    client: LedgerClient,
    tag: str,
    min_weight_magnitude: int,
) -> Linker:
    """
    Build the link function used by the subtangle builder.

    Each call prepares a fresh tagged transfer and attaches it to the
    given trunk and branch. When the client returns several records for
    one attach, the first is the one linked to the requested parents.
    """

    async def link(trunk: str, branch: str) -> Record:
        prepared = await client.prepare_transfer(tag)
        attached = await client.attach(trunk, branch, prepared, min_weight_magnitude)
        if not attached:
            raise LedgerClientError("attach returned no records")
        return attached[0]

    return link
