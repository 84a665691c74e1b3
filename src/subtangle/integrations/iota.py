"""
IOTA node integration via PyOTA.

Wraps the synchronous PyOTA ``Iota`` API behind the async LedgerClient
protocol. Every network call runs in a worker thread so the event loop
stays responsive while a node performs proof-of-work.

Transfers are zero-value and anonymous: the all-nines seed sends nothing
to the all-nines address, so no inputs or signatures are involved.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from subtangle.core.records import FrontierReference, Record
from subtangle.exceptions import LedgerClientError

if TYPE_CHECKING:
    from collections.abc import Sequence


EMPTY_SEED = "9" * 81
EMPTY_ADDRESS = "9" * 81


class IotaLedgerClient:
    """
    LedgerClient backed by an IOTA node.

    Args:
        node: Node URI, e.g. ``https://nodes.example.org:14265``.
        local_pow: Perform proof-of-work locally instead of on the node.
        api: Pre-built PyOTA API object. Created for ``node`` if omitted.
    """

    def __init__(self, node: str, local_pow: bool = False, api: Any = None) -> None:
        self._node = node
        self._local_pow = local_pow
        if api is None:
            from iota import Iota

            api = Iota(node, seed=EMPTY_SEED.encode("ascii"), local_pow=local_pow)
        self._api = api

    @property
    def node(self) -> str:
        return self._node

    async def get_frontier(self, depth: int) -> FrontierReference:
        response = await self._call("get_transactions_to_approve", depth=depth)
        return FrontierReference(
            trunk=str(response["trunkTransaction"]),
            branch=str(response["branchTransaction"]),
        )

    async def prepare_transfer(self, tag: str) -> list[str]:
        from iota import Address, ProposedTransaction, Tag

        transfer = ProposedTransaction(
            address=Address(EMPTY_ADDRESS.encode("ascii")),
            value=0,
            tag=Tag(tag.encode("ascii")),
        )
        response = await self._call("prepare_transfer", transfers=[transfer])
        return [str(trytes) for trytes in response["trytes"]]

    async def attach(
        self,
        trunk: str,
        branch: str,
        prepared: list[str],
        min_weight_magnitude: int,
    ) -> list[Record]:
        from iota import TransactionHash, TransactionTrytes

        response = await self._call(
            "attach_to_tangle",
            trunk_transaction=TransactionHash(trunk.encode("ascii")),
            branch_transaction=TransactionHash(branch.encode("ascii")),
            trytes=[TransactionTrytes(t.encode("ascii")) for t in prepared],
            min_weight_magnitude=min_weight_magnitude,
        )
        return [self._to_record(str(trytes)) for trytes in response["trytes"]]

    def to_wire(self, records: Sequence[Record]) -> list[str]:
        return [record.trytes for record in records]

    async def submit(self, unit: str) -> None:
        from iota import TransactionTrytes

        await self._call(
            "broadcast_transactions",
            trytes=[TransactionTrytes(unit.encode("ascii"))],
        )

    async def _call(self, method: str, **kwargs: Any) -> dict[str, Any]:
        """Run a blocking PyOTA command in a worker thread."""
        try:
            return await asyncio.to_thread(getattr(self._api, method), **kwargs)
        except (ValueError, OSError) as e:
            raise LedgerClientError(f"{method} failed on {self._node}: {e}") from e

    @staticmethod
    def _to_record(trytes: str) -> Record:
        from iota import Transaction

        tx = Transaction.from_tryte_string(trytes.encode("ascii"))
        return Record(
            hash=str(tx.hash),
            trunk=str(tx.trunk_transaction_hash),
            branch=str(tx.branch_transaction_hash),
            tag=str(tx.tag).rstrip("9"),
            trytes=trytes,
        )
