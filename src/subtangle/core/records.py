"""
Ledger record types shared by the builder, publisher and checkpoint store.

Records are created only by the ledger client in response to an attach
request and never change afterwards. A subtangle is simply the ordered
list of records in the order they were attached, which is also their
causal order.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """A single attached ledger record."""

    model_config = ConfigDict(frozen=True)

    hash: str
    trunk: str
    branch: str
    tag: str = ""
    trytes: str = ""

    @property
    def parents(self) -> tuple[str, str]:
        return (self.trunk, self.branch)


class FrontierReference(BaseModel):
    """Two unapproved tips reported by the network."""

    model_config = ConfigDict(frozen=True)

    trunk: str
    branch: str

    @property
    def tips(self) -> tuple[str, str]:
        return (self.trunk, self.branch)


# Ordered, indexable, append-only during construction.
Subtangle = list[Record]
