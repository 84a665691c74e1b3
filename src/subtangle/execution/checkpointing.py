"""
Subtangle checkpointing for crash recovery.

Attaching a record costs a proof-of-work round trip, so a built subtangle
is written to disk before publication starts. If the publisher dies the
next run finds the checkpoint and publishes the saved fragment instead of
building a new one. Properties:

    - A single checkpoint at a fixed path
    - Whole-file replacement on save (temp file + rename)
    - Missing file means "nothing to resume"
    - Undecodable file is corruption and is fatal
"""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from subtangle.core.records import Record
from subtangle.exceptions import CheckpointCorruptError
from subtangle.observability.logging import StructuredLogger

if TYPE_CHECKING:
    from subtangle.core.records import Subtangle


SNAPSHOT_FORMAT_VERSION = 1


class Snapshot(BaseModel):
    """On-disk representation of a checkpointed subtangle."""

    format_version: int = SNAPSHOT_FORMAT_VERSION
    created_at: float = Field(default_factory=time.time)
    records: list[Record] = Field(default_factory=list)


class CheckpointConfig(BaseModel):
    """Configuration for the checkpoint store."""

    model_config = ConfigDict(frozen=True)

    path: str = "./subtangle.snap"


class CheckpointStore:
    """
    Persists one subtangle at a fixed location.

    At most one checkpoint exists at a time. Its presence at startup
    means a previously built fragment was never published.

    Args:
        config: Checkpoint configuration.
        logger: Optional logger; a default one is created if omitted.
    """

    def __init__(
        self,
        config: CheckpointConfig | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._config = config or CheckpointConfig()
        self._path = Path(self._config.path)
        self._log = (logger or StructuredLogger("subtangle.checkpoint")).bind(
            checkpoint=str(self._path)
        )

    @property
    def config(self) -> CheckpointConfig:
        return self._config

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> Subtangle | None:
        """
        Load the checkpointed subtangle.

        Returns:
            The saved records in order, or None if no checkpoint exists.

        Raises:
            CheckpointCorruptError: If the file cannot be read or decoded.
        """
        if not self._path.exists():
            return None

        try:
            raw = self._path.read_bytes()
            snapshot = Snapshot.model_validate_json(raw)
        except (OSError, ValidationError, UnicodeDecodeError) as e:
            raise CheckpointCorruptError(
                f"Checkpoint {self._path} is unreadable: {e}"
            ) from e

        if snapshot.format_version != SNAPSHOT_FORMAT_VERSION:
            raise CheckpointCorruptError(
                f"Checkpoint {self._path} has unsupported format "
                f"version {snapshot.format_version}"
            )

        self._log.info("Loaded checkpoint", records=len(snapshot.records))
        return list(snapshot.records)

    async def save(self, subtangle: Subtangle) -> bool:
        """
        Replace any existing checkpoint with the given subtangle.

        A write failure is logged and reported, never raised: the caller
        still holds the records in memory and can publish them.

        Returns:
            True if the checkpoint was written.
        """
        payload = Snapshot(records=list(subtangle)).model_dump_json().encode()

        tmp_name: str | None = None
        try:
            self._path.unlink(missing_ok=True)
            if not subtangle:
                self._log.debug("Empty subtangle, nothing to checkpoint")
                return False

            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=self._path.parent
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as e:
            self._log.error("Unable to write checkpoint", error=str(e))
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return False

        self._log.info("Saved checkpoint", records=len(subtangle))
        return True

    async def clear(self) -> None:
        """Remove the checkpoint if present."""
        self._path.unlink(missing_ok=True)
