# pumpfind/ports/storage.py
from __future__ import annotations

from typing import Protocol, Sequence
from ..domain.models import BatchResult, Resolved


class BatchSink(Protocol):
    """Port for persisting one batch of resolved records (e.g., JSON or Parquet)."""

    async def write_batch(self, batch_index: int, records: Sequence[Resolved]) -> None:
        """Persist the records of batch `batch_index` as one document."""


class ManifestSink(Protocol):
    """Port for recording how each batch of a run ended (e.g., JSONL manifest)."""

    async def record(self, batch: BatchResult, *, signatures: int, error: str | None = None) -> None:
        """Record one batch outcome; `error` marks a batch whose sink write failed."""
