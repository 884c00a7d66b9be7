from __future__ import annotations
import asyncio, json, os, time
from dataclasses import asdict

from ..domain.models import BatchRec, BatchResult
from ..ports.storage import ManifestSink


class JSONLManifest(ManifestSink):
    """One compact JSON line per batch: counts, oldest match, failed signatures, status."""

    def __init__(self, path: str) -> None:
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._lock = asyncio.Lock()

    async def record(self, batch: BatchResult, *, signatures: int, error: str | None = None) -> None:
        rec = BatchRec.from_batch(batch, signatures=signatures, error=error, updated_at=time.time())
        line = json.dumps(asdict(rec), separators=(",", ":")) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append_line, line)

    def _append_line(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
