from __future__ import annotations
import asyncio, json, os
from typing import Sequence

from ..domain.models import Resolved
from ..ports.storage import BatchSink


class JSONBatchSink(BatchSink):
    """Writes `batch_<n>.json`: a pretty-printed array of {signature, tokenAddress, timestamp}."""

    def __init__(self, out_dir: str) -> None:
        self.out_dir = out_dir
        os.makedirs(self.out_dir, exist_ok=True)

    def path(self, batch_index: int) -> str:
        return os.path.join(self.out_dir, f"batch_{batch_index}.json")

    async def write_batch(self, batch_index: int, records: Sequence[Resolved]) -> None:
        body = json.dumps([r.to_json() for r in records], indent=2)
        await asyncio.to_thread(self._write, self.path(batch_index), body)

    @staticmethod
    def _write(path: str, body: str) -> None:
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(body)
        os.replace(tmp, path)
