from __future__ import annotations
import asyncio, os, pyarrow as pa, pyarrow.parquet as pq
from typing import Sequence

from ..domain.timestamps import iso_to_datetime
from ..domain.models import Resolved
from ..ports.storage import BatchSink

BATCH_SCHEMA = pa.schema([
    pa.field("signature",     pa.string()),
    pa.field("token_address", pa.string()),
    pa.field("timestamp",     pa.string()),
    pa.field("block_time",    pa.timestamp("ms", tz="UTC")),
])

def _records_to_table(records: Sequence[Resolved]) -> pa.Table:
    recs = list(records)
    return pa.Table.from_arrays(
        arrays=[
            pa.array([r.signature for r in recs], pa.string()),
            pa.array([r.token_address for r in recs], pa.string()),
            pa.array([r.timestamp for r in recs], pa.string()),
            pa.array([iso_to_datetime(r.timestamp) if r.timestamp else None for r in recs],
                     BATCH_SCHEMA.field("block_time").type),
        ],
        schema=BATCH_SCHEMA,
    )

class ParquetBatchSink(BatchSink):
    def __init__(self, out_dir: str, codec: str = "zstd") -> None:
        self.out_dir = out_dir
        self.codec = codec
        os.makedirs(self.out_dir, exist_ok=True)

    def path(self, batch_index: int) -> str:
        return os.path.join(self.out_dir, f"batch_{batch_index}.parquet")

    async def write_batch(self, batch_index: int, records: Sequence[Resolved]) -> None:
        table = _records_to_table(records)
        await asyncio.to_thread(self._write, table, self.path(batch_index))

    def _write(self, table: pa.Table, path: str) -> None:
        tmp = path + ".tmp"
        pq.write_table(table, tmp, compression=self.codec)
        os.replace(tmp, path)
