from __future__ import annotations
import os
import logging
from typing import Sequence

import httpx

from ..adapters.json_sink import JSONBatchSink
from ..adapters.manifest_jsonl import JSONLManifest
from ..adapters.parquet_sink import ParquetBatchSink
from ..adapters.rpc_httpx import HttpxSolanaRPC
from ..config import Settings
from ..domain.decoding import DEFAULT_MARKERS
from ..domain.timestamps import iso_to_datetime
from ..domain.models import (
    BatchResult, Failed, FetchOutcome, LogMarkers, Resolved, RunningAggregate, Skipped,
)
from ..domain.value_types import Signature
from ..ports.reporting import ProgressReporter
from ..ports.rpc import LedgerRPC
from ..ports.storage import BatchSink, ManifestSink
from .concurrency import run_bounded
from .fetching import MAX_ATTEMPTS, RETRY_DELAY_S, fetch_transaction
from .pagination import collect_signatures
from .planning import plan_slices

logger = logging.getLogger(__name__)


def classify_batch(index: int, outcomes: Sequence[FetchOutcome], match_suffix: str) -> BatchResult:
    """Partition one slice's outcomes, sort resolved records by timestamp, pick out suffix matches."""
    resolved = [o for o in outcomes if isinstance(o, Resolved) and o.timestamp is not None]
    resolved.sort(key=lambda r: iso_to_datetime(r.timestamp))   # stable: ties keep completion order
    return BatchResult(
        index=index,
        records=tuple(resolved),
        matching=tuple(r for r in resolved if r.token_address.endswith(match_suffix)),
        skipped=sum(1 for o in outcomes if isinstance(o, Skipped)),
        failed=tuple(o for o in outcomes if isinstance(o, Failed)),
    )


def absorb(agg: RunningAggregate, batch: BatchResult) -> None:
    agg.batches += 1
    agg.total_resolved += len(batch.records)
    agg.total_skipped += batch.skipped
    agg.total_failed += len(batch.failed)
    agg.total_matching += len(batch.matching)
    agg.failed_signatures.extend(f.signature for f in batch.failed)

    cand = batch.oldest_matching
    if cand is None:
        return
    cur = agg.oldest_matching
    if cur is None or iso_to_datetime(cand.timestamp) < iso_to_datetime(cur.timestamp):
        agg.oldest_matching = cand


async def process_batch(
    *,
    rpc: LedgerRPC,
    index: int,
    signatures: Sequence[Signature],
    concurrency: int,
    match_suffix: str,
    markers: LogMarkers = DEFAULT_MARKERS,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay_s: float = RETRY_DELAY_S,
    reporter: ProgressReporter | None = None,
) -> BatchResult:
    async def op(sig: Signature) -> FetchOutcome:
        out = await fetch_transaction(
            rpc, sig, markers=markers, max_attempts=max_attempts, retry_delay_s=retry_delay_s,
        )
        if reporter is not None:
            reporter.transaction_done(out)
        return out

    outcomes = await run_bounded(signatures, op, concurrency)
    return classify_batch(index, outcomes, match_suffix)


async def find_pump_tokens(
    *,
    rpc: LedgerRPC,
    sink: BatchSink,
    manifest: ManifestSink | None = None,
    reporter: ProgressReporter | None = None,
    account: str,
    start_before: Signature | None,
    total: int,
    page_size: int,
    batch_size: int,
    concurrency: int,
    match_suffix: str = "pump",
    markers: LogMarkers = DEFAULT_MARKERS,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay_s: float = RETRY_DELAY_S,
) -> RunningAggregate:
    """
    Collect `total` signatures older than `start_before`, then fetch/decode them slice by slice.
    Each slice is written to `sink` as one batch; totals and the oldest suffix match are returned.
    """
    on_page = reporter.signatures_collected if reporter is not None else None
    signatures = await collect_signatures(
        rpc, account, start_before=start_before, target=total, page_size=page_size, on_page=on_page,
    )
    logger.info("collected %d signatures for %s", len(signatures), account)

    agg = RunningAggregate()
    slices = plan_slices(len(signatures), batch_size)
    for n, (s, e) in enumerate(slices, start=1):
        chunk = signatures[s:e]
        if reporter is not None:
            reporter.batch_started(n, len(slices), len(chunk))

        batch = await process_batch(
            rpc=rpc, index=n, signatures=chunk, concurrency=concurrency, match_suffix=match_suffix,
            markers=markers, max_attempts=max_attempts, retry_delay_s=retry_delay_s, reporter=reporter,
        )
        # aggregation stays sequential: every worker of this slice has finished here
        absorb(agg, batch)

        try:
            await sink.write_batch(n, batch.records)
        except Exception as e:
            if manifest is not None:
                await manifest.record(batch, signatures=len(chunk), error=f"{type(e).__name__}: {e}")
            raise
        if manifest is not None:
            await manifest.record(batch, signatures=len(chunk))

        logger.info(
            "batch %d/%d: resolved=%d matching=%d skipped=%d failed=%d",
            n, len(slices), len(batch.records), len(batch.matching), batch.skipped, len(batch.failed),
        )
        if reporter is not None:
            reporter.batch_done(batch, len(slices), agg)

    if reporter is not None:
        reporter.finished(agg)
    return agg


async def scan_account(
    settings: Settings,
    reporter: ProgressReporter | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> RunningAggregate:
    """Wire the httpx RPC client and the configured sinks, then run the pipeline.

    `client` replaces the pooled HTTP/2 client built from `settings` (e.g. a mock transport).
    """
    sink: BatchSink = (
        ParquetBatchSink(settings.output_dir) if settings.output_format == "parquet"
        else JSONBatchSink(settings.output_dir)
    )
    manifest = JSONLManifest(settings.manifest) if settings.manifest else None
    if manifest is not None:
        logger.info("manifest: %s", os.path.abspath(manifest.path))

    async with HttpxSolanaRPC(
        settings.rpc_url, timeout_s=settings.timeout_s, max_conn=max(32, 2*settings.concurrency),
        client=client,
    ) as rpc:
        return await find_pump_tokens(
            rpc=rpc,
            sink=sink,
            manifest=manifest,
            reporter=reporter,
            account=settings.account,
            start_before=Signature(settings.start_before) if settings.start_before else None,
            total=settings.total,
            page_size=settings.page_size,
            batch_size=settings.batch_size,
            concurrency=settings.concurrency,
            match_suffix=settings.match_suffix,
            markers=settings.markers,
            max_attempts=settings.max_attempts,
            retry_delay_s=settings.retry_delay_s,
        )
