from __future__ import annotations
import asyncio, logging

from ..domain.decoding import DEFAULT_MARKERS, process_mint_logs
from ..domain.models import Failed, FetchOutcome, LogMarkers, Resolved, Skipped
from ..domain.value_types import Signature
from ..ports.rpc import LedgerRPC
from ..domain.timestamps import block_time_to_iso

logger = logging.getLogger(__name__)

MAX_ATTEMPTS  = 3
RETRY_DELAY_S = 0.1


async def fetch_transaction(
    rpc: LedgerRPC,
    signature: Signature,
    *,
    markers: LogMarkers = DEFAULT_MARKERS,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay_s: float = RETRY_DELAY_S,
) -> FetchOutcome:
    """
    Fetch one transaction and classify it.

    Missing metadata/logs and RPC exceptions are retried with a fixed pause, up to
    `max_attempts` total calls; exhaustion yields Failed.
    """
    err: str | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            tx = await rpc.get_parsed_transaction(signature)
        except Exception as e:
            tx = None
            err = f"{type(e).__name__}: {e}"
        else:
            err = None if tx is not None and tx.log_messages is not None else "missing log messages"

        if tx is not None and tx.log_messages is not None:
            mint = process_mint_logs(tx.log_messages, markers)
            if mint is None or not mint.mint_address:
                return Skipped(signature)
            return Resolved(
                signature=signature,
                token_address=mint.mint_address,
                timestamp=block_time_to_iso(tx.block_time),
            )

        if attempt < max_attempts:
            logger.debug("%s attempt %d/%d failed (%s); retrying", signature, attempt, max_attempts, err)
            await asyncio.sleep(retry_delay_s)

    logger.warning("%s failed after %d attempts: %s", signature, max_attempts, err)
    return Failed(signature=signature, attempts=max_attempts, error=err)
