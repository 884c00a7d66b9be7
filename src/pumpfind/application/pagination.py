from __future__ import annotations
import logging
from typing import Callable

from ..domain.value_types import Signature
from ..ports.rpc import LedgerRPC

logger = logging.getLogger(__name__)


async def collect_signatures(
    rpc: LedgerRPC,
    account: str,
    *,
    start_before: Signature | None,
    target: int,
    page_size: int = 1000,
    on_page: Callable[[int, int], None] | None = None,
) -> list[Signature]:
    """Page backward from `start_before` until `target` signatures are collected or history runs out."""
    before = start_before
    out: list[Signature] = []
    while len(out) < target:
        limit = min(page_size, target - len(out))
        sigs = await rpc.get_signatures_for_address(account, before=before, limit=limit)
        if not sigs:
            logger.info("signature history exhausted at %d/%d", len(out), target)
            break
        sigs = sigs[:limit]
        out.extend(sigs)
        before = sigs[-1]
        if on_page is not None:
            on_page(len(out), target)
    return out
