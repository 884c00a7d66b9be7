# pumpfind/ports/rpc.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import ParsedTransaction
from ..domain.value_types import Signature


class LedgerRPC(Protocol):
    """Port defining the contract for a Solana JSON-RPC client."""

    async def get_signatures_for_address(
        self,
        account: str,
        *,
        before: Signature | None,
        limit: int,
    ) -> list[Signature]:
        """Return up to `limit` signatures, newest first, strictly older than `before` when given."""

    async def get_parsed_transaction(self, signature: Signature) -> ParsedTransaction | None:
        """Return the transaction's log messages and block time, or None if the node has no record."""
