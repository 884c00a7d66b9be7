from __future__ import annotations
import asyncio, itertools, logging, httpx
from typing import Any
from ..domain.models import ParsedTransaction
from ..domain.value_types import Signature
from ..ports.rpc import LedgerRPC

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"


class RPCError(RuntimeError):
    """JSON-RPC level error (response carried an `error` member) or exhausted rate-limit retries."""


def _parse_transaction(res: Any) -> ParsedTransaction | None:
    if not isinstance(res, dict):
        return None
    meta = res.get("meta") or {}
    logs = meta.get("logMessages")
    # some providers echo blockTime inside meta
    bt = res.get("blockTime", meta.get("blockTime"))
    return ParsedTransaction(
        log_messages=tuple(logs) if isinstance(logs, list) else None,
        block_time=int(bt) if isinstance(bt, (int, float)) else None,
    )


class HttpxSolanaRPC(LedgerRPC):
    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        *,
        timeout_s: float = 20,
        max_conn: int = 64,
        commitment: str = "confirmed",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._ids = itertools.count(1)
        self.client = client or httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
        )

    async def __aenter__(self) -> "HttpxSolanaRPC":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc":"2.0","id":next(self._ids),"method":method,"params":params}
        # retry on 429 with simple backoff
        for attempt in range(3):
            r = await self.client.post(self.rpc_url, json=payload)
            if r.status_code == 429:
                ra = r.headers.get("Retry-After")
                delay = max(1.0, float(ra)) if ra and ra.isdigit() else (1.0 * (2**attempt))
                logger.debug("%s rate limited, sleeping %.1fs", method, delay)
                await asyncio.sleep(delay); continue
            r.raise_for_status()
            data = r.json()
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    raise RPCError(f"{method} RPC error code={err.get('code')} message={err.get('message')}")
                raise RPCError(f"{method} RPC error: {err}")
            return data.get("result")
        raise RPCError(f"Retries exhausted for {method}")

    async def get_signatures_for_address(
        self, account: str, *, before: Signature | None, limit: int,
    ) -> list[Signature]:
        opts: dict[str, Any] = {"limit": int(limit), "commitment": self.commitment}
        if before:
            opts["before"] = str(before)
        res = await self._call("getSignaturesForAddress", [account, opts])
        return [Signature(s["signature"]) for s in (res or [])]

    async def get_parsed_transaction(self, signature: Signature) -> ParsedTransaction | None:
        opts = {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0, "commitment": self.commitment}
        res = await self._call("getTransaction", [str(signature), opts])
        return _parse_transaction(res)
