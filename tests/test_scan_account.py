import json

import httpx
import pyarrow.parquet as pq
import pytest

from pumpfind.adapters.rpc_httpx import RPCError
from pumpfind.application.use_cases import scan_account
from pumpfind.config import Settings

from helpers import build_payload, make_key, mint_logs, noise_logs

URL = "http://rpc.test"
PUMP_A = make_key("1pump")
PUMP_B = make_key("2pump")
PUMP_C = make_key("3pump")
OTHER = make_key("Token")


class MockLedgerNode:
    """Answers getSignaturesForAddress / getTransaction the way a Solana node does."""

    def __init__(self):
        self.history = [f"sig{i}" for i in range(6)]
        self.txs = {
            "sig0": (mint_logs(build_payload(mint=PUMP_A)), 1_700_000_300),
            "sig1": (noise_logs(), 1_700_000_250),
            "sig2": (mint_logs(build_payload(mint=OTHER)), 1_700_000_200),
            "sig3": (mint_logs(build_payload(mint=PUMP_B)), 1_700_000_100),
            # sig4: node never returns it
            "sig5": (mint_logs(build_payload(mint=PUMP_C)), 1_700_000_400),
        }
        self.pages: list[tuple[str | None, int]] = []
        self.tx_requests: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        if method == "getSignaturesForAddress":
            opts = params[1]
            before = opts.get("before")
            self.pages.append((before, opts["limit"]))
            start = self.history.index(before) + 1 if before else 0
            result = [{"signature": s, "slot": 1, "err": None} for s in self.history[start:start + opts["limit"]]]
        elif method == "getTransaction":
            sig = params[0]
            self.tx_requests[sig] = self.tx_requests.get(sig, 0) + 1
            found = self.txs.get(sig)
            result = None if found is None else {
                "blockTime": found[1], "slot": 1, "meta": {"err": None, "logMessages": found[0]},
            }
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                             "error": {"code": -32601, "message": "Method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def settings_for(tmp_path, **kw) -> Settings:
    return Settings(
        rpc_url=URL, start_before=None, total=6, page_size=4, batch_size=3, concurrency=2,
        output_dir=str(tmp_path / "out"), retry_delay_s=0, **kw,
    )


def assert_totals(agg):
    assert agg.batches == 2
    assert agg.total_resolved == 4
    assert agg.total_skipped == 1
    assert agg.total_failed == 1
    assert agg.total_matching == 3
    assert agg.failed_signatures == ["sig4"]
    assert agg.oldest_matching.signature == "sig3"
    assert agg.oldest_matching.token_address == PUMP_B
    assert agg.oldest_matching.timestamp == "2023-11-14T22:15:00.000Z"


@pytest.mark.asyncio
async def test_scan_writes_parquet_batches(tmp_path):
    node = MockLedgerNode()
    client = httpx.AsyncClient(transport=httpx.MockTransport(node))

    agg = await scan_account(settings_for(tmp_path, output_format="parquet"), client=client)

    assert_totals(agg)
    assert node.pages == [(None, 4), ("sig3", 2)]
    assert node.tx_requests["sig4"] == 3
    assert node.tx_requests["sig1"] == 1

    first = pq.read_table(tmp_path / "out" / "batch_1.parquet").to_pylist()
    assert [r["signature"] for r in first] == ["sig2", "sig0"]
    assert [r["token_address"] for r in first] == [OTHER, PUMP_A]
    second = pq.read_table(tmp_path / "out" / "batch_2.parquet").to_pylist()
    assert [r["signature"] for r in second] == ["sig3", "sig5"]
    assert second[0]["timestamp"] == "2023-11-14T22:15:00.000Z"
    assert not (tmp_path / "out" / "batch_3.parquet").exists()
    assert client.is_closed


@pytest.mark.asyncio
async def test_scan_writes_json_batches_and_manifest(tmp_path):
    node = MockLedgerNode()
    client = httpx.AsyncClient(transport=httpx.MockTransport(node))
    manifest = tmp_path / "runs" / "scan.jsonl"

    agg = await scan_account(
        settings_for(tmp_path, output_format="json", manifest=str(manifest)), client=client,
    )

    assert_totals(agg)
    second = json.loads((tmp_path / "out" / "batch_2.json").read_text())
    assert second == [
        {"signature": "sig3", "tokenAddress": PUMP_B, "timestamp": "2023-11-14T22:15:00.000Z"},
        {"signature": "sig5", "tokenAddress": PUMP_C, "timestamp": "2023-11-14T22:20:00.000Z"},
    ]

    recs = [json.loads(l) for l in manifest.read_text().splitlines()]
    assert [r["batch_index"] for r in recs] == [1, 2]
    assert all(r["status"] == "done" and r["signatures"] == 3 for r in recs)
    assert (recs[0]["resolved"], recs[0]["skipped"], recs[0]["matching"]) == (2, 1, 1)
    assert recs[0]["oldest_matching"] == f"{PUMP_A}@2023-11-14T22:18:20.000Z"
    assert recs[1]["failed_signatures"] == ["sig4"]
    assert recs[1]["oldest_matching"] == f"{PUMP_B}@2023-11-14T22:15:00.000Z"


@pytest.mark.asyncio
async def test_scan_surfaces_node_errors(tmp_path):
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                         "error": {"code": -32005, "message": "node is behind"}})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    with pytest.raises(RPCError, match="node is behind"):
        await scan_account(settings_for(tmp_path, output_format="json"), client=client)
    assert not (tmp_path / "out" / "batch_1.json").exists()
