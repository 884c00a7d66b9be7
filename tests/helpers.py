"""Payload builders and an in-memory ledger for the pipeline tests."""
import asyncio
import base64

from solders.pubkey import Pubkey

from pumpfind.domain.decoding import PUMP_PROGRAM_ID
from pumpfind.domain.models import ParsedTransaction
from pumpfind.domain.value_types import Signature

CREATE_DISCRIMINATOR = bytes([27, 114, 169, 77, 222, 235, 99, 118])
SUCCESS_LINE = f"Program {PUMP_PROGRAM_ID} success"


def make_key(tail: str, lead: str = "3") -> str:
    """44-char base58 string ending in `tail` that decodes to exactly 32 bytes."""
    return lead + "A" * (43 - len(tail)) + tail


def lp_str(s: str) -> bytes:
    raw = s.encode("utf-8")
    return bytes([len(raw), 0, 0, 0]) + raw


def build_payload(
    name="Doge Pump", symbol="DPUMP", uri="https://ipfs.io/ipfs/Qm123",
    mint=None, curve=None, user=None, discriminator=CREATE_DISCRIMINATOR,
) -> bytes:
    mint = mint or make_key("Mpump")
    curve = curve or make_key("Curve", lead="4")
    user = user or make_key("User", lead="5")
    return (
        discriminator
        + lp_str(name) + lp_str(symbol) + lp_str(uri)
        + bytes(Pubkey.from_string(mint))
        + bytes(Pubkey.from_string(curve))
        + bytes(Pubkey.from_string(user))
    )


def data_line(payload: bytes) -> str:
    return "Program data: " + base64.b64encode(payload).decode("ascii")


def mint_logs(payload: bytes) -> list[str]:
    return [
        f"Program {PUMP_PROGRAM_ID} invoke [1]",
        "Program log: Instruction: Create",
        SUCCESS_LINE,
        data_line(payload),
        "Program ComputeBudget111111111111111111111111111111 success",
    ]


def noise_logs() -> list[str]:
    return [
        "Program 11111111111111111111111111111111 invoke [1]",
        "Program 11111111111111111111111111111111 success",
    ]


class FakeLedger:
    """
    Newest-first signature history plus scripted getTransaction answers.

    `txs[sig]` is either one answer or a list of answers consumed one per call;
    an answer is a ParsedTransaction, None, or an Exception instance to raise.
    """

    def __init__(self, history, txs=None, *, delay: float = 0.0):
        self.history = [Signature(s) for s in history]
        self.txs = dict(txs or {})
        self.delay = delay
        self.page_calls: list[tuple[str | None, int]] = []
        self.tx_calls: dict[str, int] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_signatures_for_address(self, account, *, before, limit):
        self.page_calls.append((before, limit))
        start = self.history.index(before) + 1 if before else 0
        return self.history[start:start + limit]

    async def get_parsed_transaction(self, signature):
        self.tx_calls[signature] = self.tx_calls.get(signature, 0) + 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            answer = self.txs.get(signature)
            if isinstance(answer, list):
                answer = answer.pop(0) if len(answer) > 1 else answer[0]
            if isinstance(answer, Exception):
                raise answer
            return answer
        finally:
            self.in_flight -= 1


def tx(logs, block_time=1_700_000_000):
    return ParsedTransaction(log_messages=tuple(logs) if logs is not None else None, block_time=block_time)


class RecordingSink:
    def __init__(self):
        self.batches: dict[int, list] = {}

    async def write_batch(self, batch_index, records):
        self.batches[batch_index] = list(records)
