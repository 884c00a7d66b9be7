from __future__ import annotations
from dataclasses import dataclass, field
from typing import Union
from .value_types import Base58, BatchStatus, Signature


@dataclass(slots=True, frozen=True)
class LogMarkers:
    success_line: str       # "Program <program id> success"
    data_prefix: str        # "Program data: <leading base64 chars>"

    @classmethod
    def for_program(cls, program_id: str, data_prefix: str) -> "LogMarkers":
        return cls(success_line=f"Program {program_id} success", data_prefix=data_prefix)


@dataclass(slots=True, frozen=True)
class MintEvent:
    name: str
    symbol: str
    uri: str
    mint_address: Base58
    bonding_curve: Base58
    user: Base58
    discriminator: Base58 = Base58("")

    def to_json(self) -> dict[str, str]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "mint": self.mint_address,
            "bondingCurve": self.bonding_curve,
            "user": self.user,
        }


@dataclass(slots=True, frozen=True)
class ParsedTransaction:
    log_messages: tuple[str, ...] | None
    block_time: int | None          # seconds since epoch


# ---- per-signature outcomes ----

@dataclass(slots=True, frozen=True)
class Resolved:
    signature: Signature
    token_address: Base58
    timestamp: str | None           # ISO-8601, UTC, "Z" suffix

    def to_json(self) -> dict[str, str | None]:
        return {"signature": self.signature, "tokenAddress": self.token_address, "timestamp": self.timestamp}


@dataclass(slots=True, frozen=True)
class Skipped:
    signature: Signature


@dataclass(slots=True, frozen=True)
class Failed:
    signature: Signature
    attempts: int
    error: str | None = None


FetchOutcome = Union[Resolved, Skipped, Failed]


# ---- batches & aggregates ----

@dataclass(slots=True, frozen=True)
class BatchResult:
    index: int                      # 1-based
    records: tuple[Resolved, ...]   # timestamp-ascending, timestamp present
    matching: tuple[Resolved, ...]  # subset of records ending with the match suffix
    skipped: int
    failed: tuple[Failed, ...]

    @property
    def oldest_matching(self) -> Resolved | None:
        return self.matching[0] if self.matching else None


@dataclass(slots=True)
class RunningAggregate:
    total_matching: int = 0
    total_resolved: int = 0
    total_skipped: int = 0
    total_failed: int = 0
    batches: int = 0
    oldest_matching: Resolved | None = None
    failed_signatures: list[Signature] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class BatchRec:
    batch_index: int
    status: BatchStatus
    signatures: int
    resolved: int = 0
    skipped: int = 0
    failed: int = 0
    matching: int = 0
    oldest_matching: str | None = None
    failed_signatures: tuple[str, ...] = ()
    error: str | None = None
    updated_at: float = 0.0

    @classmethod
    def from_batch(cls, batch: BatchResult, *, signatures: int, error: str | None = None,
                   updated_at: float = 0.0) -> "BatchRec":
        oldest = batch.oldest_matching
        return cls(
            batch_index=batch.index,
            status="failed" if error else "done",
            signatures=signatures,
            resolved=len(batch.records),
            skipped=batch.skipped,
            failed=len(batch.failed),
            matching=len(batch.matching),
            oldest_matching=f"{oldest.token_address}@{oldest.timestamp}" if oldest else None,
            failed_signatures=tuple(f.signature for f in batch.failed),
            error=error,
            updated_at=updated_at,
        )
