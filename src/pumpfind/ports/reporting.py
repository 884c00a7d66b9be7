# pumpfind/ports/reporting.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import BatchResult, FetchOutcome, RunningAggregate


class ProgressReporter(Protocol):
    """Port for operator-facing progress (console, dashboards)."""

    def signatures_collected(self, collected: int, target: int) -> None: ...

    def batch_started(self, index: int, total_batches: int, size: int) -> None: ...

    def transaction_done(self, outcome: FetchOutcome) -> None: ...

    def batch_done(self, batch: BatchResult, total_batches: int, aggregate: RunningAggregate) -> None: ...

    def finished(self, aggregate: RunningAggregate) -> None: ...
