from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    Progress, BarColumn, TextColumn, TimeElapsedColumn,
    TimeRemainingColumn, MofNCompleteColumn, SpinnerColumn, TaskID,
)

from ..domain.models import BatchResult, Failed, FetchOutcome, RunningAggregate
from ..ports.reporting import ProgressReporter


class RichReporter(ProgressReporter):
    """Live progress bars plus per-batch and final summaries on a rich Console."""

    def __init__(self, console: Console | None = None, match_suffix: str = "pump") -> None:
        self.console = console or Console()
        self.suffix = match_suffix
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.fields[stage]}[/]"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            TextColumn("→"),
            TimeRemainingColumn(),
            TextColumn(" • {task.description}"),
            console=self.console,
            transient=True,
            expand=True,
        )
        self._sig_task: TaskID | None = None
        self._tx_task: TaskID | None = None

    def __enter__(self) -> "RichReporter":
        self.progress.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.progress.stop()

    # ---- signature collection ----
    def signatures_collected(self, collected: int, target: int) -> None:
        if self._sig_task is None:
            self._sig_task = self.progress.add_task("signatures", total=target, stage="fetching signatures")
        self.progress.update(self._sig_task, completed=collected)

    # ---- batches ----
    def batch_started(self, index: int, total_batches: int, size: int) -> None:
        if self._sig_task is not None:
            self.progress.remove_task(self._sig_task)
            self._sig_task = None
        if self._tx_task is not None:
            self.progress.remove_task(self._tx_task)
        self._tx_task = self.progress.add_task(
            f"batch {index}/{total_batches}", total=size, stage="decoding transactions",
        )

    def transaction_done(self, outcome: FetchOutcome) -> None:
        if self._tx_task is not None:
            self.progress.advance(self._tx_task, 1)

    def batch_done(self, batch: BatchResult, total_batches: int, aggregate: RunningAggregate) -> None:
        c = self.console
        c.print(f"\n[bold]📦 Batch {batch.index}/{total_batches}[/]")
        c.print(f"Pump tokens found: {len(batch.matching)}")
        oldest = batch.oldest_matching
        if oldest is not None:
            c.print(f"Oldest '{self.suffix}' CA: {oldest.token_address} at {oldest.timestamp}")
        else:
            c.print(f"No '{self.suffix}' token found in this batch.")
        if batch.skipped:
            c.print(f"[yellow]⛔ Skipped {batch.skipped} non-Pump.fun transactions[/]")
        if batch.failed:
            c.print(f"[red]✗ Failed {len(batch.failed)} transactions after retries[/]")
            for f in batch.failed[:5]:
                c.print(f"[dim]  {escape(describe_failure(f))}[/]")
        c.print(
            f"[dim]running: matching={aggregate.total_matching} resolved={aggregate.total_resolved} "
            f"skipped={aggregate.total_skipped} failed={aggregate.total_failed}[/]"
        )

    def finished(self, aggregate: RunningAggregate) -> None:
        c = self.console
        c.print(
            f"\n[bold]🎯 Pump tokens found[/]: {aggregate.total_matching} / "
            f"{aggregate.total_resolved} valid transactions"
        )
        c.print(f"[yellow]⛔ Skipped total[/]: {aggregate.total_skipped} non-Pump.fun mints")
        c.print(f"[red]✗ Failed total[/]: {aggregate.total_failed} transactions")
        best = aggregate.oldest_matching
        if best is not None:
            c.print(
                f"\n[bold green]🧠 First pumpfun token ending with '{self.suffix}'[/]: "
                f"{best.token_address} at {best.timestamp}"
            )
        else:
            c.print(f"\n[bold red]⚠️ No pumpfun token ending in '{self.suffix}' was found.[/]")


def describe_failure(f: Failed) -> str:
    return f"{f.signature} (attempts={f.attempts}): {f.error or 'unknown error'}"
