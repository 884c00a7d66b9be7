from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Sequence[T],
    op: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> list[R]:
    """
    Run `op` over `items` with exactly `concurrency` workers pulling from a shared cursor.

    Results come back in completion order, not input order. Each item is claimed once;
    workers with nothing left to claim exit immediately.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1 (got {concurrency})")

    results: list[R] = []
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            # claim happens between awaits, so no other worker can observe the same index
            i = cursor
            cursor += 1
            results.append(await op(items[i]))

    await asyncio.gather(*(worker() for _ in range(concurrency)))
    return results
