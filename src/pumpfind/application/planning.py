from __future__ import annotations


def plan_slices(n: int, size: int) -> list[tuple[int, int]]:
    """Contiguous [start, end) ranges of at most `size` covering range(n)."""
    if size < 1:
        raise ValueError(f"slice size must be >= 1 (got {size})")
    return [(s, min(n, s + size)) for s in range(0, n, size)]
