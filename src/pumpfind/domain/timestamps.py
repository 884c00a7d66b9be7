from __future__ import annotations

from datetime import datetime, timezone


def block_time_to_iso(block_time: int | None) -> str | None:
    """Seconds since epoch -> '2024-03-01T12:00:00.000Z' (None stays None)."""
    if block_time is None:
        return None
    dt = datetime.fromtimestamp(block_time, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_to_datetime(ts: str) -> datetime:
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)