"""Shared helper functions used by the pollers and the reporter."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable


def parse_timestamp(timestamp: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp string.

    Naive timestamps are assumed to be UTC so that instants from different
    producers can always be subtracted.

    Args:
        timestamp: ISO 8601 timestamp string (``Z`` suffix accepted).

    Returns:
        A timezone-aware ``datetime``, or ``None`` if the input is empty
        or unparseable.
    """
    if not timestamp or not isinstance(timestamp, str):
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def elapsed_ms(start: str | None, end: str | None) -> int | None:
    """Return the milliseconds between two ISO 8601 instants.

    Returns ``None`` ("duration unknown") when either instant is missing or
    unparseable, or when *end* precedes *start*.
    """
    started = parse_timestamp(start)
    ended = parse_timestamp(end)
    if started is None or ended is None:
        return None
    delta_ms = round((ended - started).total_seconds() * 1000)
    if delta_ms < 0:
        return None
    return delta_ms


def format_duration_ms(duration_ms: int | float | None) -> str:
    """Format a millisecond duration for humans (``850ms``, ``4.2s``, ``2m 5s``)."""
    if duration_ms is None:
        return "unknown"
    if duration_ms < 1000:
        return f"{int(duration_ms)}ms"
    seconds = duration_ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs}s"


def wait_for_next_poll(
    seconds: float,
    *,
    sleep: Callable[[float], None],
    cancel: threading.Event | None = None,
) -> None:
    """Sleep for *seconds*, returning early if *cancel* gets set."""
    if cancel is None:
        sleep(seconds)
    else:
        cancel.wait(seconds)
