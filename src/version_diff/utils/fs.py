"""Display formatting for version metadata (timestamps, sizes, names)."""

from __future__ import annotations

import os
from datetime import datetime

from version_diff.utils.logger import log


def format_size(size: int | None) -> str:
    """Format a byte count as kilobytes with two decimals, e.g. ``"1.23 KB"``."""
    if not size:
        return "0 KB"
    try:
        return f"{size / 1000:.2f} KB"
    except (TypeError, ValueError) as e:
        log(f"[FS] Failed to format size {size!r}: {e}")
        return "? KB"


def format_timestamp(ts: datetime | None, fmt: str = "%a %b %d %Y, %H:%M:%S") -> str:
    """Format a version timestamp as a human string, or an empty string."""
    if ts is None:
        return ""
    try:
        return ts.astimezone().strftime(fmt)
    except (ValueError, OSError, OverflowError) as e:
        log(f"[FS] Failed to format timestamp {ts!r}: {e}")
        return ""


def format_time(ts: datetime | None) -> str:
    """Format just the time-of-day portion of a timestamp."""
    return format_timestamp(ts, "%H:%M:%S")


def from_epoch_ms(ms: int | float) -> datetime:
    """Convert epoch milliseconds to an aware local datetime."""
    return datetime.fromtimestamp(ms / 1000.0).astimezone()


def to_epoch_ms(ts: datetime) -> int:
    """Convert a datetime to epoch milliseconds."""
    return int(ts.timestamp() * 1000)


def display_name(path: str) -> str:
    """File name without directory or extension, as shown in titles and diff headers."""
    base = os.path.basename(path)
    stem, _ext = os.path.splitext(base)
    return stem or base
