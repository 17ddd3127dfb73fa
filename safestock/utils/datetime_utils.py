"""
Common date/time helpers.

Wire format: every timestamp inside a snapshot (item `lastUpdated`,
log `timestamp`, snapshot `timestamp`) is an integer count of milliseconds
since the Unix epoch, matching what the shared remote document already holds.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC datetime.
    """
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(utc_now().timestamp() * 1000)


def from_ms(value: int) -> datetime:
    """
    Convert epoch milliseconds to a tz-aware UTC datetime.

    Args:
        value: epoch milliseconds

    Returns:
        datetime object in UTC timezone
    """
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_sync_time(dt: datetime | None = None) -> str:
    """
    Human readable last-sync stamp, e.g. "2024/12/28 10:30".

    Uses local time since it is only ever shown to the operator.
    """
    dt = dt or datetime.now()
    return dt.strftime("%Y/%m/%d %H:%M")
