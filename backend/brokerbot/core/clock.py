"""
Naive UTC timestamps for the DateTime columns
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo, comparable with stored column values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_epoch_millis(millis: int) -> datetime:
    """Gateway epoch-millisecond timestamp as naive UTC."""
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).replace(tzinfo=None)
