"""
Wall-clock source shared by the verification store, the voting window
resolver and the vote casting transaction.

Every protocol timestamp is taken from an injected clock so that the window
checked when a ballot is fetched and the window checked at commit time use
the same notion of "now".
"""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current UTC time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the host's system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
