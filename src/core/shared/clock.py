"""
Time source for the domain.

Offer windows, expiry checks and review timestamps compare against the
current time. Services receive a Clock and pass `now` explicitly into
entity methods, so date boundaries can be tested deterministically.
All datetimes handled by the core are timezone-aware UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable


def ensure_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Clock frozen at a given instant, movable by hand.

    Example:
        clock = FixedClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))
        clock.advance(days=21)
    """

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)

    def advance(self, **kwargs) -> datetime:
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant
