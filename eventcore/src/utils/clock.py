"""
Clock abstraction supplying "now" to the scheduling core.

Lifecycle, validation and sequence logic never read the wall clock directly;
they receive a Clock so results are deterministic under test.

All instants are naive UTC datetimes, matching how the models store them.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant as a naive UTC datetime."""
        ...


class SystemClock(Clock):
    """Wall-clock implementation used in production."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock(Clock):
    """
    Clock frozen at a given instant, movable with advance().

    Usage:
        >>> clock = FixedClock(datetime(2026, 10, 19, 12, 0))
        >>> clock.advance(hours=1)
        >>> clock.now()
        datetime.datetime(2026, 10, 19, 13, 0)
    """

    def __init__(self, now: Optional[datetime] = None):
        self._now = to_utc_naive(now) if now else SystemClock().now()

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = to_utc_naive(now)

    def advance(self, **kwargs) -> None:
        """Move the clock forward by timedelta(**kwargs)."""
        self._now = self._now + timedelta(**kwargs)
