"""
Injectable time source.

Services never read the wall clock themselves: expiry checks compare with
``clock.today()`` and sale/purchase timestamps come from ``clock.now()``.
``SystemClock`` is the only place the kernel touches real time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock(ABC):
    """Source of the current UTC time."""

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware UTC now."""

    def today(self) -> date:
        """The UTC calendar date; medicines expire against this."""
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Starts at 2024-01-01 12:00 UTC unless given another start.  Naive
    datetimes are taken as UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = _as_utc(fixed_time or DEFAULT_TEST_TIME)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = _as_utc(time)

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current += timedelta(days=days)
