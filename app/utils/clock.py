# app/utils/clock.py
"""Business-timezone clock and date/time helpers"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class BusinessClock:
    """Current time in the single business timezone"""

    def __init__(self, tz_name: str):
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown business timezone: {tz_name}") from e
        self.tz_name = tz_name

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def localize(self, day: date, at: time) -> datetime:
        """Aware datetime for a wall-clock date/time in the business timezone"""
        return datetime.combine(day, at, tzinfo=self.tz)


class FixedClock(BusinessClock):
    """Clock frozen at a given instant (scripts and tests)"""

    def __init__(self, tz_name: str, frozen: datetime):
        super().__init__(tz_name)
        if frozen.tzinfo is None:
            frozen = frozen.replace(tzinfo=self.tz)
        self.frozen = frozen

    def now(self) -> datetime:
        return self.frozen.astimezone(self.tz)

    def advance(self, **delta) -> None:
        self.frozen = self.frozen + timedelta(**delta)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a stored timestamp to aware UTC (naive values are UTC)"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_of(at: time) -> int:
    return at.hour * 60 + at.minute


def time_from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def date_range(start: date, end: date):
    """Inclusive iterator over calendar dates"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
