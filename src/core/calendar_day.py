"""Day-granularity calendar helpers shared by every engine.

Calendar days are ``datetime.date``; instants are ``datetime``. Helpers
accept either and never mutate their input. Weeks start on Sunday and
weekday numbers run 1-7 with Sunday = 1.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta
from typing import TypeVar
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

DateLike = TypeVar("DateLike", date, datetime)


def now_local() -> datetime:
    """Current instant in the configured timezone."""
    from src.config import settings

    return datetime.now(ZoneInfo(settings.TIMEZONE))


def today_local() -> date:
    return now_local().date()


def to_day(value: date | datetime) -> date:
    """Drop the time component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: date | datetime) -> datetime:
    """Midnight of the same calendar day, keeping tzinfo when present."""
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.combine(value, time.min)


def is_same_day(a: date | datetime, b: date | datetime) -> bool:
    return to_day(a) == to_day(b)


def day_difference(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (to_day(end) - to_day(start)).days


def add_days(value: DateLike, days: int) -> DateLike:
    return value + timedelta(days=days)


def add_weeks(value: DateLike, weeks: int) -> DateLike:
    return value + timedelta(weeks=weeks)


def add_months(value: DateLike, months: int) -> DateLike:
    """Add calendar months; the day-of-month is clamped (Jan 31 + 1 → Feb 28/29)."""
    return value + relativedelta(months=months)


def weekday_number(value: date | datetime) -> int:
    """1 = Sunday ... 7 = Saturday."""
    return value.isoweekday() % 7 + 1


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def last_day_of_month(value: date | datetime) -> date:
    return date(value.year, value.month, days_in_month(value.year, value.month))


def start_of_month(value: date | datetime) -> date:
    return date(value.year, value.month, 1)


def start_of_next_month(value: date | datetime) -> date:
    return start_of_month(value) + relativedelta(months=1)


def start_of_week(value: date | datetime) -> date:
    """The Sunday on or before ``value``."""
    day = to_day(value)
    return day - timedelta(days=weekday_number(day) - 1)


def start_of_year(value: date | datetime) -> date:
    return date(value.year, 1, 1)


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def iter_days(start: date | datetime, end: date | datetime) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""
    current = to_day(start)
    last = to_day(end)
    while current <= last:
        yield current
        current += timedelta(days=1)
