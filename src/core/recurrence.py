"""Recurrence engine — next-occurrence arithmetic for recurring tasks.

``next_occurrence`` is the raw rule step and ignores exceptions and the end
date. ``next_valid_occurrence`` and ``occurrences`` layer exception skipping
and the inclusive ``end_date`` bound on top of it.

Malformed rules (non-positive interval, day-of-month outside 1-31) and
steps that would leave the representable date range never raise; they
produce ``None`` and a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import date, datetime

from src.core.calendar_day import (
    DateLike,
    add_days,
    add_months,
    add_weeks,
    days_in_month,
    now_local,
    start_of_day,
    to_day,
    weekday_number,
)
from src.data.models import RecurrenceFrequency, RecurrenceRule

logger = logging.getLogger(__name__)

LAST_DAY_OF_MONTH = 31

_ICS_WEEKDAYS = {1: "SU", 2: "MO", 3: "TU", 4: "WE", 5: "TH", 6: "FR", 7: "SA"}


def is_valid_occurrence(rule: RecurrenceRule, on: date | datetime) -> bool:
    """True unless the calendar day of ``on`` is one of the rule's exceptions."""
    return to_day(on) not in rule.exceptions


def is_past_end(rule: RecurrenceRule, on: date | datetime) -> bool:
    return rule.end_date is not None and to_day(on) > rule.end_date


def add_exception(rule: RecurrenceRule, on: date | datetime) -> None:
    rule.exceptions.add(to_day(on))
    rule.modified_date = now_local()


def remove_exception(rule: RecurrenceRule, on: date | datetime) -> None:
    rule.exceptions.discard(to_day(on))
    rule.modified_date = now_local()


def _weekdays(rule: RecurrenceRule) -> list[int]:
    return sorted(d for d in (rule.days_of_week or ()) if 1 <= d <= 7)


def _next_weekly(after: DateLike, days: list[int], interval: int) -> DateLike:
    current = weekday_number(after)
    for day in days:
        if day > current:
            return add_days(after, day - current)

    # Wrap: first selected weekday of the Sunday-start week `interval`
    # weeks after this one, i.e. week_start + 7*interval + (day - 1).
    return add_days(after, 7 * interval + days[0] - current)


def _month_day(year: int, month: int, day_of_month: int) -> date:
    """Resolve a rule's day-of-month in a given month (31 and overflow → last day)."""
    last = days_in_month(year, month)
    if day_of_month >= LAST_DAY_OF_MONTH:
        return date(year, month, last)
    return date(year, month, min(day_of_month, last))


def _as_type_of(day: date, like: date | datetime) -> date | datetime:
    if isinstance(like, datetime):
        return start_of_day(like).replace(year=day.year, month=day.month, day=day.day)
    return day


def _next_monthly(after: DateLike, day_of_month: int, interval: int) -> DateLike:
    candidate = _as_type_of(_month_day(after.year, after.month, day_of_month), after)
    if candidate > after:
        return candidate

    advanced = add_months(date(after.year, after.month, 1), interval)
    return _as_type_of(_month_day(advanced.year, advanced.month, day_of_month), after)


def next_occurrence(rule: RecurrenceRule, after: DateLike) -> DateLike | None:
    """The next date the rule fires strictly after ``after``, ignoring exceptions."""
    if rule.interval < 1:
        logger.warning("Recurrence rule %s has invalid interval %r", rule.id, rule.interval)
        return None

    try:
        return _step(rule, after)
    except (OverflowError, ValueError) as exc:
        logger.warning(
            "Recurrence rule %s has no occurrence after %s in the supported date range: %s",
            rule.id, after, exc,
        )
        return None


def _step(rule: RecurrenceRule, after: DateLike) -> DateLike | None:
    if rule.frequency in (RecurrenceFrequency.DAILY, RecurrenceFrequency.CUSTOM):
        return add_days(after, rule.interval)

    if rule.frequency == RecurrenceFrequency.WEEKLY:
        days = _weekdays(rule)
        if days:
            return _next_weekly(after, days, rule.interval)
        return add_weeks(after, rule.interval)

    if rule.frequency == RecurrenceFrequency.MONTHLY:
        if rule.day_of_month is None:
            return add_months(after, rule.interval)
        if not 1 <= rule.day_of_month <= LAST_DAY_OF_MONTH:
            logger.warning(
                "Recurrence rule %s has invalid day_of_month %r", rule.id, rule.day_of_month,
            )
            return None
        return _next_monthly(after, rule.day_of_month, rule.interval)

    logger.warning("Recurrence rule %s has unknown frequency %r", rule.id, rule.frequency)
    return None


def next_valid_occurrence(
    rule: RecurrenceRule, after: DateLike, max_attempts: int = 366,
) -> DateLike | None:
    """Like ``next_occurrence`` but steps over exception days.

    Gives up (returns None) after ``max_attempts`` consecutive excepted
    occurrences.
    """
    current = after
    for _ in range(max_attempts):
        current = next_occurrence(rule, current)
        if current is None:
            return None
        if is_valid_occurrence(rule, current):
            return current
        logger.debug("Skipping excepted occurrence %s for rule %s", to_day(current), rule.id)

    logger.warning("No valid occurrence for rule %s within %d steps", rule.id, max_attempts)
    return None


def occurrences(
    rule: RecurrenceRule, start: DateLike, limit: int = 10,
) -> Iterator[DateLike]:
    """Yield up to ``limit`` valid occurrences after ``start``, stopping at ``end_date``."""
    current = start
    for _ in range(limit):
        current = next_valid_occurrence(rule, current)
        if current is None or is_past_end(rule, current):
            return
        yield current


def to_rrule(rule: RecurrenceRule) -> dict:
    """Express the rule as iCalendar RRULE parts (for ``icalendar.Event.add``)."""
    freq = {
        RecurrenceFrequency.DAILY: "DAILY",
        RecurrenceFrequency.CUSTOM: "DAILY",
        RecurrenceFrequency.WEEKLY: "WEEKLY",
        RecurrenceFrequency.MONTHLY: "MONTHLY",
    }[rule.frequency]
    parts: dict = {"FREQ": freq, "INTERVAL": max(1, rule.interval)}

    if rule.frequency == RecurrenceFrequency.WEEKLY and _weekdays(rule):
        parts["BYDAY"] = [_ICS_WEEKDAYS[d] for d in _weekdays(rule)]
    if rule.frequency == RecurrenceFrequency.MONTHLY and rule.day_of_month:
        parts["BYMONTHDAY"] = -1 if rule.day_of_month >= LAST_DAY_OF_MONTH else rule.day_of_month
    if rule.end_date is not None:
        parts["UNTIL"] = rule.end_date
    return parts
