"""Habit streak engine — pure business logic.

Keeps a habit's streak, completion counters and monthly protection-day
quota consistent with its set of completion days. Every function is total:
nothing here raises for any habit state or date. Functions that mutate a
habit return whether anything changed so the caller can keep the base task
in lockstep and decide whether a write is needed.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from src.core.calendar_day import (
    day_difference,
    days_in_month,
    now_local,
    start_of_month,
    start_of_next_month,
    to_day,
    today_local,
)
from src.data.models import Habit

logger = logging.getLogger(__name__)

MAX_PROTECTION_DAYS = 2


def compute_current_streak(
    completion_dates: Iterable[date], reference_date: date | datetime,
) -> int:
    """Count consecutive completed days ending exactly on ``reference_date``.

    The walk is anchored at the reference day: position i of the
    descending list must equal ``reference_day - i``. If the reference day
    itself has no completion the streak is 0, even when the days before it
    form an unbroken chain.
    """
    reference_day = to_day(reference_date)
    streak = 0
    for index, day in enumerate(sorted({to_day(d) for d in completion_dates}, reverse=True)):
        if day_difference(day, reference_day) != index:
            break
        streak += 1
    return streak


def streak_on_date(habit: Habit, on: date | datetime) -> int:
    """Streak as it stood on ``on``, ignoring completions after that day."""
    target = to_day(on)
    return compute_current_streak(
        (d for d in habit.completion_dates if d <= target), target,
    )


def recompute_streaks(habit: Habit, today: date | None = None) -> None:
    """Refresh ``current_streak`` and ratchet ``best_streak`` upwards."""
    today = today or today_local()
    habit.current_streak = compute_current_streak(habit.completion_dates, today)
    if habit.current_streak > habit.best_streak:
        habit.best_streak = habit.current_streak


def is_completed_on(habit: Habit, on: date | datetime) -> bool:
    return to_day(on) in habit.completion_dates


def completion_dates_in_range(
    habit: Habit, start: date | datetime, end: date | datetime,
) -> list[date]:
    """Completion days within [start, end], oldest first."""
    first, last = to_day(start), to_day(end)
    return sorted(d for d in habit.completion_dates if first <= d <= last)


def mark_completed(
    habit: Habit,
    on: date | datetime | None = None,
    today: date | None = None,
) -> bool:
    """Record a completion for the calendar day of ``on``.

    Returns False (and changes nothing) if that day is already recorded.
    """
    day = to_day(on) if on is not None else today_local()
    if day in habit.completion_dates:
        logger.debug("Habit %s already completed on %s", habit.id, day)
        return False

    habit.completion_dates.add(day)
    habit.total_completions += 1
    recompute_streaks(habit, today)
    habit.modified_date = now_local()
    logger.info(
        "Habit %s completed on %s (streak %d, best %d)",
        habit.id, day, habit.current_streak, habit.best_streak,
    )
    return True


def mark_incomplete(
    habit: Habit,
    on: date | datetime | None = None,
    today: date | None = None,
) -> bool:
    """Remove the completion for the calendar day of ``on``.

    Returns False (and changes nothing) if that day was not recorded.
    ``total_completions`` is decremented but never below zero.
    """
    day = to_day(on) if on is not None else today_local()
    if day not in habit.completion_dates:
        logger.debug("Habit %s has no completion on %s", habit.id, day)
        return False

    habit.completion_dates.discard(day)
    habit.total_completions = max(0, habit.total_completions - 1)
    recompute_streaks(habit, today)
    habit.modified_date = now_local()
    logger.info(
        "Habit %s completion removed for %s (streak %d)",
        habit.id, day, habit.current_streak,
    )
    return True


def _same_month(a: date, b: date | None) -> bool:
    return b is not None and (a.year, a.month) == (b.year, b.month)


def use_protection_day(habit: Habit, on: date | datetime | None = None) -> bool:
    """Spend one of this month's protection days.

    The quota renews on first use in a new calendar month. Returns False
    when the quota is exhausted. Completion days and streaks are untouched.
    """
    day = to_day(on) if on is not None else today_local()
    if not _same_month(day, habit.last_protection_date):
        habit.protection_days_used = 0

    if habit.protection_days_used >= MAX_PROTECTION_DAYS:
        logger.info("Habit %s has no protection days left for %s", habit.id, day)
        return False

    habit.protection_days_used += 1
    habit.last_protection_date = day
    habit.modified_date = now_local()
    logger.info(
        "Habit %s used protection day on %s (%d/%d)",
        habit.id, day, habit.protection_days_used, MAX_PROTECTION_DAYS,
    )
    return True


def available_protection_days(habit: Habit, today: date | None = None) -> int:
    today = today or today_local()
    if not _same_month(today, habit.last_protection_date):
        return MAX_PROTECTION_DAYS
    return max(0, MAX_PROTECTION_DAYS - habit.protection_days_used)


def completion_rate(habit: Habit, today: date | None = None) -> float:
    """Completions per day since the habit was created (creation day included)."""
    today = today or today_local()
    days_since_creation = day_difference(habit.created_date, today)
    if days_since_creation <= 0:
        return 0.0
    return habit.total_completions / (days_since_creation + 1)


def monthly_completion_rate(habit: Habit, on: date | datetime) -> float:
    """Share of the days in ``on``'s month that have a completion."""
    first = start_of_month(on)
    next_first = start_of_next_month(on)
    completed = sum(1 for d in habit.completion_dates if first <= d < next_first)
    return completed / days_in_month(first.year, first.month)
