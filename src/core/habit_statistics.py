"""Per-habit statistics: period completion rates, average streak, grade.

Pure business logic built on the streak engine; no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from dateutil.relativedelta import relativedelta

from src.core.calendar_day import (
    day_difference,
    days_in_month,
    days_in_year,
    start_of_month,
    start_of_week,
    start_of_year,
    to_day,
    today_local,
)
from src.core.habit_streak import (
    available_protection_days,
    completion_dates_in_range,
    completion_rate,
    streak_on_date,
)
from src.data.models import Habit


class HabitTimeRange(Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"

    @property
    def display_name(self) -> str:
        return {
            HabitTimeRange.WEEK: "This Week",
            HabitTimeRange.MONTH: "This Month",
            HabitTimeRange.YEAR: "This Year",
            HabitTimeRange.ALL: "All Time",
        }[self]


class HabitGrade(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_WORK = "needs_work"
    STRUGGLING = "struggling"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


def grade_for_rate(rate: float) -> HabitGrade:
    if rate >= 0.9:
        return HabitGrade.EXCELLENT
    if rate >= 0.8:
        return HabitGrade.GOOD
    if rate >= 0.6:
        return HabitGrade.FAIR
    if rate >= 0.4:
        return HabitGrade.NEEDS_WORK
    return HabitGrade.STRUGGLING


@dataclass
class HabitStatistics:
    habit_id: str
    total_completions: int
    current_streak: int
    longest_streak: int
    average_streak: float
    last_completion_date: date | None
    weekly_completion_rate: float
    monthly_completion_rate: float
    yearly_completion_rate: float
    all_time_completion_rate: float
    protection_days_used: int
    protection_days_available: int

    @property
    def average_completions_per_week(self) -> float:
        return self.weekly_completion_rate * 7

    @property
    def overall_grade(self) -> HabitGrade:
        return grade_for_rate(self.all_time_completion_rate)


def _range_start_and_expected(
    time_range: HabitTimeRange, today: date, earliest: date,
) -> tuple[date, int]:
    """Where the range starts and how many days of it have elapsed (inclusive)."""
    if time_range == HabitTimeRange.WEEK:
        start = start_of_week(today)
        return start, min(day_difference(start, today) + 1, 7)

    if time_range == HabitTimeRange.MONTH:
        start = start_of_month(today)
        return start, min(day_difference(start, today) + 1, days_in_month(today.year, today.month))

    if time_range == HabitTimeRange.YEAR:
        start = start_of_year(today)
        return start, min(day_difference(start, today) + 1, days_in_year(today.year))

    start = max(earliest, today - relativedelta(years=1))
    return start, day_difference(start, today) + 1


def range_completion_rate(
    habit: Habit,
    time_range: HabitTimeRange,
    today: date | None = None,
    earliest: date | None = None,
) -> float:
    """Completions since the start of the range divided by the days elapsed in it.

    For ``HabitTimeRange.ALL`` the range starts at ``earliest`` (default: the
    habit's creation day) but never more than a year back.
    """
    today = today or today_local()
    earliest = earliest or to_day(habit.created_date)
    start, expected = _range_start_and_expected(time_range, today, earliest)
    if expected <= 0:
        return 0.0
    return len(completion_dates_in_range(habit, start, today)) / expected


def average_streak(completion_dates: Iterable[date]) -> float:
    """Mean length of the runs of consecutive completion days."""
    days = sorted(set(completion_dates))
    if not days:
        return 0.0

    runs: list[int] = []
    run = 1
    for previous, current in zip(days, days[1:]):
        if day_difference(previous, current) == 1:
            run += 1
        else:
            runs.append(run)
            run = 1
    runs.append(run)
    return sum(runs) / len(runs)


def compute_statistics(habit: Habit, today: date | None = None) -> HabitStatistics:
    today = today or today_local()
    current = streak_on_date(habit, today)
    return HabitStatistics(
        habit_id=habit.id,
        total_completions=habit.total_completions,
        current_streak=current,
        longest_streak=max(habit.best_streak, current),
        average_streak=average_streak(habit.completion_dates),
        last_completion_date=max(habit.completion_dates, default=None),
        weekly_completion_rate=range_completion_rate(habit, HabitTimeRange.WEEK, today),
        monthly_completion_rate=range_completion_rate(habit, HabitTimeRange.MONTH, today),
        yearly_completion_rate=range_completion_rate(habit, HabitTimeRange.YEAR, today),
        all_time_completion_rate=completion_rate(habit, today),
        protection_days_used=habit.protection_days_used,
        protection_days_available=available_protection_days(habit, today),
    )


def rank_by_current_streak(stats: Iterable[HabitStatistics]) -> list[HabitStatistics]:
    return sorted(stats, key=lambda s: s.current_streak, reverse=True)
