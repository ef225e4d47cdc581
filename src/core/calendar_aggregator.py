"""Calendar views derived from habit and task state.

Everything here is read-only and recomputed on demand for rendering
(heatmaps, month grids, per-day task summaries); nothing is cached.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta

from src.core.calendar_day import (
    iter_days,
    last_day_of_month,
    start_of_month,
    start_of_week,
    start_of_year,
    to_day,
    today_local,
)
from src.core.habit_streak import is_completed_on, streak_on_date
from src.data.models import Habit, Priority, Task

HEATMAP_STREAK_CAP = 30
GRID_WEEKS = 6


class CalendarRange(Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def number_of_months(self) -> int:
        return {CalendarRange.MONTH: 1, CalendarRange.QUARTER: 3, CalendarRange.YEAR: 12}[self]


@dataclass
class CalendarCell:
    date: date
    is_in_current_month: bool
    is_today: bool


@dataclass
class TaskDaySummary:
    """What a task calendar cell needs to know about one day."""

    date: date
    task_count: int
    completed_count: int
    has_overdue: bool
    has_high_priority: bool


# ---------------------------------------------------------------------------
# Habit heatmap
# ---------------------------------------------------------------------------

def completion_intensity(habit: Habit, on: date | datetime) -> float:
    """0.0 for a missed day, else the streak on that day scaled to 0-1 (capped at 30)."""
    if not is_completed_on(habit, on):
        return 0.0
    return min(streak_on_date(habit, on), HEATMAP_STREAK_CAP) / HEATMAP_STREAK_CAP


def completion_rate(habit: Habit, start: date | datetime, end: date | datetime) -> float:
    """Share of days in [start, end] with a completion; 0.0 for an inverted range."""
    total = completed = 0
    for day in iter_days(start, end):
        total += 1
        if day in habit.completion_dates:
            completed += 1
    return completed / total if total else 0.0


def heatmap(habit: Habit, start: date | datetime, end: date | datetime) -> dict[date, float]:
    return {day: completion_intensity(habit, day) for day in iter_days(start, end)}


# ---------------------------------------------------------------------------
# Ranges and grids
# ---------------------------------------------------------------------------

def date_range(range_: CalendarRange, anchor: date | datetime | None = None) -> tuple[date, date]:
    """First and last day (inclusive) of the month, quarter or year containing ``anchor``."""
    anchor = to_day(anchor) if anchor is not None else today_local()

    if range_ == CalendarRange.MONTH:
        return start_of_month(anchor), last_day_of_month(anchor)

    if range_ == CalendarRange.QUARTER:
        first_month = (anchor.month - 1) // 3 * 3 + 1
        start = date(anchor.year, first_month, 1)
        return start, start + relativedelta(months=3, days=-1)

    return start_of_year(anchor), date(anchor.year, 12, 31)


def month_grid(month: date | datetime, today: date | None = None) -> list[list[CalendarCell]]:
    """Six Sunday-first weeks covering ``month``, padded with adjacent days."""
    today = today or today_local()
    first = start_of_month(month)
    cursor = start_of_week(first)

    weeks: list[list[CalendarCell]] = []
    for _ in range(GRID_WEEKS):
        week = []
        for _ in range(7):
            week.append(CalendarCell(
                date=cursor,
                is_in_current_month=(cursor.year, cursor.month) == (first.year, first.month),
                is_today=cursor == today,
            ))
            cursor += timedelta(days=1)
        weeks.append(week)
    return weeks


# ---------------------------------------------------------------------------
# Task calendar
# ---------------------------------------------------------------------------

def tasks_by_day(tasks: list[Task]) -> dict[date, list[Task]]:
    """Group tasks by the calendar day of their due date (undated tasks dropped)."""
    grouped: dict[date, list[Task]] = defaultdict(list)
    for task in tasks:
        if task.due_date is not None:
            grouped[to_day(task.due_date)].append(task)
    return dict(grouped)


def summarize_day(tasks: list[Task], on: date, now: datetime) -> TaskDaySummary:
    day_tasks = [t for t in tasks if t.is_due_on(on)]
    return TaskDaySummary(
        date=on,
        task_count=len(day_tasks),
        completed_count=sum(1 for t in day_tasks if t.is_completed),
        has_overdue=any(t.is_overdue(now) for t in day_tasks),
        has_high_priority=any(t.priority == Priority.HIGH for t in day_tasks),
    )
