"""
ToDoozies Core — Data Models.

Tasks, habits and recurrence rules are local state persisted in SQLite.
A habit points at its base task through ``task_id`` only; resolving the
task goes through a lookup (AppState or TaskDB), never a back pointer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from src.core.calendar_day import now_local


def _new_id() -> str:
    return str(uuid.uuid4())


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def ics_priority(self) -> int:
        """RFC 5545 PRIORITY value (1 = highest)."""
        return {Priority.HIGH: 1, Priority.MEDIUM: 5, Priority.LOW: 9}[self]


class TaskStatus(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class TaskType(Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"
    HABIT = "habit"


class RecurrenceFrequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass
class Task:
    """A to-do item. Habits and recurring tasks are built on top of one."""

    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    task_type: TaskType = TaskType.ONE_TIME
    category: str | None = None
    recurrence_rule_id: str | None = None   # RecurrenceRule.id
    completed_date: datetime | None = None
    created_date: datetime = field(default_factory=now_local)
    modified_date: datetime = field(default_factory=now_local)
    id: str = field(default_factory=_new_id)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETE

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule_id is not None

    def mark_completed(self, now: datetime | None = None) -> None:
        now = now or now_local()
        self.status = TaskStatus.COMPLETE
        self.completed_date = now
        self.modified_date = now

    def mark_incomplete(self, now: datetime | None = None) -> None:
        self.status = TaskStatus.NOT_STARTED
        self.completed_date = None
        self.modified_date = now or now_local()

    def is_overdue(self, now: datetime) -> bool:
        if self.due_date is None or self.is_completed:
            return False
        return self.due_date < now

    def is_due_on(self, day: date) -> bool:
        return self.due_date is not None and self.due_date.date() == day


@dataclass
class Habit:
    """Streak and protection-day bookkeeping attached to a base task.

    ``completion_dates`` holds calendar days only (``datetime.date``).
    ``total_completions`` is a separate counter: it follows the set under
    normal operation but is clamped rather than re-derived on removal.
    """

    task_id: str
    completion_dates: set[date] = field(default_factory=set)
    current_streak: int = 0
    best_streak: int = 0
    total_completions: int = 0
    protection_days_used: int = 0
    last_protection_date: date | None = None
    target_completions_per_period: int | None = None
    created_date: datetime = field(default_factory=now_local)
    modified_date: datetime = field(default_factory=now_local)
    id: str = field(default_factory=_new_id)


@dataclass
class RecurrenceRule:
    """When a task repeats.

    ``days_of_week`` uses 1-7 with Sunday = 1 and only matters for weekly
    rules. ``day_of_month`` only matters for monthly rules; 31 means the
    last day of whatever month is being evaluated.
    """

    frequency: RecurrenceFrequency
    interval: int = 1
    days_of_week: set[int] | None = None
    day_of_month: int | None = None
    end_date: date | None = None             # inclusive, applied by callers
    exceptions: set[date] = field(default_factory=set)
    created_date: datetime = field(default_factory=now_local)
    modified_date: datetime = field(default_factory=now_local)
    id: str = field(default_factory=_new_id)
