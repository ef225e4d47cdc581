"""Tests for src.data.models — Task, Habit, RecurrenceRule dataclasses."""

from datetime import date, datetime, timezone

from src.data.models import (
    Habit,
    Priority,
    RecurrenceFrequency,
    RecurrenceRule,
    Task,
    TaskStatus,
    TaskType,
)


def test_task_defaults():
    task = Task(title="Laundry")
    assert task.priority == Priority.MEDIUM
    assert task.status == TaskStatus.NOT_STARTED
    assert task.task_type == TaskType.ONE_TIME
    assert task.due_date is None
    assert task.is_completed is False
    assert task.is_recurring is False
    assert task.created_date.tzinfo is not None


def test_ids_are_unique():
    assert Task(title="A").id != Task(title="A").id
    assert Habit(task_id="t").id != Habit(task_id="t").id


def test_task_mark_completed_and_incomplete():
    now = datetime(2024, 3, 15, 10, tzinfo=timezone.utc)
    task = Task(title="Laundry")
    task.mark_completed(now)
    assert task.is_completed
    assert task.completed_date == now
    assert task.modified_date == now

    task.mark_incomplete(now)
    assert task.status == TaskStatus.NOT_STARTED
    assert task.completed_date is None


def test_task_is_overdue():
    now = datetime(2024, 3, 15, 10, tzinfo=timezone.utc)
    task = Task(title="Call", due_date=datetime(2024, 3, 15, 9, tzinfo=timezone.utc))
    assert task.is_overdue(now)
    task.mark_completed(now)
    assert not task.is_overdue(now)
    assert not Task(title="Someday").is_overdue(now)


def test_task_is_due_on():
    task = Task(title="Call", due_date=datetime(2024, 3, 15, 23, 59, tzinfo=timezone.utc))
    assert task.is_due_on(date(2024, 3, 15))
    assert not task.is_due_on(date(2024, 3, 16))


def test_habit_defaults():
    habit = Habit(task_id="t")
    assert habit.completion_dates == set()
    assert habit.current_streak == habit.best_streak == habit.total_completions == 0
    assert habit.protection_days_used == 0
    assert habit.last_protection_date is None


def test_habit_completion_sets_are_independent():
    a, b = Habit(task_id="t"), Habit(task_id="t")
    a.completion_dates.add(date(2024, 1, 1))
    assert b.completion_dates == set()


def test_recurrence_rule_defaults():
    rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY)
    assert rule.interval == 1
    assert rule.days_of_week is None
    assert rule.exceptions == set()


def test_enum_helpers():
    assert Priority.HIGH.ics_priority == 1
    assert Priority.LOW.ics_priority == 9
    assert RecurrenceFrequency.MONTHLY.display_name == "Monthly"
