"""iCalendar export of tasks and habits.

Builds a single VCALENDAR from the current AppState. Only reads computed
fields; nothing here mutates tasks, habits or rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path

from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent

from src.core.app_state import AppState
from src.core.calendar_day import now_local, to_day
from src.core.recurrence import to_rrule
from src.data.models import Habit, Task, TaskType

logger = logging.getLogger(__name__)

_ALL_DAYS = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]


@dataclass
class ExportOptions:
    include_completed_tasks: bool = False
    start: date | None = None          # inclusive due-date window
    end: date | None = None
    categories: set[str] = field(default_factory=set)
    calendar_name: str | None = None   # defaults to settings.EXPORT_CALENDAR_NAME
    include_habits: bool = True


def _include_task(task: Task, options: ExportOptions) -> bool:
    if task.task_type == TaskType.HABIT:
        return False
    if task.is_completed and not options.include_completed_tasks:
        return False
    if options.start is not None or options.end is not None:
        if task.due_date is None:
            return False
        due = to_day(task.due_date)
        if options.start is not None and due < options.start:
            return False
        if options.end is not None and due > options.end:
            return False
    if options.categories and task.category not in options.categories:
        return False
    return True


def _task_event(task: Task, state: AppState, now: datetime) -> iEvent:
    event = iEvent()
    event.add("uid", f"todoozies-task-{task.id}")
    event.add("summary", task.title)
    if task.description:
        event.add("description", task.description)
    event.add("priority", task.priority.ics_priority)
    if task.category:
        event.add("categories", [task.category])

    due = task.due_date
    if due is None or due.time() == time.min:
        start = to_day(due) if due is not None else now.date()
        event.add("dtstart", start)
        event.add("dtend", start + timedelta(days=1))
    else:
        event.add("dtstart", due)
        event.add("dtend", due + timedelta(hours=1))

    rule = state.rule_for_task(task)
    if rule is not None:
        event.add("rrule", to_rrule(rule))
        if rule.exceptions:
            event.add("exdate", sorted(rule.exceptions))

    event.add("url", f"todoozies://task?id={task.id}")
    event.add("dtstamp", now)
    return event


def _habit_event(habit: Habit, state: AppState, now: datetime) -> iEvent:
    task = state.task_for_habit(habit)
    event = iEvent()
    event.add("uid", f"todoozies-habit-{habit.id}")
    event.add("summary", task.title if task else "Habit")
    if task and task.description:
        event.add("description", task.description)

    start = now.date()
    event.add("dtstart", start)
    event.add("dtend", start + timedelta(days=1))

    target = habit.target_completions_per_period or 1
    if 1 < target <= 7:
        event.add("rrule", {"FREQ": "WEEKLY", "BYDAY": _ALL_DAYS})
    else:
        event.add("rrule", {"FREQ": "DAILY"})

    event.add("url", f"todoozies://habit?id={habit.id}")
    event.add("dtstamp", now)
    return event


def export_calendar(
    state: AppState,
    options: ExportOptions | None = None,
    now: datetime | None = None,
) -> bytes:
    """Serialize the selected tasks and habits as an .ics document."""
    from src.config import settings

    options = options or ExportOptions()
    now = now or now_local()

    cal = iCalendar()
    cal.add("prodid", "-//ToDoozies//ToDoozies Core//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", options.calendar_name or settings.EXPORT_CALENDAR_NAME)

    tasks = [t for t in state.tasks.values() if _include_task(t, options)]
    for task in tasks:
        cal.add_component(_task_event(task, state, now))

    habits = list(state.habits.values()) if options.include_habits else []
    for habit in habits:
        cal.add_component(_habit_event(habit, state, now))

    logger.info("Exported %d tasks and %d habits", len(tasks), len(habits))
    return cal.to_ical()


def write_calendar(path: str | Path, data: bytes) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    logger.info("Calendar written to %s", target)
    return target
