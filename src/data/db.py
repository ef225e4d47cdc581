"""
ToDoozies Core — SQLite storage.

Tasks, habits and recurrence rules persist in SQLite across restarts.
Calendar-day sets (completion dates, exceptions, weekdays) are stored as
JSON arrays; datetimes as ISO strings.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path

from src.data.models import (
    Habit,
    Priority,
    RecurrenceFrequency,
    RecurrenceRule,
    Task,
    TaskStatus,
    TaskType,
)

logger = logging.getLogger(__name__)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _day(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _days_to_json(days: set[date]) -> str:
    return json.dumps(sorted(d.isoformat() for d in days))


def _days_from_json(raw: str | None) -> set[date]:
    return {date.fromisoformat(d) for d in json.loads(raw or "[]")}


class _SQLiteDB:
    """Connection handling shared by the table classes below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class TaskDB(_SQLiteDB):
    """SQLite-backed storage for tasks."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id                 TEXT PRIMARY KEY,
                    title              TEXT NOT NULL,
                    description        TEXT,
                    due_date           TEXT,
                    priority           TEXT NOT NULL DEFAULT 'medium',
                    status             TEXT NOT NULL DEFAULT 'not_started',
                    task_type          TEXT NOT NULL DEFAULT 'one_time',
                    category           TEXT,
                    recurrence_rule_id TEXT,
                    completed_date     TEXT,
                    created_date       TEXT NOT NULL,
                    modified_date      TEXT NOT NULL
                )
            """)
        logger.debug("Tasks table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            due_date=_dt(row["due_date"]),
            priority=Priority(row["priority"]),
            status=TaskStatus(row["status"]),
            task_type=TaskType(row["task_type"]),
            category=row["category"],
            recurrence_rule_id=row["recurrence_rule_id"],
            completed_date=_dt(row["completed_date"]),
            created_date=_dt(row["created_date"]),
            modified_date=_dt(row["modified_date"]),
        )

    @staticmethod
    def _params(task: Task) -> tuple:
        return (
            task.title, task.description, _iso(task.due_date),
            task.priority.value, task.status.value, task.task_type.value,
            task.category, task.recurrence_rule_id, _iso(task.completed_date),
            _iso(task.created_date), _iso(task.modified_date), task.id,
        )

    def add_task(self, task: Task) -> Task:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks
                    (title, description, due_date, priority, status, task_type,
                     category, recurrence_rule_id, completed_date,
                     created_date, modified_date, id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._params(task),
            )
        logger.info("Task added: %s '%s'", task.id, task.title)
        return task

    def update_task(self, task: Task) -> Task:
        """Overwrite a stored task. Raises ValueError if it does not exist."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE tasks SET
                    title = ?, description = ?, due_date = ?, priority = ?,
                    status = ?, task_type = ?, category = ?,
                    recurrence_rule_id = ?, completed_date = ?,
                    created_date = ?, modified_date = ?
                WHERE id = ?
                """,
                self._params(task),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Task {task.id} not found")
        logger.info("Task updated: %s (%s)", task.id, task.status.value)
        return task

    def get_task(self, task_id: str) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def list_all(self) -> list[Task]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_date").fetchall()
        return [self._row_to_task(r) for r in rows]

    def delete_task(self, task_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Task %s deleted", task_id)
        return deleted


class HabitDB(_SQLiteDB):
    """SQLite-backed storage for habits."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS habits (
                    id                            TEXT PRIMARY KEY,
                    task_id                       TEXT NOT NULL,
                    completion_dates              TEXT NOT NULL DEFAULT '[]',
                    current_streak                INTEGER NOT NULL DEFAULT 0,
                    best_streak                   INTEGER NOT NULL DEFAULT 0,
                    total_completions             INTEGER NOT NULL DEFAULT 0,
                    protection_days_used          INTEGER NOT NULL DEFAULT 0,
                    last_protection_date          TEXT,
                    target_completions_per_period INTEGER,
                    created_date                  TEXT NOT NULL,
                    modified_date                 TEXT NOT NULL
                )
            """)
        logger.debug("Habits table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_habit(row: sqlite3.Row) -> Habit:
        return Habit(
            id=row["id"],
            task_id=row["task_id"],
            completion_dates=_days_from_json(row["completion_dates"]),
            current_streak=row["current_streak"],
            best_streak=row["best_streak"],
            total_completions=row["total_completions"],
            protection_days_used=row["protection_days_used"],
            last_protection_date=_day(row["last_protection_date"]),
            target_completions_per_period=row["target_completions_per_period"],
            created_date=_dt(row["created_date"]),
            modified_date=_dt(row["modified_date"]),
        )

    @staticmethod
    def _params(habit: Habit) -> tuple:
        return (
            habit.task_id, _days_to_json(habit.completion_dates),
            habit.current_streak, habit.best_streak, habit.total_completions,
            habit.protection_days_used, _iso(habit.last_protection_date),
            habit.target_completions_per_period,
            _iso(habit.created_date), _iso(habit.modified_date), habit.id,
        )

    def add_habit(self, habit: Habit) -> Habit:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO habits
                    (task_id, completion_dates, current_streak, best_streak,
                     total_completions, protection_days_used,
                     last_protection_date, target_completions_per_period,
                     created_date, modified_date, id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._params(habit),
            )
        logger.info("Habit added: %s for task %s", habit.id, habit.task_id)
        return habit

    def update_habit(self, habit: Habit) -> Habit:
        """Overwrite a stored habit. Raises ValueError if it does not exist."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE habits SET
                    task_id = ?, completion_dates = ?, current_streak = ?,
                    best_streak = ?, total_completions = ?,
                    protection_days_used = ?, last_protection_date = ?,
                    target_completions_per_period = ?,
                    created_date = ?, modified_date = ?
                WHERE id = ?
                """,
                self._params(habit),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Habit {habit.id} not found")
        logger.info(
            "Habit updated: %s (streak %d, total %d)",
            habit.id, habit.current_streak, habit.total_completions,
        )
        return habit

    def get_habit(self, habit_id: str) -> Habit | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM habits WHERE id = ?", (habit_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_habit(row)

    def list_all(self) -> list[Habit]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM habits ORDER BY created_date DESC").fetchall()
        return [self._row_to_habit(r) for r in rows]

    def delete_habit(self, habit_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Habit %s deleted", habit_id)
        return deleted


class RecurrenceRuleDB(_SQLiteDB):
    """SQLite-backed storage for recurrence rules."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS recurrence_rules (
                    id            TEXT PRIMARY KEY,
                    frequency     TEXT NOT NULL,
                    interval      INTEGER NOT NULL DEFAULT 1,
                    days_of_week  TEXT,
                    day_of_month  INTEGER,
                    end_date      TEXT,
                    exceptions    TEXT NOT NULL DEFAULT '[]',
                    created_date  TEXT NOT NULL,
                    modified_date TEXT NOT NULL
                )
            """)
        logger.debug("Recurrence rules table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> RecurrenceRule:
        days_raw = row["days_of_week"]
        return RecurrenceRule(
            id=row["id"],
            frequency=RecurrenceFrequency(row["frequency"]),
            interval=row["interval"],
            days_of_week=set(json.loads(days_raw)) if days_raw is not None else None,
            day_of_month=row["day_of_month"],
            end_date=_day(row["end_date"]),
            exceptions=_days_from_json(row["exceptions"]),
            created_date=_dt(row["created_date"]),
            modified_date=_dt(row["modified_date"]),
        )

    @staticmethod
    def _params(rule: RecurrenceRule) -> tuple:
        days = json.dumps(sorted(rule.days_of_week)) if rule.days_of_week is not None else None
        return (
            rule.frequency.value, rule.interval, days, rule.day_of_month,
            _iso(rule.end_date), _days_to_json(rule.exceptions),
            _iso(rule.created_date), _iso(rule.modified_date), rule.id,
        )

    def add_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO recurrence_rules
                    (frequency, interval, days_of_week, day_of_month, end_date,
                     exceptions, created_date, modified_date, id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._params(rule),
            )
        logger.info("Recurrence rule added: %s (%s every %d)", rule.id, rule.frequency.value, rule.interval)
        return rule

    def update_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        """Overwrite a stored rule. Raises ValueError if it does not exist."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE recurrence_rules SET
                    frequency = ?, interval = ?, days_of_week = ?,
                    day_of_month = ?, end_date = ?, exceptions = ?,
                    created_date = ?, modified_date = ?
                WHERE id = ?
                """,
                self._params(rule),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Recurrence rule {rule.id} not found")
        logger.info("Recurrence rule updated: %s", rule.id)
        return rule

    def get_rule(self, rule_id: str) -> RecurrenceRule | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM recurrence_rules WHERE id = ?", (rule_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_rule(row)

    def list_all(self) -> list[RecurrenceRule]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM recurrence_rules").fetchall()
        return [self._row_to_rule(r) for r in rows]

    def delete_rule(self, rule_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM recurrence_rules WHERE id = ?", (rule_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Recurrence rule %s deleted", rule_id)
        return deleted
