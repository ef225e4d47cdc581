"""SQLite store adapter — implements StorePort over the SQLite tables.

The table classes are synchronous; each call runs in a worker thread via
asyncio.to_thread so the service layer can await it.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from typing import Any

from src.data.db import HabitDB, RecurrenceRuleDB, TaskDB
from src.data.models import Habit, RecurrenceRule, Task
from src.ports.store_port import StoreError

logger = logging.getLogger(__name__)


class SQLiteStore:
    """SQLite implementation of StorePort."""

    def __init__(self, db_path: str | None = None) -> None:
        self._tasks = TaskDB(db_path=db_path)
        self._habits = HabitDB(db_path=db_path)
        self._rules = RecurrenceRuleDB(db_path=db_path)

    async def _run(self, action: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (sqlite3.Error, ValueError) as exc:
            logger.error("Store %s failed: %s", action, exc)
            raise StoreError(f"Failed to {action}: {exc}") from exc

    async def load_all(self) -> tuple[list[Task], list[Habit], list[RecurrenceRule]]:
        tasks = await self._run("load tasks", self._tasks.list_all)
        habits = await self._run("load habits", self._habits.list_all)
        rules = await self._run("load recurrence rules", self._rules.list_all)
        return tasks, habits, rules

    async def create_task(self, task: Task) -> None:
        await self._run("create task", self._tasks.add_task, task)

    async def update_task(self, task: Task) -> None:
        await self._run("update task", self._tasks.update_task, task)

    async def delete_task(self, task_id: str) -> None:
        await self._run("delete task", self._tasks.delete_task, task_id)

    async def create_habit(self, habit: Habit) -> None:
        await self._run("create habit", self._habits.add_habit, habit)

    async def update_habit(self, habit: Habit) -> None:
        await self._run("update habit", self._habits.update_habit, habit)

    async def delete_habit(self, habit_id: str) -> None:
        await self._run("delete habit", self._habits.delete_habit, habit_id)

    async def create_rule(self, rule: RecurrenceRule) -> None:
        await self._run("create recurrence rule", self._rules.add_rule, rule)

    async def update_rule(self, rule: RecurrenceRule) -> None:
        await self._run("update recurrence rule", self._rules.update_rule, rule)

    async def delete_rule(self, rule_id: str) -> None:
        await self._run("delete recurrence rule", self._rules.delete_rule, rule_id)
