"""Tests for src.adapters.sqlite_store — StorePort over SQLite."""

import sqlite3
from datetime import date
from unittest.mock import patch

import pytest

from src.data.models import Habit, RecurrenceFrequency, RecurrenceRule, Task, TaskType
from src.ports.store_port import StoreError


class TestSQLiteStore:
    @pytest.mark.asyncio
    async def test_create_then_load_all(self, sqlite_store):
        task = Task(title="Journal", task_type=TaskType.HABIT)
        habit = Habit(task_id=task.id, completion_dates={date(2024, 3, 15)})
        rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY)

        await sqlite_store.create_task(task)
        await sqlite_store.create_habit(habit)
        await sqlite_store.create_rule(rule)

        tasks, habits, rules = await sqlite_store.load_all()
        assert tasks == [task]
        assert habits == [habit]
        assert rules == [rule]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sqlite_store):
        habit = Habit(task_id="t")
        await sqlite_store.create_habit(habit)
        habit.total_completions = 4
        await sqlite_store.update_habit(habit)

        _, habits, _ = await sqlite_store.load_all()
        assert habits[0].total_completions == 4

        await sqlite_store.delete_habit(habit.id)
        _, habits, _ = await sqlite_store.load_all()
        assert habits == []

    @pytest.mark.asyncio
    async def test_update_missing_record_raises_store_error(self, sqlite_store):
        with pytest.raises(StoreError, match="update task"):
            await sqlite_store.update_task(Task(title="Ghost"))

    @pytest.mark.asyncio
    async def test_duplicate_insert_raises_store_error(self, sqlite_store):
        task = Task(title="Once")
        await sqlite_store.create_task(task)
        with pytest.raises(StoreError):
            await sqlite_store.create_task(task)

    @pytest.mark.asyncio
    async def test_sqlite_errors_are_wrapped(self, sqlite_store):
        with patch(
            "src.data.db.TaskDB.list_all", side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with pytest.raises(StoreError, match="database is locked"):
                await sqlite_store.load_all()
