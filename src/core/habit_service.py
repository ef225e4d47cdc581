"""
ToDoozies Core — Habit & recurring-task service.

Orchestrates the engines against the explicit AppState and a StorePort.
Every mutation follows the same discipline:

    snapshot → apply in memory → await the store write(s)

If a write fails (StoreError) or is cancelled, the touched records are
restored in place from the snapshot so callers holding references see the
last known-good values. When a multi-record mutation fails part way, the
writes that already landed are reverted in the store as well. Failures are
returned as ServiceResult values; cancellation is re-raised after the
rollback.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from src.core import habit_streak
from src.core.calendar_day import now_local, start_of_day, to_day, today_local
from src.core.date_parser import ParseFailed, parse_date, resolve_parse_result
from src.core.habit_statistics import HabitStatistics, compute_statistics
from src.core.recurrence import is_past_end, next_valid_occurrence
from src.data.models import Habit, Priority, RecurrenceRule, Task, TaskType
from src.ports.store_port import StoreError

if TYPE_CHECKING:
    from src.core.app_state import AppState
    from src.ports.store_port import StorePort

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    ok: bool
    message: str
    habit: Habit | None = None
    task: Task | None = None


Write = Callable[[], Awaitable[None]]


def _snapshot(*records: Any) -> list[tuple[Any, Any]]:
    return [(record, copy.deepcopy(record)) for record in records if record is not None]


def _restore(snapshots: list[tuple[Any, Any]]) -> None:
    for target, saved in snapshots:
        for f in fields(target):
            setattr(target, f.name, getattr(saved, f.name))


class HabitService:
    """Applies habit and recurrence operations and keeps the store in sync."""

    def __init__(self, state: AppState, store: StorePort) -> None:
        self._state = state
        self._store = store

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _persist(
        self,
        action: str,
        writes: list[Write],
        rollback: Callable[[], None],
        undo: list[Write | None] | None = None,
    ) -> ServiceResult | None:
        """Run the store writes; on failure roll back and return an error result.

        ``undo[i]`` reverts ``writes[i]`` in the store. When a later write
        fails, the undo steps of the writes that already landed run newest
        first, after the in-memory rollback, so they see the restored records.
        """
        done = 0
        try:
            for write in writes:
                await write()
                done += 1
        except StoreError as exc:
            rollback()
            await self._revert(action, (undo or [])[:done])
            message = f"Failed to {action}: {exc}"
            self._state.set_error(message)
            return ServiceResult(ok=False, message=message)
        except asyncio.CancelledError:
            logger.warning("Store write cancelled during %s; rolling back", action)
            rollback()
            raise
        return None

    async def _revert(self, action: str, undo: list[Write | None]) -> None:
        for step in reversed(undo):
            if step is None:
                continue
            try:
                await step()
            except StoreError as exc:
                logger.error("Could not revert partial %s in the store: %s", action, exc)

    def _lookup_habit(self, habit_id: str) -> tuple[Habit | None, Task | None]:
        habit = self._state.get_habit(habit_id)
        if habit is None:
            return None, None
        return habit, self._state.task_for_habit(habit)

    def _habit_writes(self, habit: Habit, task: Task | None) -> list[Write]:
        writes: list[Write] = [lambda: self._store.update_habit(habit)]
        if task is not None:
            writes.append(lambda: self._store.update_task(task))
        return writes

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, today: date | None = None) -> ServiceResult:
        """Populate the state from the store and refresh streaks for today."""
        try:
            tasks, habits, rules = await self._store.load_all()
        except StoreError as exc:
            message = f"Failed to load data: {exc}"
            self._state.set_error(message)
            return ServiceResult(ok=False, message=message)

        for task in tasks:
            self._state.add_task(task)
        for rule in rules:
            self._state.add_rule(rule)
        for habit in habits:
            habit_streak.recompute_streaks(habit, today)
            self._state.add_habit(habit)

        logger.info("Loaded %d tasks, %d habits, %d rules", len(tasks), len(habits), len(rules))
        return ServiceResult(ok=True, message=f"Loaded {len(habits)} habits")

    # ------------------------------------------------------------------
    # Habit lifecycle
    # ------------------------------------------------------------------

    async def create_habit(
        self,
        title: str,
        description: str | None = None,
        category: str | None = None,
        priority: Priority = Priority.MEDIUM,
        target_completions_per_period: int | None = None,
    ) -> ServiceResult:
        """Create a habit together with its base task."""
        task = Task(
            title=title.strip(),
            description=description,
            category=category,
            priority=priority,
            task_type=TaskType.HABIT,
        )
        habit = Habit(task_id=task.id, target_completions_per_period=target_completions_per_period)
        self._state.add_task(task)
        self._state.add_habit(habit)

        def rollback() -> None:
            self._state.remove_habit(habit.id)
            self._state.remove_task(task.id)

        failed = await self._persist(
            "create habit",
            [lambda: self._store.create_task(task), lambda: self._store.create_habit(habit)],
            rollback,
            undo=[lambda: self._store.delete_task(task.id), None],
        )
        if failed:
            return failed

        logger.info("Habit created: %s '%s'", habit.id, task.title)
        return ServiceResult(ok=True, message=f"Habit '{task.title}' created", habit=habit, task=task)

    async def delete_habit(self, habit_id: str) -> ServiceResult:
        """Remove a habit; it is reinserted if the store rejects the delete."""
        habit = self._state.remove_habit(habit_id)
        if habit is None:
            return ServiceResult(ok=False, message="Habit not found")

        failed = await self._persist(
            "delete habit",
            [lambda: self._store.delete_habit(habit_id)],
            lambda: self._state.add_habit(habit),
        )
        if failed:
            return failed
        return ServiceResult(ok=True, message="Habit deleted", habit=habit)

    # ------------------------------------------------------------------
    # Completion and protection days
    # ------------------------------------------------------------------

    async def complete_habit(
        self,
        habit_id: str,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> ServiceResult:
        habit, task = self._lookup_habit(habit_id)
        if habit is None:
            return ServiceResult(ok=False, message="Habit not found")

        snapshots = _snapshot(habit, task)
        if not habit_streak.mark_completed(habit, on, today):
            return ServiceResult(ok=True, message="Already completed", habit=habit, task=task)
        if task is not None:
            task.mark_completed()

        failed = await self._persist(
            "complete habit",
            self._habit_writes(habit, task),
            lambda: _restore(snapshots),
            undo=self._habit_writes(habit, task),
        )
        if failed:
            return failed
        return ServiceResult(
            ok=True, message=f"Streak: {habit.current_streak} days", habit=habit, task=task,
        )

    async def uncomplete_habit(
        self,
        habit_id: str,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> ServiceResult:
        habit, task = self._lookup_habit(habit_id)
        if habit is None:
            return ServiceResult(ok=False, message="Habit not found")

        snapshots = _snapshot(habit, task)
        if not habit_streak.mark_incomplete(habit, on, today):
            return ServiceResult(ok=True, message="Not completed on that day", habit=habit, task=task)
        if task is not None:
            task.mark_incomplete()

        failed = await self._persist(
            "uncomplete habit",
            self._habit_writes(habit, task),
            lambda: _restore(snapshots),
            undo=self._habit_writes(habit, task),
        )
        if failed:
            return failed
        return ServiceResult(
            ok=True, message=f"Streak: {habit.current_streak} days", habit=habit, task=task,
        )

    async def toggle_completion(
        self,
        habit_id: str,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> ServiceResult:
        habit = self._state.get_habit(habit_id)
        if habit is None:
            return ServiceResult(ok=False, message="Habit not found")

        day = to_day(on) if on is not None else today_local()
        if habit_streak.is_completed_on(habit, day):
            return await self.uncomplete_habit(habit_id, day, today)
        return await self.complete_habit(habit_id, day, today)

    async def use_protection_day(
        self, habit_id: str, on: date | datetime | None = None,
    ) -> ServiceResult:
        habit = self._state.get_habit(habit_id)
        if habit is None:
            return ServiceResult(ok=False, message="Habit not found")

        snapshots = _snapshot(habit)
        if not habit_streak.use_protection_day(habit, on):
            return ServiceResult(
                ok=False, message="No protection days remaining this month", habit=habit,
            )

        failed = await self._persist(
            "use protection day",
            [lambda: self._store.update_habit(habit)],
            lambda: _restore(snapshots),
        )
        if failed:
            return failed
        remaining = habit_streak.available_protection_days(habit, to_day(on) if on else None)
        return ServiceResult(
            ok=True, message=f"Protection day used ({remaining} left)", habit=habit,
        )

    def statistics(self, habit_id: str, today: date | None = None) -> HabitStatistics | None:
        habit = self._state.get_habit(habit_id)
        if habit is None:
            return None
        return compute_statistics(habit, today)

    # ------------------------------------------------------------------
    # Recurring tasks
    # ------------------------------------------------------------------

    async def save_recurrence_rule(self, task_id: str, rule: RecurrenceRule) -> ServiceResult:
        """Attach ``rule`` to a task, creating or updating the stored rule."""
        task = self._state.get_task(task_id)
        if task is None:
            return ServiceResult(ok=False, message="Task not found")

        existing = self._state.recurrence_rules.get(rule.id)
        snapshots = _snapshot(task, existing)
        rule.modified_date = now_local()
        self._state.add_rule(rule)
        task.recurrence_rule_id = rule.id
        if task.task_type == TaskType.ONE_TIME:
            task.task_type = TaskType.RECURRING
        task.modified_date = now_local()

        def rollback() -> None:
            _restore(snapshots)
            if existing is None:
                self._state.remove_rule(rule.id)
            else:
                self._state.add_rule(existing)

        if existing is None:
            save_rule: Write = lambda: self._store.create_rule(rule)
            undo_rule: Write = lambda: self._store.delete_rule(rule.id)
        else:
            save_rule = lambda: self._store.update_rule(rule)
            undo_rule = lambda: self._store.update_rule(existing)
        failed = await self._persist(
            "save recurrence rule",
            [save_rule, lambda: self._store.update_task(task)],
            rollback,
            undo=[undo_rule, None],
        )
        if failed:
            return failed
        return ServiceResult(ok=True, message=f"Repeats {rule.frequency.display_name.lower()}", task=task)

    async def advance_recurring_task(
        self, task_id: str, now: datetime | None = None,
    ) -> ServiceResult:
        """Move a recurring task's due date to its next valid occurrence and reopen it."""
        task = self._state.get_task(task_id)
        if task is None:
            return ServiceResult(ok=False, message="Task not found")
        rule = self._state.rule_for_task(task)
        if rule is None:
            return ServiceResult(ok=False, message="Task does not repeat", task=task)

        after = task.due_date or now or now_local()
        upcoming = next_valid_occurrence(rule, after)
        if upcoming is None or is_past_end(rule, upcoming):
            return ServiceResult(ok=False, message="No further occurrences", task=task)

        snapshots = _snapshot(task)
        task.due_date = upcoming if isinstance(upcoming, datetime) else start_of_day(upcoming)
        task.mark_incomplete()

        failed = await self._persist(
            "advance recurring task",
            [lambda: self._store.update_task(task)],
            lambda: _restore(snapshots),
        )
        if failed:
            return failed
        logger.info("Task %s next due %s", task.id, task.due_date.isoformat())
        return ServiceResult(ok=True, message=f"Next due {task.due_date:%Y-%m-%d}", task=task)

    async def set_due_date_from_text(
        self, task_id: str, text: str, now: datetime | None = None,
    ) -> ServiceResult:
        """Parse a due-date phrase and store the result on the task."""
        task = self._state.get_task(task_id)
        if task is None:
            return ServiceResult(ok=False, message="Task not found")

        result = parse_date(text, now)
        due = resolve_parse_result(result)
        if due is None:
            reason = result.reason if isinstance(result, ParseFailed) else "No candidate date"
            return ServiceResult(ok=False, message=f"Could not understand date '{text}': {reason}", task=task)

        snapshots = _snapshot(task)
        task.due_date = due
        task.modified_date = now_local()

        failed = await self._persist(
            "set due date",
            [lambda: self._store.update_task(task)],
            lambda: _restore(snapshots),
        )
        if failed:
            return failed
        return ServiceResult(ok=True, message=f"Due {due:%Y-%m-%d}", task=task)
