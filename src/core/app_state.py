"""In-memory state container shared by the service layer and its callers.

Holds the loaded tasks, habits and recurrence rules keyed by id. The task
dict doubles as the index that resolves ``Habit.task_id`` and the rule
dict resolves ``Task.recurrence_rule_id``. An instance is created by the
entry point and passed explicitly; there is no module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.data.models import Habit, RecurrenceRule, Task

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    tasks: dict[str, Task] = field(default_factory=dict)
    habits: dict[str, Habit] = field(default_factory=dict)
    recurrence_rules: dict[str, RecurrenceRule] = field(default_factory=dict)
    last_error: str | None = None

    # --- tasks ---

    def add_task(self, task: Task) -> None:
        self.tasks[task.id] = task

    def remove_task(self, task_id: str) -> Task | None:
        return self.tasks.pop(task_id, None)

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    # --- habits ---

    def add_habit(self, habit: Habit) -> None:
        self.habits[habit.id] = habit

    def remove_habit(self, habit_id: str) -> Habit | None:
        return self.habits.pop(habit_id, None)

    def get_habit(self, habit_id: str) -> Habit | None:
        return self.habits.get(habit_id)

    def task_for_habit(self, habit: Habit) -> Task | None:
        return self.tasks.get(habit.task_id)

    def habit_for_task(self, task_id: str) -> Habit | None:
        return next((h for h in self.habits.values() if h.task_id == task_id), None)

    # --- recurrence rules ---

    def add_rule(self, rule: RecurrenceRule) -> None:
        self.recurrence_rules[rule.id] = rule

    def remove_rule(self, rule_id: str) -> RecurrenceRule | None:
        return self.recurrence_rules.pop(rule_id, None)

    def rule_for_task(self, task: Task) -> RecurrenceRule | None:
        if task.recurrence_rule_id is None:
            return None
        return self.recurrence_rules.get(task.recurrence_rule_id)

    # --- errors ---

    def set_error(self, message: str) -> None:
        logger.error("%s", message)
        self.last_error = message

    def clear_error(self) -> None:
        self.last_error = None
