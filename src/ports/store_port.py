"""Store port — abstract interface for persisting tasks, habits and rules.

Core modules depend on this protocol, never on a specific storage backend.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import Habit, RecurrenceRule, Task


class StoreError(Exception):
    """Raised when any storage operation fails."""


class StorePort(Protocol):
    """Abstract persistence interface used by the service layer."""

    async def load_all(
        self,
    ) -> tuple[list[Task], list[Habit], list[RecurrenceRule]]: ...

    async def create_task(self, task: Task) -> None: ...

    async def update_task(self, task: Task) -> None: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def create_habit(self, habit: Habit) -> None: ...

    async def update_habit(self, habit: Habit) -> None: ...

    async def delete_habit(self, habit_id: str) -> None: ...

    async def create_rule(self, rule: RecurrenceRule) -> None: ...

    async def update_rule(self, rule: RecurrenceRule) -> None: ...

    async def delete_rule(self, rule_id: str) -> None: ...
