"""Shared test fixtures and configuration.

Sets up environment variables so src.config loads predictable values,
and provides common fixtures like a temp DB and a wired-up service.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("EXPORT_CALENDAR_NAME", "Test Export")

import pytest
from unittest.mock import AsyncMock


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_habits.db")


@pytest.fixture
def task_db(tmp_db_path):
    from src.data.db import TaskDB
    return TaskDB(db_path=tmp_db_path)


@pytest.fixture
def habit_db(tmp_db_path):
    from src.data.db import HabitDB
    return HabitDB(db_path=tmp_db_path)


@pytest.fixture
def rule_db(tmp_db_path):
    from src.data.db import RecurrenceRuleDB
    return RecurrenceRuleDB(db_path=tmp_db_path)


@pytest.fixture
def sqlite_store(tmp_db_path):
    from src.adapters.sqlite_store import SQLiteStore
    return SQLiteStore(db_path=tmp_db_path)


@pytest.fixture
def state():
    from src.core.app_state import AppState
    return AppState()


@pytest.fixture
def mock_store():
    """A StorePort whose writes all succeed."""
    store = AsyncMock()
    store.load_all = AsyncMock(return_value=([], [], []))
    return store


@pytest.fixture
def service(state, mock_store):
    from src.core.habit_service import HabitService
    return HabitService(state, mock_store)
