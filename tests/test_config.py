"""Tests for src.config — Settings validation."""

import pytest
from pydantic import ValidationError

from src.config import Settings, settings


def test_loaded_from_environment():
    assert settings.TIMEZONE == "UTC"
    assert settings.EXPORT_CALENDAR_NAME == "Test Export"


def test_defaults():
    s = Settings()
    assert s.DATABASE_PATH == "data/habits.db"
    assert s.LOG_LEVEL == "INFO"


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        Settings(TIMEZONE="Mars/Olympus_Mons")


def test_log_level_normalized():
    assert Settings(LOG_LEVEL=" debug ").LOG_LEVEL == "DEBUG"
