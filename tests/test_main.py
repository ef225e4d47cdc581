"""Tests for main — the installed console script goes through logging setup."""

from pathlib import Path

import main
import src.cli

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def test_entry_point_is_cli_main():
    assert main.main is src.cli.main


def test_console_script_targets_main_module():
    text = PYPROJECT.read_text(encoding="utf-8")
    assert 'todoozies = "main:main"' in text
    assert "src.cli:main" not in text


def test_importing_main_configures_logging(monkeypatch):
    import importlib
    import logging

    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    importlib.reload(main)

    assert calls and calls[0]["level"] == main.settings.LOG_LEVEL
