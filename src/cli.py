"""
ToDoozies Core — Command line.

Thin argparse front end over HabitService and the SQLite store:

    python main.py parse "next friday"
    python main.py add-habit "Read 20 pages"
    python main.py complete <habit-id> [--date YYYY-MM-DD]
    python main.py uncomplete <habit-id>
    python main.py stats
    python main.py heatmap <habit-id>
    python main.py export calendar.ics
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date

from src.adapters.ics_export import export_calendar, write_calendar
from src.adapters.sqlite_store import SQLiteStore
from src.core.app_state import AppState
from src.core.calendar_aggregator import CalendarRange, date_range, heatmap
from src.core.calendar_day import today_local, weekday_number
from src.core.date_parser import ParseFailed, ParseSuccess, parse_date
from src.core.habit_service import HabitService

logger = logging.getLogger(__name__)

_HEAT_LEVELS = " .:-=+*#%@"


def _day_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


async def _open_service(db_path: str | None) -> tuple[HabitService, AppState]:
    state = AppState()
    service = HabitService(state, SQLiteStore(db_path=db_path))
    await service.load()
    return service, state


def cmd_parse(args: argparse.Namespace) -> int:
    result = parse_date(args.text)
    if isinstance(result, ParseSuccess):
        print(f"{result.date:%Y-%m-%d %H:%M} (confidence {result.confidence:.1f})")
        return 0
    if isinstance(result, ParseFailed):
        print(f"Could not parse: {result.reason}")
        return 1
    print("Ambiguous: " + ", ".join(f"{d:%Y-%m-%d}" for d in result.candidates))
    return 0


async def cmd_add_habit(args: argparse.Namespace) -> int:
    service, _ = await _open_service(args.db)
    result = await service.create_habit(
        args.title, category=args.category, target_completions_per_period=args.target,
    )
    print(result.message if not result.ok else f"{result.message}: {result.habit.id}")
    return 0 if result.ok else 1


async def cmd_complete(args: argparse.Namespace) -> int:
    service, _ = await _open_service(args.db)
    result = await service.complete_habit(args.habit_id, args.date)
    print(result.message)
    return 0 if result.ok else 1


async def cmd_uncomplete(args: argparse.Namespace) -> int:
    service, _ = await _open_service(args.db)
    result = await service.uncomplete_habit(args.habit_id, args.date)
    print(result.message)
    return 0 if result.ok else 1


async def cmd_protect(args: argparse.Namespace) -> int:
    service, _ = await _open_service(args.db)
    result = await service.use_protection_day(args.habit_id, args.date)
    print(result.message)
    return 0 if result.ok else 1


async def cmd_stats(args: argparse.Namespace) -> int:
    service, state = await _open_service(args.db)
    habit_ids = [args.habit_id] if args.habit_id else list(state.habits)
    if not habit_ids:
        print("No habits yet.")
        return 0

    for habit_id in habit_ids:
        stats = service.statistics(habit_id)
        if stats is None:
            print(f"Habit {habit_id} not found")
            return 1
        task = state.task_for_habit(state.habits[habit_id])
        title = task.title if task else habit_id
        print(
            f"{title}: streak {stats.current_streak} (best {stats.longest_streak}), "
            f"{stats.all_time_completion_rate:.0%} overall, grade {stats.overall_grade.display_name}, "
            f"{stats.protection_days_available} protection days left"
        )
    return 0


async def cmd_heatmap(args: argparse.Namespace) -> int:
    _, state = await _open_service(args.db)
    habit = state.get_habit(args.habit_id)
    if habit is None:
        print(f"Habit {args.habit_id} not found")
        return 1

    start, end = date_range(CalendarRange(args.range), today_local())
    cells = heatmap(habit, start, end)
    row = [" "] * (weekday_number(start) - 1)
    for day, intensity in cells.items():
        level = 0 if intensity == 0 else max(1, round(intensity * (len(_HEAT_LEVELS) - 1)))
        row.append(_HEAT_LEVELS[level])
        if day.weekday() == 5:  # Saturday closes a Sunday-first week
            print("".join(row))
            row = []
    if row:
        print("".join(row))
    return 0


async def cmd_export(args: argparse.Namespace) -> int:
    _, state = await _open_service(args.db)
    target = write_calendar(args.path, export_calendar(state))
    print(f"Wrote {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ToDoozies habit & recurrence core")
    parser.add_argument("--db", help="SQLite path (default: DATABASE_PATH from .env)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("parse", help="Parse a due-date phrase")
    p.add_argument("text")
    p.set_defaults(func=cmd_parse)

    p = subparsers.add_parser("add-habit", help="Create a habit")
    p.add_argument("title")
    p.add_argument("--category")
    p.add_argument("--target", type=int, help="Target completions per period")
    p.set_defaults(func=cmd_add_habit)

    p = subparsers.add_parser("complete", help="Mark a habit done for a day")
    p.add_argument("habit_id")
    p.add_argument("--date", type=_day_arg)
    p.set_defaults(func=cmd_complete)

    p = subparsers.add_parser("uncomplete", help="Remove a habit completion")
    p.add_argument("habit_id")
    p.add_argument("--date", type=_day_arg)
    p.set_defaults(func=cmd_uncomplete)

    p = subparsers.add_parser("protect", help="Use a protection day")
    p.add_argument("habit_id")
    p.add_argument("--date", type=_day_arg)
    p.set_defaults(func=cmd_protect)

    p = subparsers.add_parser("stats", help="Show habit statistics")
    p.add_argument("habit_id", nargs="?")
    p.set_defaults(func=cmd_stats)

    p = subparsers.add_parser("heatmap", help="Print a completion heatmap")
    p.add_argument("habit_id")
    p.add_argument("--range", choices=[r.value for r in CalendarRange], default="month")
    p.set_defaults(func=cmd_heatmap)

    p = subparsers.add_parser("export", help="Export tasks and habits as .ics")
    p.add_argument("path")
    p.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger.debug("Running command: %s", args.command)
    outcome = args.func(args)
    if asyncio.iscoroutine(outcome):
        outcome = asyncio.run(outcome)
    return outcome
