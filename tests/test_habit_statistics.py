"""Tests for src.core.habit_statistics."""

from datetime import date, datetime, timezone

import pytest

from src.core.habit_statistics import (
    HabitGrade,
    HabitStatistics,
    HabitTimeRange,
    average_streak,
    compute_statistics,
    grade_for_rate,
    range_completion_rate,
    rank_by_current_streak,
)
from src.core.habit_streak import recompute_streaks
from src.data.models import Habit

# Friday; the week started on Sunday 2024-03-10
TODAY = date(2024, 3, 15)


@pytest.fixture
def habit():
    days = {date(2024, 2, 20), date(2024, 3, 1), date(2024, 3, 14), date(2024, 3, 15)}
    h = Habit(
        task_id="t",
        completion_dates=days,
        total_completions=len(days),
        created_date=datetime(2024, 2, 15, 8, tzinfo=timezone.utc),
    )
    recompute_streaks(h, TODAY)
    return h


class TestRangeCompletionRate:
    def test_week_counts_elapsed_days(self, habit):
        assert range_completion_rate(habit, HabitTimeRange.WEEK, TODAY) == pytest.approx(2 / 6)

    def test_month(self, habit):
        assert range_completion_rate(habit, HabitTimeRange.MONTH, TODAY) == pytest.approx(3 / 15)

    def test_year_includes_leap_day(self, habit):
        assert range_completion_rate(habit, HabitTimeRange.YEAR, TODAY) == pytest.approx(4 / 75)

    def test_all_starts_at_creation(self, habit):
        assert range_completion_rate(habit, HabitTimeRange.ALL, TODAY) == pytest.approx(4 / 30)

    def test_all_is_capped_at_one_year(self, habit):
        rate = range_completion_rate(habit, HabitTimeRange.ALL, TODAY, earliest=date(2020, 1, 1))
        assert rate == pytest.approx(4 / 367)

    def test_display_names(self):
        assert HabitTimeRange.ALL.display_name == "All Time"


class TestAverageStreak:
    def test_mean_run_length(self):
        days = [date(2024, 2, 20), date(2024, 3, 1), date(2024, 3, 14), date(2024, 3, 15)]
        assert average_streak(days) == pytest.approx(4 / 3)

    def test_empty(self):
        assert average_streak([]) == 0.0

    def test_single_run(self):
        assert average_streak([date(2024, 1, d) for d in range(1, 8)]) == 7.0


class TestGrades:
    @pytest.mark.parametrize("rate, grade", [
        (0.95, HabitGrade.EXCELLENT),
        (0.9, HabitGrade.EXCELLENT),
        (0.85, HabitGrade.GOOD),
        (0.6, HabitGrade.FAIR),
        (0.45, HabitGrade.NEEDS_WORK),
        (0.1, HabitGrade.STRUGGLING),
    ])
    def test_thresholds(self, rate, grade):
        assert grade_for_rate(rate) is grade

    def test_display_name(self):
        assert HabitGrade.NEEDS_WORK.display_name == "Needs Work"


class TestComputeStatistics:
    def test_snapshot(self, habit):
        stats = compute_statistics(habit, TODAY)
        assert stats.habit_id == habit.id
        assert stats.total_completions == 4
        assert stats.current_streak == 2
        assert stats.longest_streak == 2
        assert stats.last_completion_date == TODAY
        assert stats.all_time_completion_rate == pytest.approx(4 / 30)
        assert stats.protection_days_available == 2
        assert stats.overall_grade is HabitGrade.STRUGGLING
        assert stats.average_completions_per_week == pytest.approx(2 / 6 * 7)

    def test_streak_is_computed_for_requested_day(self, habit):
        # Stored counters were refreshed on TODAY; a day later the streak has lapsed
        assert compute_statistics(habit, date(2024, 3, 16)).current_streak == 0
        assert compute_statistics(habit, date(2024, 3, 14)).current_streak == 1

    def test_stale_stored_streak_is_ignored(self, habit):
        habit.current_streak = 0
        habit.best_streak = 0
        stats = compute_statistics(habit, TODAY)
        assert stats.current_streak == 2
        assert stats.longest_streak == 2

    def test_empty_habit(self):
        stats = compute_statistics(Habit(task_id="t"), TODAY)
        assert stats.last_completion_date is None
        assert stats.average_streak == 0.0


def test_rank_by_current_streak():
    def _stats(streak):
        return HabitStatistics(
            habit_id=str(streak), total_completions=0, current_streak=streak, longest_streak=streak,
            average_streak=0.0, last_completion_date=None, weekly_completion_rate=0.0,
            monthly_completion_rate=0.0, yearly_completion_rate=0.0, all_time_completion_rate=0.0,
            protection_days_used=0, protection_days_available=2,
        )

    ranked = rank_by_current_streak([_stats(1), _stats(5), _stats(3)])
    assert [s.current_streak for s in ranked] == [5, 3, 1]
