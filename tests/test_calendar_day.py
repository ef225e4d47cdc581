"""Tests for src.core.calendar_day — day-granularity helpers."""

from datetime import date, datetime, timezone

from src.core.calendar_day import (
    add_months,
    day_difference,
    days_in_month,
    is_same_day,
    iter_days,
    last_day_of_month,
    now_local,
    start_of_day,
    start_of_next_month,
    start_of_week,
    to_day,
    weekday_number,
)


class TestWeekdayNumber:
    def test_sunday_is_one(self):
        assert weekday_number(date(2024, 1, 7)) == 1

    def test_saturday_is_seven(self):
        assert weekday_number(date(2024, 1, 6)) == 7

    def test_accepts_datetime(self):
        assert weekday_number(datetime(2024, 1, 8, 15, 30)) == 2


class TestDayArithmetic:
    def test_day_difference_ignores_time(self):
        assert day_difference(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 1)) == 1

    def test_day_difference_negative(self):
        assert day_difference(date(2024, 1, 5), date(2024, 1, 1)) == -4

    def test_is_same_day(self):
        assert is_same_day(datetime(2024, 3, 1, 8), date(2024, 3, 1))
        assert not is_same_day(date(2024, 3, 1), date(2024, 3, 2))

    def test_start_of_day_keeps_tzinfo(self):
        value = datetime(2024, 3, 1, 17, 45, tzinfo=timezone.utc)
        assert start_of_day(value) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_start_of_day_from_date(self):
        assert start_of_day(date(2024, 3, 1)) == datetime(2024, 3, 1, 0, 0)

    def test_to_day(self):
        assert to_day(datetime(2024, 3, 1, 12)) == date(2024, 3, 1)


class TestMonths:
    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_days_in_month_leap_year(self):
        assert days_in_month(2024, 2) == 29
        assert days_in_month(2023, 2) == 28

    def test_last_day_of_month(self):
        assert last_day_of_month(date(2024, 4, 10)) == date(2024, 4, 30)

    def test_start_of_next_month_rolls_year(self):
        assert start_of_next_month(date(2024, 12, 15)) == date(2025, 1, 1)


class TestWeeks:
    def test_start_of_week_is_sunday(self):
        assert start_of_week(date(2024, 1, 10)) == date(2024, 1, 7)

    def test_start_of_week_on_sunday_is_same_day(self):
        assert start_of_week(date(2024, 1, 7)) == date(2024, 1, 7)


class TestIterDays:
    def test_inclusive(self):
        days = list(iter_days(date(2024, 2, 27), date(2024, 3, 1)))
        assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_inverted_range_is_empty(self):
        assert list(iter_days(date(2024, 3, 2), date(2024, 3, 1))) == []


def test_now_local_is_timezone_aware():
    assert now_local().tzinfo is not None
