"""Tests for recurrence pattern expansion."""

from datetime import date

import pytest

from booking_engine.domain.slots.recurrence import expand
from booking_engine.errors import ValidationError


class TestDaily:
    def test_interval_and_max_occurrences(self):
        pattern = {"type": "daily", "interval": 2, "maxOccurrences": 3}
        assert list(expand(pattern, date(2026, 1, 1))) == [
            date(2026, 1, 1),
            date(2026, 1, 3),
            date(2026, 1, 5),
        ]

    def test_window_end_bounds_unterminated_pattern(self):
        dates = list(expand({"type": "daily"}, date(2026, 1, 1), window_end=date(2026, 1, 3)))
        assert dates == [date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 3)]

    def test_max_occurrences_counts_from_anchor(self):
        pattern = {"type": "daily", "maxOccurrences": 5}
        dates = list(expand(pattern, date(2026, 1, 1), window_start=date(2026, 1, 4)))
        assert dates == [date(2026, 1, 4), date(2026, 1, 5)]

    def test_end_date_is_inclusive(self):
        pattern = {"type": "daily", "endDate": "2026-01-03"}
        dates = list(expand(pattern, date(2026, 1, 1), window_end=date(2026, 12, 31)))
        assert dates[-1] == date(2026, 1, 3)

    def test_earlier_of_end_date_and_window_end_wins(self):
        pattern = {"type": "daily", "endDate": "2026-01-10"}
        dates = list(expand(pattern, date(2026, 1, 1), window_end=date(2026, 1, 2)))
        assert dates == [date(2026, 1, 1), date(2026, 1, 2)]

    def test_expansion_is_restartable(self):
        pattern = {"type": "daily", "interval": 3, "maxOccurrences": 4}
        first = list(expand(pattern, date(2026, 2, 1)))
        second = list(expand(pattern, date(2026, 2, 1)))
        assert first == second
        assert len(first) == 4


class TestWeekly:
    def test_every_other_week_on_monday_and_wednesday(self):
        # 2026-03-02 is a Monday; 1 = Monday, 3 = Wednesday
        pattern = {"type": "weekly", "interval": 2, "daysOfWeek": [1, 3], "endDate": "2026-03-31"}
        assert list(expand(pattern, date(2026, 3, 2))) == [
            date(2026, 3, 2),
            date(2026, 3, 4),
            date(2026, 3, 16),
            date(2026, 3, 18),
            date(2026, 3, 30),
        ]

    def test_sunday_is_index_zero(self):
        pattern = {"type": "weekly", "daysOfWeek": [0], "maxOccurrences": 2}
        assert list(expand(pattern, date(2026, 3, 2))) == [date(2026, 3, 8), date(2026, 3, 15)]

    def test_empty_days_yield_nothing(self):
        pattern = {"type": "weekly", "daysOfWeek": []}
        assert list(expand(pattern, date(2026, 3, 2), window_end=date(2026, 12, 31))) == []


class TestMonthly:
    def test_day_31_skips_short_months(self):
        pattern = {"type": "monthly", "dayOfMonth": 31, "maxOccurrences": 4}
        assert list(expand(pattern, date(2026, 1, 31))) == [
            date(2026, 1, 31),
            date(2026, 3, 31),
            date(2026, 5, 31),
            date(2026, 7, 31),
        ]

    def test_defaults_to_anchor_day(self):
        pattern = {"type": "monthly", "endDate": "2026-04-15"}
        assert list(expand(pattern, date(2026, 1, 15))) == [
            date(2026, 1, 15),
            date(2026, 2, 15),
            date(2026, 3, 15),
            date(2026, 4, 15),
        ]

    def test_interval_steps_months(self):
        pattern = {"type": "monthly", "interval": 3, "dayOfMonth": 1, "maxOccurrences": 3}
        assert list(expand(pattern, date(2026, 1, 1))) == [
            date(2026, 1, 1),
            date(2026, 4, 1),
            date(2026, 7, 1),
        ]

    def test_day_before_anchor_starts_next_month(self):
        pattern = {"type": "monthly", "dayOfMonth": 5, "maxOccurrences": 1}
        assert list(expand(pattern, date(2026, 1, 20))) == [date(2026, 2, 5)]

    def test_impossible_every_other_month_pattern_terminates(self):
        # Day 31 every 12 months starting in April never exists
        pattern = {"type": "monthly", "interval": 12, "dayOfMonth": 31}
        assert list(expand(pattern, date(2026, 4, 1))) == []


class TestYearly:
    def test_leap_day(self):
        pattern = {"type": "yearly", "monthOfYear": 2, "dayOfMonth": 29, "maxOccurrences": 3}
        assert list(expand(pattern, date(2024, 2, 29))) == [
            date(2024, 2, 29),
            date(2028, 2, 29),
            date(2032, 2, 29),
        ]

    def test_impossible_calendar_date_rejected(self):
        with pytest.raises(ValidationError):
            expand({"type": "yearly", "monthOfYear": 4, "dayOfMonth": 31}, date(2026, 1, 1))


class TestValidation:
    def test_interval_below_one(self):
        with pytest.raises(ValidationError):
            expand({"type": "daily", "interval": 0}, date(2026, 1, 1))

    def test_both_termination_rules(self):
        pattern = {"type": "daily", "maxOccurrences": 3, "endDate": "2026-02-01"}
        with pytest.raises(ValidationError):
            expand(pattern, date(2026, 1, 1))

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            expand({"type": "hourly"}, date(2026, 1, 1))

    def test_weekday_out_of_range(self):
        with pytest.raises(ValidationError):
            expand({"type": "weekly", "daysOfWeek": [7]}, date(2026, 1, 1))
