"""Tests for recurring date generation and its labels."""

from datetime import date

import pytest

from backoffice.domain.models import RecurrencePattern
from backoffice.scheduling.recurrence import (
    add_months,
    find_nth_day_of_month,
    generate_recurring_dates,
    get_recurrence_description,
    get_recurrence_presets_for_date,
)


def _after(n, **kwargs):
    return RecurrencePattern(end_type="after", occurrences=n, **kwargs)


class TestGenerateRecurringDates:
    def test_daily(self):
        dates = generate_recurring_dates(date(2024, 1, 1), _after(5, type="daily"))
        assert dates == [date(2024, 1, d) for d in range(1, 6)]

    def test_end_date_inclusive(self):
        pattern = RecurrencePattern(type="daily", end_type="on", end_date="2024-01-03")
        assert generate_recurring_dates(date(2024, 1, 1), pattern)[-1] == date(2024, 1, 3)

    def test_open_ended_is_capped(self):
        dates = generate_recurring_dates(
            date(2024, 1, 1), RecurrencePattern(type="daily"), max_occurrences=10,
        )
        assert len(dates) == 10

    def test_weekday_skips_weekend(self):
        dates = generate_recurring_dates(date(2024, 1, 5), _after(3, type="weekday"))
        assert dates == [date(2024, 1, 5), date(2024, 1, 8), date(2024, 1, 9)]

    def test_weekly_on_days(self):
        dates = generate_recurring_dates(
            date(2024, 1, 1), _after(4, type="weekly", days_of_week=[3, 1]),
        )
        assert dates == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 10)]

    def test_every_other_week(self):
        dates = generate_recurring_dates(
            date(2024, 1, 1), _after(3, type="weekly", interval=2, days_of_week=[1]),
        )
        assert dates == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]

    def test_monthly_clamps_to_month_end(self):
        dates = generate_recurring_dates(date(2024, 1, 31), _after(3, type="monthly"))
        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_monthly_nth_weekday(self):
        pattern = _after(3, type="monthly", days_of_week=[2], week_of_month=2)
        dates = generate_recurring_dates(date(2024, 1, 9), pattern)
        assert dates == [date(2024, 1, 9), date(2024, 2, 13), date(2024, 3, 12)]

    def test_yearly_leap_day(self):
        dates = generate_recurring_dates(date(2024, 2, 29), _after(2, type="yearly"))
        assert dates == [date(2024, 2, 29), date(2025, 2, 28)]


class TestHelpers:
    def test_add_months_across_year(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    @pytest.mark.parametrize("any_day, weekday, n, expected", [
        (date(2024, 2, 1), 4, 5, date(2024, 2, 29)),
        (date(2023, 2, 1), 5, 5, date(2023, 2, 24)),
        (date(2024, 4, 1), 1, 1, date(2024, 4, 1)),
    ])
    def test_nth_day_of_month(self, any_day, weekday, n, expected):
        assert find_nth_day_of_month(any_day, weekday, n) == expected


class TestDescriptions:
    def test_weekly_after(self):
        pattern = _after(10, type="weekly", days_of_week=[1, 3])
        assert get_recurrence_description(pattern) == "Weekly on Monday, Wednesday, 10 times"

    def test_daily_until(self):
        pattern = RecurrencePattern(type="daily", end_type="on", end_date=date(2025, 1, 5))
        assert get_recurrence_description(pattern) == "Daily, until Jan 5, 2025"

    def test_every_n_days(self):
        assert get_recurrence_description(RecurrencePattern(type="daily", interval=3)) == "Every 3 days"


class TestPresets:
    def test_last_weekday_of_month(self):
        presets = get_recurrence_presets_for_date(date(2024, 1, 30))
        labels = [p["label"] for p in presets]
        assert "Weekly on Tuesday" in labels
        assert "Monthly on the last Tuesday" in labels

    def test_ordinal_and_annual(self):
        presets = {p["value"]: p for p in get_recurrence_presets_for_date(date(2024, 1, 9))}
        assert presets["monthly"]["label"] == "Monthly on the second Tuesday"
        assert presets["monthly"]["pattern"]["week_of_month"] == 2
        assert presets["yearly"]["label"] == "Annually on January 9"
        assert presets["none"]["pattern"] is None


class TestPatternSerialization:
    @pytest.mark.parametrize("pattern", [
        RecurrencePattern(type="daily", interval=2),
        RecurrencePattern(type="weekly", days_of_week=[5, 1], end_type="after", occurrences=6),
        RecurrencePattern(type="monthly", week_of_month=5, days_of_week=[2],
                          end_type="on", end_date=date(2024, 12, 31)),
        RecurrencePattern(type="yearly", month_of_year=7, day_of_month=4),
    ])
    def test_dict_round_trip(self, pattern):
        assert RecurrencePattern.from_dict(pattern.to_dict()) == pattern

    def test_dict_is_plain_json(self):
        d = RecurrencePattern(
            type="monthly", day_of_month=15, end_type="on", end_date=date(2024, 6, 30),
        ).to_dict()
        assert d["type"] == "monthly"
        assert d["end_type"] == "on"
        assert d["end_date"] == "2024-06-30"
