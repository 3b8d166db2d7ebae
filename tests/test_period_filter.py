"""
Tests for period filtering with local-midnight cutoffs.
"""

from datetime import datetime

import pytest

from exceptions import AnalyticsError
from period_filter import Period, filter_expenses, parse_period, period_start

NOW = datetime(2024, 3, 15, 10, 0)  # a Friday


def _dates(expenses):
    return [e.date for e in expenses]


class TestPeriodStart:
    """Tests for the cutoff of each period."""

    def test_all_has_no_cutoff(self):
        assert period_start(Period.ALL, NOW) is None

    def test_day(self):
        assert period_start("day", NOW) == datetime(2024, 3, 15)

    def test_week_starts_monday(self):
        assert period_start("week", NOW) == datetime(2024, 3, 11)

    def test_week_on_monday_is_same_day(self):
        assert period_start("week", datetime(2024, 3, 11, 8)) == datetime(2024, 3, 11)

    def test_week_on_sunday_goes_back_six_days(self):
        assert period_start("week", datetime(2024, 3, 17, 8)) == datetime(2024, 3, 11)

    def test_month(self):
        assert period_start("month", NOW) == datetime(2024, 3, 1)

    def test_year(self):
        assert period_start("year", NOW) == datetime(2024, 1, 1)

    def test_invalid_period(self):
        with pytest.raises(AnalyticsError):
            parse_period("fortnight")


class TestFilterExpenses:
    """Tests for filter_expenses."""

    def test_day_filter(self, make_expense):
        expenses = [make_expense(date="2024-03-15"), make_expense(date="2024-03-14")]

        assert _dates(filter_expenses(expenses, "day", NOW)) == ["2024-03-15"]

    def test_week_filter_includes_monday_boundary(self, make_expense):
        expenses = [make_expense(date="2024-03-11"), make_expense(date="2024-03-10")]

        assert _dates(filter_expenses(expenses, Period.WEEK, NOW)) == ["2024-03-11"]

    def test_month_and_year(self, make_expense):
        expenses = [
            make_expense(date="2024-03-01"),
            make_expense(date="2024-02-29"),
            make_expense(date="2023-12-31"),
        ]

        assert _dates(filter_expenses(expenses, "month", NOW)) == ["2024-03-01"]
        assert _dates(filter_expenses(expenses, "year", NOW)) == ["2024-03-01", "2024-02-29"]

    def test_all_returns_new_list(self, make_expense):
        expenses = [make_expense(date="2020-01-01")]

        result = filter_expenses(expenses, "all", NOW)

        assert result == expenses
        assert result is not expenses

    def test_unparseable_dates_are_skipped(self, make_expense):
        expenses = [make_expense(date="yesterday"), make_expense(date="2024-03-15")]

        assert _dates(filter_expenses(expenses, "day", NOW)) == ["2024-03-15"]

    def test_input_is_not_modified(self, make_expense):
        expenses = [make_expense(date="2024-03-15"), make_expense(date="2024-01-01")]
        snapshot = list(expenses)

        filter_expenses(expenses, "day", NOW)

        assert expenses == snapshot
