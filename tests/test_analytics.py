"""
Unit tests for the analytics module.

Tests category aggregation, totals and locally computed insights.
"""

import pytest

from analytics import (
    aggregate_by_category,
    category_breakdown_frame,
    category_totals,
    expenses_for_category,
    expenses_to_frame,
    generate_insights,
    monthly_total,
    top_category,
    total_spending,
)


@pytest.fixture
def sample_expenses(make_expense):
    """Mixed expenses across three categories."""
    return [
        make_expense(10.0, "Food", "2024-03-11"),
        make_expense(20.5, "Shopping", "2024-03-12"),
        make_expense(5.25, "Food", "2024-03-13"),
        make_expense(64.25, "Housing", "2024-02-01"),
    ]


class TestAggregateByCategory:
    """Tests for per-category totals and shares."""

    def test_amounts_sum_to_input_sum(self, sample_expenses):
        summaries = aggregate_by_category(sample_expenses)

        assert sum(s.amount for s in summaries) == total_spending(sample_expenses)

    def test_fractional_amounts_sum_exactly(self, make_expense):
        """Tenths do not add up to round numbers in binary; the totals must still match."""
        expenses = [make_expense(0.1, "Food") for _ in range(10)] + [make_expense(0.2, "Travel")]

        summaries = aggregate_by_category(expenses)

        assert sum(s.amount for s in summaries) == sum(e.amount for e in expenses)
        assert {s.name: s.amount for s in summaries} == category_totals(expenses)

    def test_order_of_first_occurrence(self, sample_expenses):
        assert [s.name for s in aggregate_by_category(sample_expenses)] == ["Food", "Shopping", "Housing"]

    def test_percentages_in_range_and_rounded_half_up(self, make_expense):
        """Three equal thirds round independently to 33 and need not total 100."""
        summaries = aggregate_by_category([
            make_expense(1.0, "Food"),
            make_expense(1.0, "Travel"),
            make_expense(1.0, "Housing"),
        ])

        assert [s.percentage for s in summaries] == [33, 33, 33]
        assert all(0 <= s.percentage <= 100 for s in summaries)

    def test_half_percent_rounds_up(self, make_expense):
        summaries = aggregate_by_category([make_expense(12.5, "Food"), make_expense(87.5, "Travel")])

        assert [s.percentage for s in summaries] == [13, 88]
        assert summaries[0].label == "13%"

    def test_colors_come_from_registry(self, make_expense):
        summaries = aggregate_by_category([make_expense(1, "Food"), make_expense(1, "Custom Stuff")])

        assert summaries[0].color == "#FFD700"
        assert summaries[1].color == "#808080"

    def test_empty_input(self):
        assert aggregate_by_category([]) == []

    def test_zero_total(self, make_expense):
        assert aggregate_by_category([make_expense(0.0), make_expense(0.0)]) == []

    def test_input_not_modified(self, sample_expenses):
        snapshot = list(sample_expenses)
        aggregate_by_category(sample_expenses)
        assert sample_expenses == snapshot


class TestTotals:
    """Tests for totals helpers."""

    def test_monthly_total(self, sample_expenses):
        assert monthly_total(sample_expenses, 3, 2024) == pytest.approx(35.75)
        assert monthly_total(sample_expenses, 2, 2024) == pytest.approx(64.25)
        assert monthly_total(sample_expenses, 1, 2024) == 0

    def test_category_totals(self, sample_expenses):
        assert category_totals(sample_expenses) == {
            "Food": pytest.approx(15.25),
            "Shopping": 20.5,
            "Housing": 64.25,
        }

    def test_expenses_to_frame_columns(self, sample_expenses):
        df = expenses_to_frame(sample_expenses)
        assert list(df.columns) == ["id", "title", "amount", "category", "date", "time"]
        assert df["amount"].dtype == "float64"
        assert len(df) == 4


class TestBreakdownHelpers:
    """Tests for sorted breakdown, top category and drill-down."""

    def test_breakdown_frame_sorted_desc(self, sample_expenses):
        df = category_breakdown_frame(sample_expenses)
        assert list(df["category"]) == ["Housing", "Shopping", "Food"]

    def test_breakdown_frame_empty(self):
        assert category_breakdown_frame([]).empty

    def test_top_category(self, sample_expenses):
        assert top_category(aggregate_by_category(sample_expenses)).name == "Housing"
        assert top_category([]) is None

    def test_expenses_for_category_newest_first(self, sample_expenses):
        food = expenses_for_category(sample_expenses, "Food")
        assert [e.date for e in food] == ["2024-03-13", "2024-03-11"]


class TestInsights:
    """Tests for generate_insights."""

    def test_empty(self):
        assert generate_insights([]) == ["Start adding expenses to get personalized insights!"]

    def test_high_share_tip_and_weekend(self, make_expense):
        # 2024-03-16 is a Saturday
        expenses = [make_expense(90, "Food", "2024-03-16"), make_expense(10, "Travel", "2024-03-13")]

        insights = generate_insights(expenses)

        assert insights[0] == "📊 Top Category: You spent 90% of your total budget on Food."
        assert insights[1].startswith("💡 Tip: Your spending on Food is quite high.")
        assert insights[-1].startswith("📅 Weekend Warrior")
        assert "(90%)" in insights[-1]

    def test_average_after_five_records(self, make_expense):
        expenses = [make_expense(10, c, "2024-03-13") for c in ("Food", "Travel", "Housing", "Fuel", "Family", "Education")]

        insights = generate_insights(expenses)

        assert "💳 Average Cost: On average, you spend about 10 per transaction." in insights
        assert insights[-1].startswith("📅 Steady Spender")
