"""
Tests for text report formatting.
"""

import pytest

from analytics import aggregate_by_category
from anomaly_detection import detect_anomalies
from budgeting import BudgetStatus
from currency import CurrencySettings
from date_grouping import group_by_date
from report_generator import ReportGenerator


@pytest.fixture
def reporter():
    return ReportGenerator()


class TestCategoryReport:
    """Tests for the category breakdown table."""

    def test_largest_category_first(self, reporter, make_expense):
        summaries = aggregate_by_category([make_expense(10, "Food"), make_expense(30, "Travel")])

        report = reporter.generate_category_report(summaries, "month")

        assert "CATEGORY BREAKDOWN (month)" in report
        assert report.index("Travel") < report.index("Food")
        assert "75%" in report
        assert "Total: $40" in report

    def test_empty(self, reporter):
        assert "No spending data found for period: week" in reporter.generate_category_report([], "week")


class TestOtherReports:
    """Tests for history, anomaly, forecast, budget and insight reports."""

    def test_history_report(self, reporter, make_expense):
        sections = group_by_date([
            make_expense(5, title="Bus", date="2024-03-10"),
            make_expense(7, title="Pizza", date="2024-03-12"),
        ])

        report = reporter.generate_history_report(sections)

        assert report.index("12 Mar 2024") < report.index("10 Mar 2024")
        assert "Pizza" in report

    def test_anomaly_report(self, reporter, make_expense):
        findings = detect_anomalies([make_expense(100) for _ in range(5)] + [make_expense(1000, title="TV")])

        report = reporter.generate_anomaly_report(findings)

        assert '"TV"' in report
        assert "1 transaction(s) flagged" in report

    def test_forecast_report(self, reporter):
        report = reporter.generate_forecast_report(1575, {"2024-02": 2000.0, "2024-01": 1000.0})

        assert report.index("2024-01") < report.index("2024-02")
        assert "Predicted next month: $1,575" in report

    def test_budget_report_flags_over_limit(self, reporter):
        status = BudgetStatus(budget=100, spent=150, remaining=-50, progress=1.0, is_over_budget=True)

        report = reporter.generate_budget_report(status, {"Food": 100}, {"Food": 150})

        assert "You are over budget this month!" in report
        assert "OVER" in report

    def test_insights_report(self, reporter):
        assert "- hello" in reporter.generate_insights_report(["hello"])

    def test_formatter_follows_base_currency(self, memory_store):
        settings = CurrencySettings(memory_store)
        settings.change_base_currency("GBP")

        assert ReportGenerator(settings.format).format_currency(1234.5) == "£1,234.5"
