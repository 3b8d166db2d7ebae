"""
Report generator module for formatting expense data.

This module turns analytics results into text reports for the CLI:
category breakdown tables, date-grouped history, anomaly findings,
the spending forecast, budget status and insights.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from tabulate import tabulate

from analytics import CategorySummary
from anomaly_detection import HIGH_VALUE, Finding
from budgeting import BudgetStatus
from currency import format_amount
from date_grouping import DateSection

logger = logging.getLogger(__name__)

TABLE_FORMAT = "grid"


class ReportGenerator:
    """
    Generate formatted text reports from expense analytics.

    Amounts are rendered through a formatter callable so reports follow the
    user's base currency (see CurrencySettings.format).
    """

    def __init__(self, formatter: Optional[Callable[[float], str]] = None, width: int = 80):
        """
        Initialize the report generator.

        Args:
            formatter: Callable formatting an amount (defaults to USD)
            width: Width of the banner lines
        """
        self.formatter = formatter or format_amount
        self.width = width
        logger.debug("Report generator initialized")

    def format_currency(self, amount: float) -> str:
        return self.formatter(amount)

    def _banner(self, title: str) -> List[str]:
        return ["=" * self.width, title, "=" * self.width]

    def generate_category_report(
        self,
        summaries: Sequence[CategorySummary],
        period_label: str = "all"
    ) -> str:
        """
        Generate the category breakdown table, largest category first.

        Args:
            summaries: Output of aggregate_by_category
            period_label: Period name shown in the title

        Returns:
            Formatted text report
        """
        if not summaries:
            return f"\nNo spending data found for period: {period_label}\n"

        ordered = sorted(summaries, key=lambda s: s.amount, reverse=True)
        rows = [[s.name, self.format_currency(s.amount), s.label] for s in ordered]
        total = sum(s.amount for s in summaries)

        report_lines = self._banner(f"CATEGORY BREAKDOWN ({period_label})")
        report_lines.append(
            tabulate(rows, headers=["Category", "Amount", "Share"], tablefmt=TABLE_FORMAT)
        )
        report_lines.append(f"Total: {self.format_currency(total)}")
        return "\n".join(report_lines)

    def generate_history_report(self, sections: Sequence[DateSection], period_label: str = "all") -> str:
        """
        Generate the date-grouped expense history, newest day first.
        """
        if not sections:
            return f"\nNo expenses found for period: {period_label}\n"

        report_lines = self._banner(f"EXPENSE HISTORY ({period_label})")
        for section in sections:
            day_total = sum(e.amount for e in section.data)
            report_lines.append("")
            report_lines.append(f"{section.title}  ({self.format_currency(day_total)})")
            rows = [
                [e.id, e.time or "", e.title, e.category, self.format_currency(e.amount)]
                for e in section.data
            ]
            report_lines.append(
                tabulate(rows, headers=["ID", "Time", "Title", "Category", "Amount"], tablefmt=TABLE_FORMAT)
            )
        return "\n".join(report_lines)

    def generate_anomaly_report(self, findings: Sequence[Finding]) -> str:
        """Generate the anomaly report; findings are listed in input order."""
        report_lines = self._banner("ANOMALY CHECK")
        report_lines.extend(f.message for f in findings)
        flagged = sum(1 for f in findings if f.kind == HIGH_VALUE)
        if flagged:
            report_lines.append("-" * self.width)
            report_lines.append(f"{flagged} transaction(s) flagged")
        return "\n".join(report_lines)

    def generate_forecast_report(self, forecast: int, monthly: Dict[str, float]) -> str:
        """Generate the monthly totals table and next-month prediction."""
        report_lines = self._banner("SPENDING FORECAST")
        if monthly:
            rows = [[month, self.format_currency(total)] for month, total in sorted(monthly.items())]
            report_lines.append(tabulate(rows, headers=["Month", "Total"], tablefmt=TABLE_FORMAT))
        else:
            report_lines.append("No monthly history yet.")
        report_lines.append(f"Predicted next month: {self.format_currency(forecast)}")
        return "\n".join(report_lines)

    def generate_budget_report(
        self,
        status: BudgetStatus,
        limits: Optional[Dict[str, float]] = None,
        category_spent: Optional[Dict[str, float]] = None
    ) -> str:
        """
        Generate the monthly budget status and the category limits table.
        """
        report_lines = self._banner("BUDGET STATUS")
        report_lines.extend([
            f"Budget:     {self.format_currency(status.budget)}",
            f"Spent:      {self.format_currency(status.spent)}",
            f"Remaining:  {self.format_currency(status.remaining)}",
            f"Used:       {status.percentage_used}%",
        ])
        if status.is_over_budget:
            report_lines.append("You are over budget this month!")

        if limits:
            category_spent = category_spent or {}
            rows = []
            for category, limit in sorted(limits.items()):
                spent = category_spent.get(category, 0.0)
                rows.append([
                    category,
                    self.format_currency(limit),
                    self.format_currency(spent),
                    "OVER" if spent > limit else "ok",
                ])
            report_lines.append("")
            report_lines.append(
                tabulate(rows, headers=["Category", "Limit", "Spent", "Status"], tablefmt=TABLE_FORMAT)
            )
        return "\n".join(report_lines)

    def generate_insights_report(self, insights: Sequence[str]) -> str:
        report_lines = self._banner("INSIGHTS")
        report_lines.extend(f"- {line}" for line in insights)
        return "\n".join(report_lines)
