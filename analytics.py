"""
Analytics module for expense aggregation.

This module provides the aggregation functions behind the category
breakdown, the top-category callout and the local insight messages. All
functions are pure: they read the expense list they are given and never
modify it.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from categorization import CategoryRegistry, get_default_registry
from models import Expense
from utils import month_key, parse_local_date, round_half_up

logger = logging.getLogger(__name__)

EXPENSE_COLUMNS = ["id", "title", "amount", "category", "date", "time"]

# Share of spending above which a category or the weekend is called out.
HIGH_SHARE_PERCENT = 40
MIN_RECORDS_FOR_AVERAGE = 5


@dataclass(frozen=True)
class CategorySummary:
    """
    Spending of one category within a set of expenses.

    Attributes:
        name: Category display name
        amount: Exact sum of the category's amounts
        percentage: amount / total * 100, rounded half up, independently per category
        color: Canonical category color, or the fallback gray
    """
    name: str
    amount: float
    percentage: int
    color: str

    @property
    def label(self) -> str:
        return f"{self.percentage}%"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def expenses_to_frame(expenses: Iterable[Expense]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per expense.

    Args:
        expenses: Expenses to convert

    Returns:
        DataFrame with EXPENSE_COLUMNS; amount is float64
    """
    rows = [
        {
            "id": e.id,
            "title": e.title,
            "amount": e.amount,
            "category": e.category,
            "date": e.date,
            "time": e.time,
        }
        for e in expenses
    ]
    df = pd.DataFrame(rows, columns=EXPENSE_COLUMNS)
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").astype("float64")
    return df


def total_spending(expenses: Iterable[Expense]) -> float:
    """Return the sum of all amounts."""
    return float(sum(e.amount for e in expenses))


def daily_total(expenses: Iterable[Expense], day: str) -> float:
    """Sum the amounts of expenses dated day (YYYY-MM-DD)."""
    return total_spending(e for e in expenses if e.date == day)


def monthly_total(expenses: Iterable[Expense], month: int, year: int) -> float:
    """
    Sum the amounts of expenses in a calendar month.

    Args:
        expenses: Expenses to sum
        month: Month number, 1-12
        year: Four-digit year

    Returns:
        Total for the month
    """
    prefix = f"{year:04d}-{month:02d}"
    return total_spending(e for e in expenses if month_key(e.date) == prefix)


def category_totals(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Sum amounts per category display name, in order of first occurrence."""
    totals: Dict[str, float] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, 0.0) + expense.amount
    return totals


def aggregate_by_category(
    expenses: Sequence[Expense],
    registry: Optional[CategoryRegistry] = None
) -> List[CategorySummary]:
    """
    Group expenses by category and compute per-category totals and shares.

    Percentages are rounded independently per category and are not
    renormalized, so they may sum to 99 or 101.

    Args:
        expenses: Expenses to aggregate
        registry: Optional category registry used for colors

    Returns:
        One CategorySummary per category, in order of first occurrence.
        Empty when there are no expenses or the total is zero.
    """
    if not expenses:
        return []

    registry = registry or get_default_registry()
    # Same running sums as the budget evaluator, so reports and alerts agree.
    by_category = category_totals(expenses)
    total = float(sum(by_category.values()))
    if total == 0:
        return []

    summaries = []
    for name, amount in by_category.items():
        summaries.append(
            CategorySummary(
                name=name,
                amount=amount,
                percentage=round_half_up(amount / total * 100),
                color=registry.color_for(name),
            )
        )
    logger.debug(f"Aggregated {len(expenses)} expenses into {len(summaries)} categories")
    return summaries


def category_breakdown_frame(
    expenses: Sequence[Expense],
    registry: Optional[CategoryRegistry] = None
) -> pd.DataFrame:
    """
    Return the category breakdown as a DataFrame sorted by amount, largest first.

    Columns: category, amount, percentage, color.
    """
    summaries = aggregate_by_category(expenses, registry)
    df = pd.DataFrame(
        [
            {"category": s.name, "amount": s.amount, "percentage": s.percentage, "color": s.color}
            for s in summaries
        ],
        columns=["category", "amount", "percentage", "color"],
    )
    if df.empty:
        return df
    return df.sort_values("amount", ascending=False, kind="stable").reset_index(drop=True)


def top_category(summaries: Sequence[CategorySummary]) -> Optional[CategorySummary]:
    """Return the category with the largest amount; ties keep the earlier category."""
    if not summaries:
        return None
    return sorted(summaries, key=lambda s: s.amount, reverse=True)[0]


def expenses_for_category(expenses: Iterable[Expense], name: str) -> List[Expense]:
    """Return the expenses of one category, most recent date first."""
    matching = [e for e in expenses if e.category == name]
    return sorted(matching, key=lambda e: e.date, reverse=True)


def generate_insights(expenses: Sequence[Expense]) -> List[str]:
    """
    Produce short, locally computed spending insights.

    Covers the top category share, the average transaction (when there are
    more than five records), and whether spending leans toward weekends.

    Args:
        expenses: Expenses to analyze

    Returns:
        List of insight messages; never empty
    """
    if not expenses:
        return ["Start adding expenses to get personalized insights!"]

    insights: List[str] = []
    total = total_spending(expenses)

    top = top_category(aggregate_by_category(expenses))
    if top is not None:
        insights.append(
            f"📊 Top Category: You spent {top.percentage}% of your total budget on {top.name}."
        )
        if top.percentage > HIGH_SHARE_PERCENT:
            insights.append(
                f"💡 Tip: Your spending on {top.name} is quite high. "
                "Consider setting a specific budget limit for this."
            )

    if len(expenses) > MIN_RECORDS_FOR_AVERAGE:
        average = round_half_up(total / len(expenses))
        insights.append(f"💳 Average Cost: On average, you spend about {average} per transaction.")

    weekend_spend = 0.0
    for expense in expenses:
        try:
            # weekday(): Saturday == 5, Sunday == 6
            if parse_local_date(expense.date).weekday() >= 5:
                weekend_spend += expense.amount
        except (TypeError, ValueError):
            logger.debug(f"Ignoring expense {expense.id} with invalid date in weekend analysis")

    if total > 0 and weekend_spend > total * HIGH_SHARE_PERCENT / 100:
        share = round_half_up(weekend_spend / total * 100)
        insights.append(
            f"📅 Weekend Warrior: You tend to spend a significant portion of your money ({share}%) on weekends."
        )
    else:
        insights.append("📅 Steady Spender: Your spending is well-distributed throughout the week.")

    return insights
