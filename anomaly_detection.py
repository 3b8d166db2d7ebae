"""
Outlier detection and next-period spend prediction.

Both analyses are local and intentionally simple: an expense is flagged when
it exceeds a fixed multiple of the overall average, and the forecast is the
average monthly spend plus a flat buffer (no trend, no seasonality).
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from analytics import expenses_to_frame
from models import Expense
from utils import format_number, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MULTIPLIER = 3.0
DEFAULT_MIN_RECORDS = 5
DEFAULT_FORECAST_BUFFER = 1.05

INSUFFICIENT_DATA = "insufficient_data"
HIGH_VALUE = "high_value"
NO_ANOMALIES = "no_anomalies"


@dataclass(frozen=True)
class Finding:
    """
    One line of anomaly-detection output.

    Attributes:
        kind: 'insufficient_data', 'high_value' or 'no_anomalies'
        message: Human-readable description
        expense: The flagged expense for 'high_value' findings
        average: Average transaction amount the threshold was derived from
    """
    kind: str
    message: str
    expense: Optional[Expense] = None
    average: Optional[float] = None


def detect_anomalies(
    expenses: Sequence[Expense],
    multiplier: float = DEFAULT_MULTIPLIER,
    min_records: int = DEFAULT_MIN_RECORDS
) -> List[Finding]:
    """
    Flag expenses whose amount is strictly above multiplier times the average.

    The average is taken over the whole input, not per category.

    Args:
        expenses: Expenses to analyze
        multiplier: Multiple of the average that marks an outlier
        min_records: Minimum number of expenses required to analyze

    Returns:
        Findings; always at least one entry
    """
    if len(expenses) < min_records:
        return [
            Finding(
                kind=INSUFFICIENT_DATA,
                message=f"Add more expenses (at least {min_records}) to detect anomalies.",
            )
        ]

    average = sum(e.amount for e in expenses) / len(expenses)
    threshold = average * multiplier
    logger.debug(f"Anomaly threshold {threshold:.2f} (average {average:.2f} x {multiplier})")

    findings = [
        Finding(
            kind=HIGH_VALUE,
            message=(
                f"⚠️ High Value: \"{e.title}\" ({format_number(e.amount)}) is significantly "
                f"higher than your average transaction of {round_half_up(average)}."
            ),
            expense=e,
            average=average,
        )
        for e in expenses
        if e.amount > threshold
    ]

    if not findings:
        return [
            Finding(
                kind=NO_ANOMALIES,
                message="✅ No suspicious or unusual transactions found.",
                average=average,
            )
        ]
    return findings


def monthly_totals(expenses: Sequence[Expense]) -> Dict[str, float]:
    """
    Total spend per calendar month.

    Returns:
        Mapping of 'YYYY-MM' to total, in order of first occurrence
    """
    if not expenses:
        return {}
    df = expenses_to_frame(expenses)
    df["month"] = df["date"].astype(str).str.slice(0, 7)
    totals = df.groupby("month", sort=False)["amount"].sum()
    return {month: float(total) for month, total in totals.items()}


def predict_next_period(
    expenses: Sequence[Expense],
    buffer: float = DEFAULT_FORECAST_BUFFER
) -> int:
    """
    Predict next month's spend as the average monthly total plus a buffer.

    Args:
        expenses: Expenses to base the prediction on
        buffer: Multiplier applied to the average (1.05 adds 5%)

    Returns:
        Rounded prediction; 0 when there is no data
    """
    totals = monthly_totals(expenses)
    if not totals:
        return 0
    average = sum(totals.values()) / len(totals)
    return round_half_up(average * buffer)
