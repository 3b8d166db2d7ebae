"""
Period filtering for expense lists.

A period is a relative window ending now: the current day, week (starting
Monday), month or year, or 'all'. Expense dates are compared as local
midnight of their calendar day, and the boundary day is included.
"""

import enum
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from exceptions import AnalyticsError
from models import Expense
from utils import parse_local_date

logger = logging.getLogger(__name__)


class Period(enum.Enum):
    """Enumeration of supported filter periods."""
    ALL = "all"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def parse_period(value: Union[str, Period]) -> Period:
    """
    Convert a period name into a Period.

    Raises:
        AnalyticsError: If the name is not one of all/day/week/month/year
    """
    if isinstance(value, Period):
        return value
    try:
        return Period(str(value).strip().lower())
    except ValueError as e:
        raise AnalyticsError(
            f"Invalid period: {value}. Use one of: {', '.join(p.value for p in Period)}",
            details={"period": value},
            original_error=e
        ) from e


def period_start(period: Union[str, Period], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Compute the local-midnight cutoff for a period.

    Args:
        period: Period or period name
        now: Reference instant (defaults to the current local time)

    Returns:
        Cutoff datetime, or None for Period.ALL
    """
    period = parse_period(period)
    if period is Period.ALL:
        return None

    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period is Period.DAY:
        return midnight
    if period is Period.WEEK:
        # weekday(): Monday == 0
        return midnight - timedelta(days=midnight.weekday())
    if period is Period.MONTH:
        return midnight.replace(day=1)
    return midnight.replace(month=1, day=1)


def filter_expenses(
    expenses: Iterable[Expense],
    period: Union[str, Period],
    now: Optional[datetime] = None
) -> List[Expense]:
    """
    Select the expenses dated at or after the period's cutoff.

    Args:
        expenses: Expenses to filter (not modified)
        period: Period or period name
        now: Reference instant (defaults to the current local time)

    Returns:
        New list with the matching expenses in their original order
    """
    cutoff = period_start(period, now)
    if cutoff is None:
        return list(expenses)

    selected: List[Expense] = []
    for expense in expenses:
        try:
            expense_date = parse_local_date(expense.date)
        except (TypeError, ValueError):
            logger.debug(f"Skipping expense {expense.id} with unparseable date '{expense.date}'")
            continue
        if expense_date >= cutoff:
            selected.append(expense)
    return selected
