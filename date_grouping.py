"""
Date grouping of expenses into history sections, newest day first.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from models import Expense
from utils import format_date_label, parse_local_date

logger = logging.getLogger(__name__)


@dataclass
class DateSection:
    """
    Expenses recorded on one calendar day.

    Attributes:
        date: The grouping key, YYYY-MM-DD
        title: Human-formatted label such as '25 Mar 2024'
        data: Expenses on that day, in their original relative order
    """
    date: str
    title: str
    data: List[Expense] = field(default_factory=list)


def group_by_date(expenses: Iterable[Expense]) -> List[DateSection]:
    """
    Bucket expenses by their exact date string.

    Sections are ordered by date descending. Expenses whose date cannot be
    parsed are grouped under their raw string and sorted after all valid dates.

    Args:
        expenses: Expenses to group (not modified)

    Returns:
        Ordered list of DateSection
    """
    grouped: Dict[str, List[Expense]] = {}
    for expense in expenses:
        grouped.setdefault(expense.date, []).append(expense)

    valid: List[str] = []
    invalid: List[str] = []
    for date_key in grouped:
        try:
            parse_local_date(date_key)
            valid.append(date_key)
        except (TypeError, ValueError):
            logger.warning(f"Expense date '{date_key}' is not a valid YYYY-MM-DD date")
            invalid.append(date_key)

    valid.sort(key=parse_local_date, reverse=True)

    sections = [
        DateSection(date=date_key, title=format_date_label(date_key), data=grouped[date_key])
        for date_key in valid
    ]
    sections.extend(
        DateSection(date=date_key, title=date_key, data=grouped[date_key])
        for date_key in invalid
    )
    return sections
