"""
Data model for expenses and categories.

An Expense is the only persisted entity. Its category is normalized to a
display name when a record enters the application (on load and on create),
so no other module needs to care whether a stored category was a string or
an embedded object.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from exceptions import ValidationError


DEFAULT_CATEGORY = "General"
UNTITLED_EXPENSE = "Untitled Expense"
FALLBACK_COLOR = "#808080"

_OPTIONAL_FIELDS = ("time", "color", "icon")


@dataclass(frozen=True)
class Category:
    """
    Canonical display attributes of a category.

    Attributes:
        name: Category name, also the lookup key
        icon: Emoji or icon identifier
        color: Hex color string
    """
    name: str
    icon: str = ""
    color: str = FALLBACK_COLOR


def category_name(value: Any) -> str:
    """
    Normalize a stored category value to its display name.

    Mappings and Category objects yield their name; non-empty strings are
    returned as-is. Anything else, including empty names, becomes 'General'.
    """
    if isinstance(value, Category):
        return value.name or DEFAULT_CATEGORY
    if isinstance(value, Mapping):
        name = value.get("name")
        return name if isinstance(name, str) and name else DEFAULT_CATEGORY
    if isinstance(value, str) and value:
        return value
    return DEFAULT_CATEGORY


@dataclass(frozen=True)
class Expense:
    """
    A single recorded spending transaction.

    Attributes:
        id: Unique id assigned at creation
        title: Free-text description
        amount: Non-negative amount
        category: Display name of the category
        date: Local calendar date, YYYY-MM-DD
        time: Optional local time of day, informational only
        color: Optional color snapshot taken from the category at creation
        icon: Optional icon snapshot taken from the category at creation
    """
    id: str
    title: str
    amount: float
    category: str
    date: str
    time: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape; absent optional fields are omitted."""
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "date": self.date,
        }
        for name in _OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Expense":
        """
        Build an Expense from its persisted JSON shape.

        Raises:
            ValidationError: If a required field is missing or the amount is not numeric
        """
        missing = [name for name in ("id", "amount", "date") if name not in data]
        if missing:
            raise ValidationError(
                "Stored expense is missing required fields",
                details={"missing": ",".join(missing)}
            )
        try:
            amount = float(data["amount"])
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "Stored expense has a non-numeric amount",
                details={"id": data.get("id"), "amount": data.get("amount")},
                original_error=e
            ) from e

        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            amount=amount,
            category=category_name(data.get("category")),
            date=str(data["date"]),
            time=data.get("time"),
            color=data.get("color"),
            icon=data.get("icon"),
        )

    def with_changes(self, **changes: Any) -> "Expense":
        """Return a copy with the given fields replaced; category values are normalized."""
        if "category" in changes:
            changes["category"] = category_name(changes["category"])
        return replace(self, **changes)


def parse_amount(raw: Any) -> float:
    """
    Parse a user-entered amount.

    Commas used as thousands separators are accepted ('1,250.50').

    Raises:
        ValidationError: If the value is empty, non-numeric, not finite or negative
    """
    if isinstance(raw, bool):
        raise ValidationError("Amount must be a number", details={"amount": raw})
    if isinstance(raw, str):
        cleaned = raw.strip().replace(",", "")
        if not cleaned:
            raise ValidationError("Please enter an amount")
    else:
        cleaned = raw
    try:
        amount = float(cleaned)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "Please enter a valid number",
            details={"amount": raw},
            original_error=e
        ) from e
    if not math.isfinite(amount):
        raise ValidationError("Amount must be a finite number", details={"amount": raw})
    if amount < 0:
        raise ValidationError("Amount cannot be negative", details={"amount": raw})
    return amount


def validate_expense_input(title: Optional[str], amount: Any) -> Tuple[str, float]:
    """
    Validate the title/amount pair a user entered for a new or edited expense.

    Args:
        title: Entered title; an empty title becomes 'Untitled Expense'
        amount: Entered amount as text or number

    Returns:
        Tuple of (final_title, amount)

    Raises:
        ValidationError: If both fields are empty or the amount is invalid
    """
    title = (title or "").strip()
    if not title and (amount is None or (isinstance(amount, str) and not amount.strip())):
        raise ValidationError("Please enter an amount and a title.")
    return title or UNTITLED_EXPENSE, parse_amount(amount)
