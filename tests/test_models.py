"""
Tests for the expense data model and input validation.
"""

import json

import pytest

from exceptions import ValidationError
from models import (
    DEFAULT_CATEGORY,
    UNTITLED_EXPENSE,
    Category,
    Expense,
    category_name,
    parse_amount,
    validate_expense_input,
)


class TestExpenseSerialization:
    """Tests for the persisted JSON shape."""

    def test_json_round_trip_is_identical(self):
        """Serializing and parsing an expense yields the same record."""
        expense = Expense(
            id="1710497000000123",
            title="Coffee",
            amount=4.5,
            category="Food",
            date="2024-03-15",
            time="09:45 AM",
            color="#FFD700",
            icon="🍔",
        )

        restored = Expense.from_dict(json.loads(json.dumps(expense.to_dict())))

        assert restored == expense

    def test_optional_fields_are_omitted(self):
        expense = Expense(id="1", title="Bus", amount=2.0, category="Transportation", date="2024-03-15")

        assert set(expense.to_dict()) == {"id", "title", "amount", "category", "date"}

    def test_embedded_category_object_is_normalized(self):
        """Older records stored the category as an object."""
        record = {
            "id": "1",
            "title": "Pizza",
            "amount": "12.5",
            "category": {"name": "Food", "icon": "🍔", "color": "#FFD700"},
            "date": "2024-03-15",
        }

        expense = Expense.from_dict(record)

        assert expense.category == "Food"
        assert expense.amount == 12.5

    def test_missing_required_field_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            Expense.from_dict({"id": "1", "title": "x"})
        assert "amount" in str(exc_info.value)

    def test_non_numeric_amount_raises(self):
        with pytest.raises(ValidationError):
            Expense.from_dict({"id": "1", "amount": "abc", "date": "2024-03-15"})

    def test_with_changes_normalizes_category(self):
        expense = Expense(id="1", title="x", amount=1.0, category="Food", date="2024-03-15")

        changed = expense.with_changes(category={"name": "Travel"}, amount=2.0)

        assert changed.category == "Travel"
        assert changed.amount == 2.0
        assert expense.amount == 1.0


class TestCategoryName:
    """Tests for category normalization."""

    @pytest.mark.parametrize("value,expected", [
        ("Food", "Food"),
        ({"name": "Travel", "color": "#00CED1"}, "Travel"),
        (Category("Housing"), "Housing"),
        (None, DEFAULT_CATEGORY),
        ("", DEFAULT_CATEGORY),
        ({"color": "#000"}, DEFAULT_CATEGORY),
        (42, DEFAULT_CATEGORY),
    ])
    def test_category_name(self, value, expected):
        assert category_name(value) == expected


class TestValidation:
    """Tests for user-entered amounts and titles."""

    def test_parse_amount_accepts_thousands_separator(self):
        assert parse_amount("1,250.50") == 1250.5

    @pytest.mark.parametrize("raw", ["abc", "", "   ", "-5", "nan", "inf", True, None])
    def test_parse_amount_rejects_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_amount(raw)

    def test_empty_title_gets_placeholder(self):
        assert validate_expense_input("", "12") == (UNTITLED_EXPENSE, 12.0)

    def test_title_is_trimmed(self):
        assert validate_expense_input("  Lunch ", 8) == ("Lunch", 8.0)

    def test_both_empty_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_expense_input("", "")
