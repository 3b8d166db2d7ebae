"""
Unit tests for the unified exception hierarchy.

Tests exception creation, attributes, string representations, and error context.
"""

import pytest
from exceptions import (
    ExpenseTrackerError,
    ConfigError,
    StorageError,
    ValidationError,
    CategorizationError,
    AnalyticsError,
    BudgetError,
    NotificationError,
    AssistantError,
    CurrencyError,
    EncryptionError,
    EncryptionKeyError,
    DecryptionError
)


class TestExpenseTrackerError:
    """Test base ExpenseTrackerError class."""

    def test_basic_exception_creation(self):
        """Test creating a basic ExpenseTrackerError."""
        error = ExpenseTrackerError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.original_error is None

    def test_exception_with_details(self):
        """Test creating exception with details dictionary."""
        details = {"key1": "value1", "key2": 123}
        error = ExpenseTrackerError("Test error", details=details)
        assert error.details == details
        assert "key1=value1" in str(error)
        assert "key2=123" in str(error)

    def test_exception_with_original_error(self):
        """Test creating exception with original error chaining."""
        original = ValueError("Original error")
        error = ExpenseTrackerError("Wrapped error", original_error=original)
        assert error.original_error is original


class TestExceptionHierarchy:
    """Test specific exception subclasses."""

    @pytest.mark.parametrize("exc_class", [
        ConfigError,
        StorageError,
        ValidationError,
        CategorizationError,
        AnalyticsError,
        BudgetError,
        NotificationError,
        AssistantError,
        CurrencyError,
        EncryptionError,
    ])
    def test_subclasses_share_base(self, exc_class):
        """Every domain error should be catchable as ExpenseTrackerError."""
        error = exc_class("boom", details={"k": "v"})
        assert isinstance(error, ExpenseTrackerError)
        assert str(error) == "boom (k=v)"

    def test_encryption_errors(self):
        """Key and decryption errors should derive from EncryptionError."""
        assert issubclass(EncryptionKeyError, EncryptionError)
        assert issubclass(DecryptionError, EncryptionError)

    def test_raise_and_catch_as_base(self):
        """Raising a subclass can be handled by the base class."""
        with pytest.raises(ExpenseTrackerError) as exc_info:
            raise StorageError("disk full", details={"key": "expenseslist"})
        assert exc_info.value.details["key"] == "expenseslist"
