"""
Unified exception hierarchy for the expense-tracker project.

This module defines the exception hierarchy with ExpenseTrackerError as the
base exception, allowing for consistent error handling across the store,
analysis, budgeting and CLI modules.
"""

from typing import Optional


class ExpenseTrackerError(Exception):
    """
    Base exception class for all expense-tracker errors.

    All custom exceptions in the application should inherit from this class
    to enable unified error handling and consistent error messages.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize ExpenseTrackerError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(ExpenseTrackerError):
    """Raised when configuration loading or validation fails."""
    pass


class StorageError(ExpenseTrackerError):
    """Raised when the blob store cannot read or write a value."""
    pass


class ValidationError(ExpenseTrackerError):
    """Raised when user input (title, amount) is rejected before reaching the store."""
    pass


class CategorizationError(ExpenseTrackerError):
    """Raised when category registration or lookup fails."""
    pass


class AnalyticsError(ExpenseTrackerError):
    """Raised when analytics operations fail (e.g. unknown period)."""
    pass


class BudgetError(ExpenseTrackerError):
    """Raised when budget or category limit management fails."""
    pass


class NotificationError(ExpenseTrackerError):
    """Raised by notifiers when an alert cannot be delivered."""
    pass


class AssistantError(ExpenseTrackerError):
    """Raised when the text-completion service fails or returns nothing usable."""
    pass


class CurrencyError(ExpenseTrackerError):
    """Raised when an unknown currency code is requested."""
    pass


class EncryptionError(ExpenseTrackerError):
    """Base error for encryption failures."""
    pass


class EncryptionKeyError(EncryptionError):
    """Raised when encryption key loading or validation fails."""
    pass


class DecryptionError(EncryptionError):
    """Raised when decryption fails."""
    pass
