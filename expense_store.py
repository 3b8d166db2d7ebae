"""
In-memory expense collection with persistence to the blob store.

The store owns create/update/delete of expenses. The whole collection is
written after every mutation through a WriteQueue (fire-and-forget, last
write wins); the in-memory list stays authoritative for the running session
even if a write fails.
"""

import json
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from analytics import daily_total, monthly_total
from blob_store import EXPENSES_KEY, BlobStore
from categorization import CategoryRegistry, get_default_registry
from exceptions import StorageError, ValidationError
from models import UNTITLED_EXPENSE, Expense
from persistence import WriteQueue
from utils import current_time_string, generate_expense_id, today_string

logger = logging.getLogger(__name__)


def serialize_expenses(expenses: Iterable[Expense]) -> str:
    """Encode expenses as the persisted JSON array."""
    return json.dumps([e.to_dict() for e in expenses], ensure_ascii=False)


def deserialize_expenses(payload: str) -> List[Expense]:
    """
    Decode a persisted JSON array into expenses.

    Records that are not objects or fail validation are skipped with a warning.

    Raises:
        StorageError: If the payload is not JSON or not an array
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise StorageError("Stored expenses are not valid JSON", original_error=e) from e
    if not isinstance(data, list):
        raise StorageError("Stored expenses are not a list", details={"type": type(data).__name__})

    expenses: List[Expense] = []
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            logger.warning(f"Skipping stored expense #{index}: not an object")
            continue
        try:
            expenses.append(Expense.from_dict(record))
        except ValidationError as e:
            logger.warning(f"Skipping stored expense #{index}: {e}")
    return expenses


class ExpenseStore:
    """
    Ordered collection of expenses.

    Mutations persist the entire collection asynchronously. Reads return
    copies so callers cannot change the store behind its back.
    """

    def __init__(
        self,
        store: BlobStore,
        writer: Optional[WriteQueue] = None,
        registry: Optional[CategoryRegistry] = None
    ):
        """
        Initialize the store. Call load() once at startup to read saved data.

        Args:
            store: Blob store holding the collection
            writer: Optional write queue (one is created over store by default)
            registry: Category registry used to snapshot color/icon on add
        """
        self.store = store
        self.writer = writer or WriteQueue(store, name="expense-writer")
        self.registry = registry or get_default_registry()
        self._expenses: List[Expense] = []
        self.is_loaded = False

    @property
    def expenses(self) -> List[Expense]:
        return list(self._expenses)

    def __len__(self) -> int:
        return len(self._expenses)

    def load(self) -> List[Expense]:
        """
        Load the persisted collection, replacing the in-memory one.

        A missing or unreadable blob yields an empty collection.
        """
        try:
            payload = self.store.get(EXPENSES_KEY)
            self._expenses = deserialize_expenses(payload) if payload else []
        except StorageError as e:
            logger.error(f"Failed to load expenses; starting with an empty list: {e}")
            self._expenses = []
        self.is_loaded = True
        logger.info(f"Loaded {len(self._expenses)} expenses")
        return self.expenses

    def _persist(self) -> None:
        self.writer.submit_set(EXPENSES_KEY, serialize_expenses(self._expenses))

    def get(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def add(self, title: str, amount: Any, category: Any, now: Optional[datetime] = None) -> Expense:
        """
        Create and append a new expense.

        The amount is coerced with float(); a non-numeric amount becomes NaN,
        so callers should validate input first (see models.validate_expense_input).

        Args:
            title: Expense title ('Untitled Expense' when empty)
            amount: Amount as number or numeric text
            category: Category, mapping with name/color/icon, or category name
            now: Creation instant (defaults to the current local time)

        Returns:
            The created expense
        """
        now = now or datetime.now()
        try:
            numeric_amount = float(amount)
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric amount {amount!r} stored as NaN")
            numeric_amount = float("nan")

        resolved = self.registry.resolve(category)
        expense = Expense(
            id=generate_expense_id(),
            title=title or UNTITLED_EXPENSE,
            amount=numeric_amount,
            category=resolved.name,
            date=today_string(now),
            time=current_time_string(now),
            color=self.registry.resolve_color(resolved.color),
            icon=resolved.icon or None,
        )
        self._expenses.append(expense)
        logger.info(f"Added expense {expense.id} ({expense.category}, {expense.amount})")
        self._persist()
        return expense

    def update(self, expense: Expense) -> bool:
        """
        Replace the expense with the same id.

        Returns:
            True if a record was replaced, False if the id is unknown
        """
        for index, existing in enumerate(self._expenses):
            if existing.id == expense.id:
                self._expenses[index] = expense
                logger.info(f"Updated expense {expense.id}")
                self._persist()
                return True
        logger.debug(f"Update ignored; no expense with id {expense.id}")
        return False

    def delete(self, expense_id: str) -> bool:
        """
        Remove the expense with the given id.

        Returns:
            True if a record was removed, False if the id is unknown
        """
        remaining = [e for e in self._expenses if e.id != expense_id]
        if len(remaining) == len(self._expenses):
            logger.debug(f"Delete ignored; no expense with id {expense_id}")
            return False
        self._expenses = remaining
        logger.info(f"Deleted expense {expense_id}")
        self._persist()
        return True

    def clear_all(self) -> None:
        """Remove every expense and the persisted collection."""
        self._expenses = []
        self.writer.submit_remove(EXPENSES_KEY)
        logger.info("Cleared all expenses")

    def get_daily_total(self, now: Optional[datetime] = None) -> float:
        """Total spent today (or on the day of now)."""
        return daily_total(self._expenses, today_string(now))

    def get_monthly_total(self, month: Optional[int] = None, year: Optional[int] = None) -> float:
        """
        Total spent in a calendar month.

        Args:
            month: Month number 1-12 (defaults to the current month)
            year: Year (defaults to the current year)
        """
        now = datetime.now()
        return monthly_total(self._expenses, month or now.month, year or now.year)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending writes; see WriteQueue.flush."""
        return self.writer.flush(timeout)

    def close(self) -> None:
        """Flush pending writes and stop the writer."""
        self.writer.close()
