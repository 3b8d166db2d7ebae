"""
Budgeting module for the monthly budget, category limits and budget alerts.

BudgetManager stores the monthly budget and per-category limits in the blob
store and reports how much of the budget a month has used.
BudgetAlertEvaluator tracks which categories are over their limit and sends
at most one alert each time a category crosses its limit.
"""

import enum
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Set

from analytics import category_totals, monthly_total
from blob_store import ALERT_STATE_KEY, CATEGORY_LIMITS_KEY, MONTHLY_BUDGET_KEY, BlobStore
from exceptions import BudgetError, StorageError
from models import Expense
from notifications import Notifier
from utils import format_number

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_BUDGET = 20000.0
ALERT_TITLE = "⚠️ Budget Exceeded"


@dataclass
class BudgetStatus:
    """
    Status of the monthly budget.

    Attributes:
        budget: Monthly budget (0 means no budget set)
        spent: Amount spent in the month
        remaining: budget - spent (negative when over budget)
        progress: Fraction of the budget used, capped at 1.0
        is_over_budget: True when spending exceeds the budget
    """
    budget: float
    spent: float
    remaining: float
    progress: float
    is_over_budget: bool

    @property
    def percentage_used(self) -> int:
        return int(round(self.progress * 100))


def _coerce_limit(value, *, field: str) -> float:
    """Convert a budget or limit value to a non-negative finite float."""
    if isinstance(value, bool):
        raise BudgetError(f"{field} must be a number", details={field: value})
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise BudgetError(f"{field} must be a number", details={field: value}, original_error=e) from e
    if not math.isfinite(number) or number < 0:
        raise BudgetError(f"{field} must be a non-negative number", details={field: value})
    return number


class BudgetManager:
    """
    Manages the monthly budget and per-category spending limits.

    Settings are read from and written to the blob store directly; a failed
    write raises BudgetError so the caller can tell the user.
    """

    def __init__(self, store: BlobStore, default_monthly_budget: float = DEFAULT_MONTHLY_BUDGET):
        """
        Initialize the budget manager.

        Args:
            store: Blob store holding the budget settings
            default_monthly_budget: Budget used until the user sets one
        """
        self.store = store
        self.default_monthly_budget = default_monthly_budget
        logger.info("Budget manager initialized")

    def _write(self, key: str, value: str) -> None:
        try:
            self.store.set(key, value)
        except StorageError as e:
            logger.error(f"Failed to save budget setting '{key}': {e}")
            raise BudgetError("Could not save budget setting", details={"key": key}, original_error=e) from e

    def get_monthly_budget(self) -> float:
        """
        Return the stored monthly budget, or the default when none is stored.
        """
        try:
            raw = self.store.get(MONTHLY_BUDGET_KEY)
        except StorageError as e:
            logger.error(f"Failed to load monthly budget: {e}")
            return self.default_monthly_budget
        if raw is None:
            return self.default_monthly_budget
        try:
            return _coerce_limit(raw, field="monthly_budget")
        except BudgetError:
            logger.warning(f"Stored monthly budget '{raw}' is invalid; using default")
            return self.default_monthly_budget

    def set_monthly_budget(self, amount) -> float:
        """
        Store a new monthly budget.

        Returns:
            The stored budget

        Raises:
            BudgetError: If the amount is invalid or cannot be saved
        """
        budget = _coerce_limit(amount, field="monthly_budget")
        self._write(MONTHLY_BUDGET_KEY, format_number(budget))
        logger.info(f"Monthly budget set to {budget}")
        return budget

    def get_category_limits(self) -> Dict[str, float]:
        """
        Return configured category limits; invalid entries are skipped.
        """
        try:
            raw = self.store.get(CATEGORY_LIMITS_KEY)
        except StorageError as e:
            logger.error(f"Failed to load category limits: {e}")
            return {}
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored category limits are not valid JSON: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning("Stored category limits are not an object; ignoring")
            return {}

        limits: Dict[str, float] = {}
        for category, value in data.items():
            try:
                limits[str(category)] = _coerce_limit(value, field="limit")
            except BudgetError:
                logger.warning(f"Ignoring invalid limit {value!r} for category '{category}'")
        return limits

    def set_category_limit(self, category: str, limit) -> Dict[str, float]:
        """
        Set the spending limit of one category.

        Returns:
            All limits after the change

        Raises:
            BudgetError: If the category is empty, the limit invalid, or saving fails
        """
        if not category:
            raise BudgetError("Category name is required")
        limits = self.get_category_limits()
        limits[category] = _coerce_limit(limit, field="limit")
        self._write(CATEGORY_LIMITS_KEY, json.dumps(limits))
        logger.info(f"Limit for '{category}' set to {limits[category]}")
        return limits

    def remove_category_limit(self, category: str) -> Dict[str, float]:
        """Remove a category limit; removing a missing limit is a no-op."""
        limits = self.get_category_limits()
        if limits.pop(category, None) is not None:
            self._write(CATEGORY_LIMITS_KEY, json.dumps(limits))
            logger.info(f"Limit for '{category}' removed")
        return limits

    def get_budget_status(
        self,
        expenses: Iterable[Expense],
        month: Optional[int] = None,
        year: Optional[int] = None
    ) -> BudgetStatus:
        """
        Compare a month's spending with the monthly budget.

        Args:
            expenses: All expenses
            month: Month number 1-12 (defaults to the current month)
            year: Year (defaults to the current year)

        Returns:
            BudgetStatus for the month
        """
        now = datetime.now()
        month = month or now.month
        year = year or now.year

        budget = self.get_monthly_budget()
        spent = monthly_total(expenses, month, year)
        remaining = budget - spent
        progress = min(spent / budget, 1.0) if budget > 0 else 0.0
        return BudgetStatus(
            budget=budget,
            spent=spent,
            remaining=remaining,
            progress=progress,
            is_over_budget=remaining < 0,
        )


class AlertState(enum.Enum):
    """Alert state of a category."""
    NORMAL = "normal"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True)
class AlertTransition:
    """
    A state change produced by one evaluation.

    Attributes:
        category: Category name
        spent: Category total at evaluation time
        limit: Configured limit
        new_state: State entered by the category
        notified: Whether the alert was delivered (None for resets)
    """
    category: str
    spent: float
    limit: float
    new_state: AlertState
    notified: Optional[bool] = None


class BudgetAlertEvaluator:
    """
    Detects categories crossing their spending limit and alerts once per crossing.

    The set of over-budget categories is persisted before any notification is
    attempted, so a crash while notifying cannot cause the alert to repeat on
    restart. Evaluation recomputes totals from the full expense list each time;
    running it again with the same inputs has no side effects.
    """

    def __init__(self, store: BlobStore, notifier: Notifier, currency_symbol: str = "$"):
        """
        Initialize the evaluator and load the persisted alert state.

        Args:
            store: Blob store holding the alert state
            notifier: Notification service
            currency_symbol: Symbol used in alert messages
        """
        self.store = store
        self.notifier = notifier
        self.currency_symbol = currency_symbol
        self._over_budget: Set[str] = self._load_state()
        logger.info(f"Budget alert evaluator initialized ({len(self._over_budget)} categories over budget)")

    @property
    def over_budget_categories(self) -> Set[str]:
        return set(self._over_budget)

    def state_of(self, category: str) -> AlertState:
        return AlertState.OVER_BUDGET if category in self._over_budget else AlertState.NORMAL

    def _load_state(self) -> Set[str]:
        try:
            raw = self.store.get(ALERT_STATE_KEY)
        except StorageError as e:
            logger.error(f"Failed to load alert history: {e}")
            return set()
        if not raw:
            return set()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Alert history is not valid JSON: {e}")
            return set()
        if not isinstance(data, list):
            logger.warning("Alert history is not a list; starting fresh")
            return set()
        return {str(name) for name in data}

    def _persist_state(self, categories: Set[str]) -> None:
        self.store.set(ALERT_STATE_KEY, json.dumps(sorted(categories)))

    def _send_alert(self, category: str, spent: float, limit: float) -> bool:
        body = (
            f"You've spent {self.currency_symbol}{format_number(spent)} on {category}. "
            f"Limit: {self.currency_symbol}{format_number(limit)}"
        )
        try:
            delivered = bool(self.notifier.notify(f"alert-{category}", ALERT_TITLE, body))
        except Exception as e:
            logger.error(f"Notification for '{category}' failed (alert state already saved): {e}")
            return False
        if not delivered:
            logger.warning(f"Notification for '{category}' was not delivered (alert state already saved)")
        return delivered

    def evaluate(self, expenses: Iterable[Expense], limits: Mapping[str, float]) -> List[AlertTransition]:
        """
        Compare category totals with their limits and apply state transitions.

        Normal -> OverBudget when the total strictly exceeds the limit: the new
        state is saved, then one alert is attempted. OverBudget -> Normal when
        the total is at or below the limit: the state is saved, no alert.
        If the state cannot be saved the category is left unchanged and no
        alert is attempted; the next evaluation will try again.
        Flags of categories that no longer have a limit are dropped without
        a transition, so setting the limit again counts as a new crossing.

        Args:
            expenses: All expenses
            limits: Category name -> spending limit

        Returns:
            Transitions applied during this evaluation
        """
        totals = category_totals(expenses)
        transitions: List[AlertTransition] = []

        for category, limit in limits.items():
            spent = totals.get(category, 0.0)

            if spent > limit:
                if category in self._over_budget:
                    continue
                updated = self._over_budget | {category}
                try:
                    self._persist_state(updated)
                except StorageError as e:
                    logger.error(f"Could not save alert state for '{category}'; skipping alert: {e}")
                    continue
                self._over_budget = updated
                logger.info(f"Category '{category}' over budget: {spent} > {limit}")
                notified = self._send_alert(category, spent, limit)
                transitions.append(
                    AlertTransition(category, spent, limit, AlertState.OVER_BUDGET, notified)
                )

            elif category in self._over_budget:
                updated = self._over_budget - {category}
                try:
                    self._persist_state(updated)
                except StorageError as e:
                    logger.error(f"Could not save alert reset for '{category}': {e}")
                    continue
                self._over_budget = updated
                logger.info(f"Category '{category}' back within budget: {spent} <= {limit}")
                transitions.append(AlertTransition(category, spent, limit, AlertState.NORMAL))

        stale = self._over_budget - set(limits)
        if stale:
            updated = self._over_budget - stale
            try:
                self._persist_state(updated)
            except StorageError as e:
                logger.error(f"Could not clear alert state for removed limits {sorted(stale)}: {e}")
            else:
                self._over_budget = updated
                logger.info(f"Cleared alert state for categories without a limit: {sorted(stale)}")

        return transitions

