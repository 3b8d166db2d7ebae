"""
Application state for the expense tracker.

ExpenseApp wires the expense store, budget settings, currency preference and
alert evaluator around one blob store. It is created once and passed to
whatever needs it (the CLI, tests); there are no module-level singletons.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from analytics import CategorySummary, aggregate_by_category, generate_insights, total_spending
from anomaly_detection import Finding, detect_anomalies, monthly_totals, predict_next_period
from assistant import CompletionFunc, ExpenseAssistant
from blob_store import BlobStore, EncryptedBlobStore, SQLBlobStore
from budgeting import AlertTransition, BudgetAlertEvaluator, BudgetManager, BudgetStatus
from categorization import auto_categorize
from config_manager import DEFAULT_CONFIG, get_setting
from currency import CurrencySettings
from date_grouping import DateSection, group_by_date
from exceptions import AssistantError, ValidationError
from expense_store import ExpenseStore
from models import Expense, validate_expense_input
from notifications import LoggingNotifier, Notifier
from period_filter import Period, filter_expenses
from utils import resolve_connection_string

logger = logging.getLogger(__name__)


class ExpenseApp:
    """
    Explicit application state shared by the CLI and tests.

    Mutating methods validate input, update the store, and then re-run the
    budget alert evaluation, mirroring how the alerts react to every change
    of the expense list.
    """

    def __init__(
        self,
        store: BlobStore,
        config: Optional[Dict[str, Any]] = None,
        notifier: Optional[Notifier] = None,
        completion: Optional[CompletionFunc] = None
    ):
        """
        Initialize the application state.

        Args:
            store: Blob store for expenses and settings
            config: Configuration dictionary (defaults to DEFAULT_CONFIG)
            notifier: Notification service for budget alerts
            completion: Optional text-completion function for the assistant
        """
        self.config = config or DEFAULT_CONFIG
        self.blob_store = store
        self.store = ExpenseStore(store)
        self.budgets = BudgetManager(
            store,
            default_monthly_budget=float(get_setting(self.config, "budget", "monthly_default"))
        )
        self.currency = CurrencySettings(store, default=get_setting(self.config, "currency", "base"))
        self.alerts = BudgetAlertEvaluator(store, notifier or LoggingNotifier(), self.currency.symbol)
        self.completion = completion

        self.anomaly_multiplier = float(get_setting(self.config, "analysis", "anomaly_multiplier"))
        self.anomaly_min_records = int(get_setting(self.config, "analysis", "anomaly_min_records"))
        self.forecast_buffer = float(get_setting(self.config, "analysis", "forecast_buffer"))

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        notifier: Optional[Notifier] = None,
        completion: Optional[CompletionFunc] = None
    ) -> "ExpenseApp":
        """
        Build the application over the SQL blob store described by config.

        The store is wrapped with encryption when storage.encrypt is true.
        """
        store: BlobStore = SQLBlobStore(resolve_connection_string(config))
        if get_setting(config, "storage", "encrypt", False):
            store = EncryptedBlobStore(store)
            logger.info("Blob encryption enabled")
        return cls(store, config=config, notifier=notifier, completion=completion)

    def start(self) -> "ExpenseApp":
        """Load persisted expenses. Call once before use."""
        self.store.load()
        return self

    def close(self) -> None:
        """Flush pending writes and release the storage engine."""
        self.store.close()
        close = getattr(self.blob_store, "close", None)
        if callable(close):
            close()

    @property
    def expenses(self) -> List[Expense]:
        return self.store.expenses

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_expense(
        self,
        title: Optional[str],
        amount: Any,
        category: Any = None,
        now: Optional[datetime] = None
    ) -> Expense:
        """
        Validate input and record a new expense.

        When no category is given it is chosen from the title by keyword.

        Raises:
            ValidationError: If the amount is missing or invalid
        """
        final_title, final_amount = validate_expense_input(title, amount)
        if category is None or category == "":
            category = auto_categorize(final_title)
        expense = self.store.add(final_title, final_amount, category, now=now)
        self.check_budget_alerts()
        return expense

    def update_expense(
        self,
        expense_id: str,
        title: Optional[str] = None,
        amount: Any = None,
        category: Any = None
    ) -> Expense:
        """
        Edit fields of an existing expense.

        Raises:
            ValidationError: If the id is unknown or the new amount is invalid
        """
        existing = self.store.get(expense_id)
        if existing is None:
            raise ValidationError("Expense not found", details={"id": expense_id})

        new_title, new_amount = validate_expense_input(
            title if title is not None else existing.title,
            amount if amount is not None else existing.amount,
        )
        changes: Dict[str, Any] = {"title": new_title, "amount": new_amount}
        if category:
            resolved = self.store.registry.resolve(category)
            changes.update(
                category=resolved.name,
                color=self.store.registry.resolve_color(resolved.color),
                icon=resolved.icon or None,
            )
        updated = existing.with_changes(**changes)
        self.store.update(updated)
        self.check_budget_alerts()
        return updated

    def delete_expense(self, expense_id: str) -> bool:
        deleted = self.store.delete(expense_id)
        if deleted:
            self.check_budget_alerts()
        return deleted

    def clear_all(self) -> None:
        self.store.clear_all()
        self.check_budget_alerts()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def filtered(self, period: Any = Period.ALL, now: Optional[datetime] = None) -> List[Expense]:
        return filter_expenses(self.store.expenses, period, now)

    def history(self, period: Any = Period.ALL, now: Optional[datetime] = None) -> List[DateSection]:
        return group_by_date(self.filtered(period, now))

    def category_breakdown(self, period: Any = Period.MONTH, now: Optional[datetime] = None) -> List[CategorySummary]:
        return aggregate_by_category(self.filtered(period, now), self.store.registry)

    def period_total(self, period: Any = Period.MONTH, now: Optional[datetime] = None) -> float:
        return total_spending(self.filtered(period, now))

    def anomalies(self, period: Any = Period.ALL, now: Optional[datetime] = None) -> List[Finding]:
        return detect_anomalies(
            self.filtered(period, now),
            multiplier=self.anomaly_multiplier,
            min_records=self.anomaly_min_records,
        )

    def forecast(self) -> int:
        return predict_next_period(self.store.expenses, buffer=self.forecast_buffer)

    def monthly_totals(self) -> Dict[str, float]:
        return monthly_totals(self.store.expenses)

    def insights(self, period: Any = Period.ALL, now: Optional[datetime] = None) -> List[str]:
        return generate_insights(self.filtered(period, now))

    def budget_status(self, month: Optional[int] = None, year: Optional[int] = None) -> BudgetStatus:
        return self.budgets.get_budget_status(self.store.expenses, month, year)

    # ------------------------------------------------------------------
    # Alerts and assistant
    # ------------------------------------------------------------------

    def check_budget_alerts(self) -> List[AlertTransition]:
        """Evaluate category limits against all expenses."""
        self.alerts.currency_symbol = self.currency.symbol
        return self.alerts.evaluate(self.store.expenses, self.budgets.get_category_limits())

    def assistant(self) -> ExpenseAssistant:
        """
        Return an assistant bound to the configured completion function.

        Raises:
            AssistantError: If no completion function was provided
        """
        if self.completion is None:
            raise AssistantError("No text-completion service configured")
        return ExpenseAssistant(self.completion, self.currency.symbol)
