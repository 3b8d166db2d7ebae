"""
Integration tests for the ExpenseApp state object.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from blob_store import EncryptedBlobStore, InMemoryBlobStore, SQLBlobStore
from config_manager import load_config
from exceptions import AssistantError, ValidationError
from expense_app import ExpenseApp
from notifications import RecordingNotifier

NOW = datetime(2024, 3, 15, 10, 0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(memory_store, notifier):
    expense_app = ExpenseApp(memory_store, notifier=notifier).start()
    yield expense_app
    expense_app.close()


class TestMutations:
    """Tests for add/update/delete through the app."""

    def test_add_auto_categorizes_by_title(self, app):
        expense = app.add_expense("Uber to office", "250", now=NOW)

        assert expense.category == "Transportation"
        assert app.expenses == [expense]

    def test_add_with_explicit_category(self, app):
        assert app.add_expense("Uber", 10, category="Travel", now=NOW).category == "Travel"

    def test_add_rejects_invalid_amount(self, app):
        with pytest.raises(ValidationError):
            app.add_expense("Lunch", "abc", now=NOW)
        assert app.expenses == []

    def test_update_changes_fields(self, app):
        expense = app.add_expense("Pizza", 12, now=NOW)

        updated = app.update_expense(expense.id, amount="15", category="Socializing")

        assert updated.title == "Pizza"
        assert updated.amount == 15.0
        assert updated.category == "Socializing"
        assert updated.color == "#CD853F"
        assert app.store.get(expense.id) == updated

    def test_update_unknown_id_raises(self, app):
        with pytest.raises(ValidationError):
            app.update_expense("missing", amount=1)

    def test_delete_and_clear(self, app):
        first = app.add_expense("Pizza", 12, now=NOW)
        app.add_expense("Bus", 2, now=NOW)

        assert app.delete_expense(first.id)
        assert not app.delete_expense(first.id)

        app.clear_all()
        assert app.expenses == []

    def test_mutations_run_budget_alerts(self, app, notifier):
        app.budgets.set_category_limit("Food", 1000)

        app.add_expense("Dinner", 900, now=NOW)
        assert notifier.sent == []

        app.add_expense("Lunch", 200, now=NOW)
        assert len(notifier.sent) == 1

        app.add_expense("Coffee", 5, now=NOW)
        assert len(notifier.sent) == 1


class TestQueries:
    """Tests for the read-side helpers."""

    def test_period_queries(self, app):
        app.add_expense("Pizza", 30, now=NOW)
        app.add_expense("Bus", 10, now=datetime(2024, 3, 1, 9))
        app.add_expense("Rent", 60, category="Housing", now=datetime(2024, 2, 1, 9))

        assert len(app.filtered("month", NOW)) == 2
        assert app.period_total("month", NOW) == 40
        assert [s.title for s in app.history("all", NOW)] == ["15 Mar 2024", "1 Mar 2024", "1 Feb 2024"]

        breakdown = app.category_breakdown("all", NOW)
        assert [(s.name, s.percentage) for s in breakdown] == [("Food", 30), ("Transportation", 10), ("Housing", 60)]

    def test_forecast_and_anomalies(self, app):
        app.add_expense("a", 1000, now=datetime(2024, 1, 5))
        app.add_expense("b", 2000, now=datetime(2024, 2, 5))

        assert app.forecast() == 1575
        assert app.anomalies()[0].kind == "insufficient_data"
        assert app.monthly_totals() == {"2024-01": 1000, "2024-02": 2000}

    def test_budget_status_uses_configured_default(self, memory_store):
        config = {"budget": {"monthly_default": 500}}
        app = ExpenseApp(memory_store, config=config)
        try:
            assert app.budget_status(3, 2024).budget == 500
        finally:
            app.close()

    def test_insights(self, app):
        assert app.insights() == ["Start adding expenses to get personalized insights!"]


class TestAssistantWiring:
    """Tests for the optional assistant."""

    def test_without_completion_raises(self, app):
        with pytest.raises(AssistantError):
            app.assistant()

    def test_assistant_uses_currency_symbol(self, memory_store):
        complete = Mock(return_value="Spend less.")
        app = ExpenseApp(memory_store, completion=complete).start()
        try:
            app.currency.change_base_currency("INR")
            app.add_expense("Pizza", 12, now=NOW)

            assert app.assistant().ask("Tips?", app.expenses) == "Spend less."
            assert "Pizza: ₹12" in complete.call_args[0][0]
        finally:
            app.close()


class TestPersistenceAcrossSessions:
    """Tests that a second app over the same database sees the first one's data."""

    def test_sqlite_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
        config = load_config(tmp_path / "missing.yaml")
        config["storage"]["connection_string"] = f"sqlite:///{(tmp_path / 'app.db').as_posix()}"

        first = ExpenseApp.from_config(config).start()
        added = first.add_expense("Pizza", 12, now=NOW)
        first.budgets.set_monthly_budget(700)
        first.close()

        second = ExpenseApp.from_config(config).start()
        try:
            assert second.expenses == [added]
            assert second.budgets.get_monthly_budget() == 700
        finally:
            second.close()

    def test_encrypted_store_when_configured(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
        config = load_config(tmp_path / "missing.yaml")
        config["storage"]["connection_string"] = "sqlite:///:memory:"
        config["storage"]["encrypt"] = True

        app = ExpenseApp.from_config(config)
        try:
            assert isinstance(app.blob_store, EncryptedBlobStore)
            assert isinstance(app.blob_store.inner, SQLBlobStore)
        finally:
            app.close()

    def test_in_memory_store_has_no_close(self):
        app = ExpenseApp(InMemoryBlobStore()).start()
        app.close()
