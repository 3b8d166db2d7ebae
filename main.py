"""
Main module for the expense tracker command line.

This module wires configuration, logging and the ExpenseApp together and
routes each subcommand to its handler:
1. Loads configuration and sets up logging
2. Opens the blob store and loads saved expenses
3. Runs the command and prints a report
4. Flushes pending writes on exit
"""

import argparse
import logging
import sys
from typing import List, Optional

import config_manager
from analytics import category_totals
from currency import CURRENCIES
from exceptions import ExpenseTrackerError
from expense_app import ExpenseApp
from period_filter import Period
from report_generator import ReportGenerator
from utils import ensure_data_dir, prompt_user_choice, resolve_log_path

# Configure module-level logger
logger = logging.getLogger(__name__)

PERIOD_CHOICES = [p.value for p in Period]


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    An unknown level name falls back to INFO with a warning.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging") or {}
    level_name = str(log_config.get("level") or "INFO").upper()
    log_level = getattr(logging, level_name, None)
    invalid_level = not isinstance(log_level, int)
    if invalid_level:
        log_level = logging.INFO
    log_format = log_config.get("format") or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file = log_config.get("file")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_path = resolve_log_path(log_file)
        except OSError as exc:
            raise RuntimeError(f"Unable to prepare log file path '{log_file}': {exc}") from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )
    if invalid_level:
        logger.warning(f"Unknown log level '{level_name}'; using INFO")


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from a YAML file, filling in defaults.

    Args:
        config_path: Path to config.yaml (EXPENSE_TRACKER_CONFIG or ./config.yaml when omitted)

    Returns:
        Configuration dictionary
    """
    return config_manager.load_config(config_path)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Personal expense tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to configuration file (default: config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add command
    add_parser = subparsers.add_parser("add", help="Record a new expense")
    add_parser.add_argument("amount", help="Amount spent")
    add_parser.add_argument("--title", "-t", default="", help="What the money was spent on")
    add_parser.add_argument(
        "--category",
        help="Category name (chosen from the title by keyword when omitted)"
    )

    # List command
    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List expenses grouped by day")
    list_parser.add_argument("--period", "-p", choices=PERIOD_CHOICES, default="all")

    # Delete command
    delete_parser = subparsers.add_parser("delete", aliases=["rm"], help="Delete an expense")
    delete_parser.add_argument("id", help="Expense id")

    # Update command
    update_parser = subparsers.add_parser("update", help="Edit an expense")
    update_parser.add_argument("id", help="Expense id")
    update_parser.add_argument("--title", "-t")
    update_parser.add_argument("--amount", "-a")
    update_parser.add_argument("--category")

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Delete all expenses")
    clear_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    # Summary command
    summary_parser = subparsers.add_parser("summary", aliases=["report"], help="Spending by category")
    summary_parser.add_argument("--period", "-p", choices=PERIOD_CHOICES, default="month")

    # Anomalies command
    anomaly_parser = subparsers.add_parser("anomalies", help="Flag unusually large expenses")
    anomaly_parser.add_argument("--period", "-p", choices=PERIOD_CHOICES, default="all")

    # Forecast command
    subparsers.add_parser("forecast", help="Predict next month's spending")

    # Insights command
    insights_parser = subparsers.add_parser("insights", help="Show spending insights")
    insights_parser.add_argument("--period", "-p", choices=PERIOD_CHOICES, default="all")

    # Budget command
    budget_parser = subparsers.add_parser("budget", aliases=["bud"], help="Show or set the monthly budget")
    budget_parser.add_argument("--set", dest="amount", help="New monthly budget")
    budget_parser.add_argument("--month", type=int, help="Month number 1-12 (default: current)")
    budget_parser.add_argument("--year", type=int, help="Year (default: current)")

    # Limit command
    limit_parser = subparsers.add_parser("limit", help="Manage category spending limits")
    limit_subparsers = limit_parser.add_subparsers(dest="limit_action", help="Limit actions")
    limit_set = limit_subparsers.add_parser("set", help="Set a category limit")
    limit_set.add_argument("category")
    limit_set.add_argument("amount")
    limit_remove = limit_subparsers.add_parser("remove", help="Remove a category limit")
    limit_remove.add_argument("category")
    limit_subparsers.add_parser("list", help="List category limits")

    # Alerts command
    subparsers.add_parser("alerts", help="Check category limits and send alerts")

    # Currency command
    currency_parser = subparsers.add_parser("currency", help="Show or change the base currency")
    currency_parser.add_argument("code", nargs="?", help="Currency code to switch to")
    currency_parser.add_argument("--list", action="store_true", help="List supported currencies")

    return parser


def handle_add_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    expense = app.add_expense(args.title, args.amount, args.category)
    print(f"Added '{expense.title}' ({expense.category}) {reporter.format_currency(expense.amount)} [id {expense.id}]")


def handle_list_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    print(reporter.generate_history_report(app.history(args.period), args.period))


def handle_delete_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> int:
    if app.delete_expense(args.id):
        print(f"Deleted expense {args.id}")
        return 0
    print(f"No expense with id {args.id}", file=sys.stderr)
    return 1


def handle_update_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    expense = app.update_expense(args.id, title=args.title, amount=args.amount, category=args.category)
    print(f"Updated '{expense.title}' ({expense.category}) {reporter.format_currency(expense.amount)}")


def handle_clear_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> int:
    if not args.yes:
        choice = prompt_user_choice(
            f"Delete all {len(app.expenses)} expenses?",
            {"y": "yes", "n": "no"},
            default="n",
        )
        if choice != "y":
            print("Cancelled.")
            return 1
    app.clear_all()
    print("All expenses deleted.")
    return 0


def handle_summary_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    print(reporter.generate_category_report(app.category_breakdown(args.period), args.period))


def handle_anomalies_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    print(reporter.generate_anomaly_report(app.anomalies(args.period)))


def handle_forecast_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    print(reporter.generate_forecast_report(app.forecast(), app.monthly_totals()))


def handle_insights_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    print(reporter.generate_insights_report(app.insights(args.period)))


def handle_budget_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    if args.amount is not None:
        budget = app.budgets.set_monthly_budget(args.amount)
        print(f"Monthly budget set to {reporter.format_currency(budget)}")
    status = app.budget_status(args.month, args.year)
    print(reporter.generate_budget_report(
        status,
        app.budgets.get_category_limits(),
        category_totals(app.expenses)
    ))


def handle_limit_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> int:
    if args.limit_action == "set":
        limits = app.budgets.set_category_limit(args.category, args.amount)
        print(f"Limit for '{args.category}' set to {reporter.format_currency(limits[args.category])}")
        app.check_budget_alerts()
    elif args.limit_action == "remove":
        app.budgets.remove_category_limit(args.category)
        print(f"Limit for '{args.category}' removed")
        app.check_budget_alerts()
    elif args.limit_action == "list":
        limits = app.budgets.get_category_limits()
        if not limits:
            print("No category limits set.")
        for category, limit in sorted(limits.items()):
            print(f"{category}: {reporter.format_currency(limit)}")
    else:
        print("Invalid limit action", file=sys.stderr)
        return 1
    return 0


def handle_alerts_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    transitions = app.check_budget_alerts()
    if not transitions:
        print("No budget alert changes.")
    for transition in transitions:
        print(
            f"{transition.category}: {transition.new_state.value} "
            f"({reporter.format_currency(transition.spent)} / {reporter.format_currency(transition.limit)})"
        )
    over = sorted(app.alerts.over_budget_categories)
    if over:
        print(f"Over budget: {', '.join(over)}")


def handle_currency_command(args: argparse.Namespace, app: ExpenseApp, reporter: ReportGenerator) -> None:
    if args.list:
        for info in app.currency.currency_list():
            print(f"{info.code}  {info.symbol:<3} {info.name}")
        return
    if args.code:
        code = app.currency.change_base_currency(args.code)
        print(f"Base currency set to {code} ({CURRENCIES[code].symbol})")
        return
    print(f"Base currency: {app.currency.base_currency} ({app.currency.symbol})")


COMMAND_HANDLERS = {
    "add": handle_add_command,
    "list": handle_list_command,
    "ls": handle_list_command,
    "delete": handle_delete_command,
    "rm": handle_delete_command,
    "update": handle_update_command,
    "clear": handle_clear_command,
    "summary": handle_summary_command,
    "report": handle_summary_command,
    "anomalies": handle_anomalies_command,
    "forecast": handle_forecast_command,
    "insights": handle_insights_command,
    "budget": handle_budget_command,
    "bud": handle_budget_command,
    "limit": handle_limit_command,
    "alerts": handle_alerts_command,
    "currency": handle_currency_command,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the application.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle case where no command is provided
    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)

    # Ensure data directory exists before logging/database work
    try:
        ensure_data_dir(config)
    except OSError as exc:
        print(f"Failed to prepare data directory: {exc}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        app = ExpenseApp.from_config(config).start()
    except ExpenseTrackerError as e:
        logger.error(f"Failed to open expense store: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    reporter = ReportGenerator(formatter=app.currency.format)
    handler = COMMAND_HANDLERS[args.command]
    try:
        result = handler(args, app, reporter)
        return result or 0
    except ExpenseTrackerError as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
