"""
Assistant wrapper around an injected text-completion function.

The completion service itself (a hosted language model) is outside this
project; ExpenseAssistant only builds prompts from the user's expenses and
interprets the replies.
"""

import logging
from typing import Callable, Iterable, List, Sequence

from categorization import suggest_categories
from exceptions import AssistantError
from models import Expense
from utils import format_number

logger = logging.getLogger(__name__)

CompletionFunc = Callable[[str], str]

CATEGORY_CHOICES = ("Food", "Travel", "Bills", "Entertainment", "Health", "Other")


def summarize_expenses(expenses: Iterable[Expense], currency_symbol: str = "$") -> str:
    """Render one line per expense: '<title>: <symbol><amount> on <date>'."""
    return "\n".join(
        f"{e.title}: {currency_symbol}{format_number(e.amount)} on {e.date}" for e in expenses
    )


def build_query_prompt(query: str, expenses: Sequence[Expense], currency_symbol: str = "$") -> str:
    """Build the financial-advice prompt for a user question."""
    return (
        "User expenses:\n"
        f"{summarize_expenses(expenses, currency_symbol)}\n\n"
        f"Question: {query}\n"
        "Give concise and practical financial advice.\n"
    )


def build_categorize_prompt(title: str) -> str:
    """Build the prompt asking for comma-separated categories of a title."""
    return (
        "Categorize this expense into one or more categories from: "
        f"{', '.join(CATEGORY_CHOICES)}.\n"
        f"Expense: {title}\n"
        "Return only comma separated categories."
    )


def parse_category_reply(reply: str) -> List[str]:
    """Split a comma-separated reply into trimmed, non-empty category names."""
    return [part.strip() for part in reply.split(",") if part.strip()]


class ExpenseAssistant:
    """
    Answers spending questions through a text-completion function.

    Args:
        complete: Callable taking a prompt and returning the completion text
        currency_symbol: Symbol used when listing expenses in prompts
    """

    def __init__(self, complete: CompletionFunc, currency_symbol: str = "$"):
        self.complete = complete
        self.currency_symbol = currency_symbol

    def _call(self, prompt: str) -> str:
        try:
            reply = self.complete(prompt)
        except AssistantError:
            raise
        except Exception as e:
            logger.error(f"Text completion failed: {e}", exc_info=True)
            raise AssistantError("Failed to process query", original_error=e) from e
        if not reply or not reply.strip():
            raise AssistantError("Text completion returned an empty reply")
        return reply.strip()

    def ask(self, query: str, expenses: Sequence[Expense]) -> str:
        """
        Ask a question about the given expenses.

        Raises:
            AssistantError: If the query is empty or the completion fails
        """
        if not query or not query.strip():
            raise AssistantError("Query is required")
        return self._call(build_query_prompt(query.strip(), expenses, self.currency_symbol))

    def categorize(self, title: str, fallback: bool = True) -> List[str]:
        """
        Ask for categories of an expense title.

        Args:
            title: Expense title
            fallback: Use the local keyword suggestions when the service fails

        Raises:
            AssistantError: If the title is empty, or the service fails and fallback is False
        """
        if not title or not title.strip():
            raise AssistantError("Title is required")
        try:
            categories = parse_category_reply(self._call(build_categorize_prompt(title.strip())))
        except AssistantError:
            if not fallback:
                raise
            logger.warning("Falling back to keyword suggestions for categorization")
            return suggest_categories(title)
        return categories or suggest_categories(title)
