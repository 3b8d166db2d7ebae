"""
Categorization module for category lookup and automatic categorization.

This module holds the canonical category table, resolves display names and
colors, and provides a keyword engine that assigns a category from an
expense title.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from exceptions import CategorizationError
from models import DEFAULT_CATEGORY, FALLBACK_COLOR, Category, category_name

# Configure logging
logger = logging.getLogger(__name__)


CATEGORIES: Tuple[Category, ...] = (
    Category("Food", "🍔", "#FFD700"),
    Category("Bills/Utilities", "💡", "#FFA07A"),
    Category("Family", "👨‍👩‍👧‍👦", "#90EE90"),
    Category("Healthcare", "🏥", "#FF7F7F"),
    Category("Fuel", "⛽", "#FF8C00"),
    Category("Phone/Internet", "📱", "#87CEEB"),
    Category("Education", "📚", "#9370DB"),
    Category("Entertainment", "🎬", "#E6E6FA"),
    Category("Shopping", "🛍️", "#FF69B4"),
    Category("Travel", "✈️", "#00CED1"),
    Category("Socializing", "🍻", "#CD853F"),
    Category("Withdrawal", "🏧", "#D3D3D3"),
    Category("Transfer", "💸", "#32CD32"),
    Category("Transportation", "🚗", "#FFA500"),
    Category("Housing", "🏠", "#ADD8E6"),
    Category("Miscellaneous", "📦", "#808080"),
)

# Suggested when a title matches no keyword at all; canonical names as in DEFAULT_RULES.
DEFAULT_SUGGESTIONS: Tuple[str, ...] = ("Food", "Transportation", "Shopping")


@dataclass(frozen=True)
class KeywordRule:
    """
    Keywords that map an expense title to a category.

    Attributes:
        category: Category assigned when any keyword matches
        keywords: Lowercase substrings searched for in the title
    """
    category: str
    keywords: Tuple[str, ...]

    def matches(self, title: str) -> bool:
        """Return True if any keyword is a substring of the (case-folded) title."""
        lowered = title.lower()
        return any(keyword in lowered for keyword in self.keywords)


# Order matters: the first rule that matches wins, even if a later rule
# would match more keywords.
# Rule names use the canonical categories (Transport -> Transportation,
# Bills -> Bills/Utilities, Health -> Healthcare).
DEFAULT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("Food", ("burger", "pizza", "coffee", "lunch", "dinner", "restaurant", "cafe", "starbucks", "mcdonalds")),
    KeywordRule("Transportation", ("uber", "ola", "taxi", "bus", "train", "metro", "fuel", "petrol", "gas")),
    KeywordRule("Shopping", ("amazon", "flipkart", "myntra", "clothes", "shoes", "mall", "store")),
    KeywordRule("Bills/Utilities", ("electricity", "water", "internet", "wifi", "recharge", "mobile")),
    KeywordRule("Entertainment", ("movie", "netflix", "cinema", "game", "spotify")),
    KeywordRule("Healthcare", ("medicine", "doctor", "hospital", "pharmacy", "gym")),
)


class CategoryRegistry:
    """
    Canonical categories plus optional user-defined ones.

    Lookups scan canonical categories first, then custom categories in the
    order they were registered.
    """

    def __init__(self, categories: Optional[Iterable[Category]] = None):
        self._categories: List[Category] = list(categories if categories is not None else CATEGORIES)

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    def register(self, category: Category) -> None:
        """
        Add a custom category.

        Raises:
            CategorizationError: If the name is empty or already registered
        """
        if not category.name:
            raise CategorizationError("Category name cannot be empty")
        if self.find_by_name(category.name) is not None:
            raise CategorizationError(
                "Category already exists",
                details={"name": category.name}
            )
        self._categories.append(category)
        logger.info(f"Registered custom category '{category.name}'")

    def find_by_name(self, name: str) -> Optional[Category]:
        for category in self._categories:
            if category.name == name:
                return category
        return None

    def find_by_color(self, color: Optional[str]) -> Optional[Category]:
        for category in self._categories:
            if category.color == color:
                return category
        return None

    def resolve_color(self, color: Optional[str]) -> str:
        """Return the canonical color matching color, or the fallback gray."""
        category = self.find_by_color(color)
        return category.color if category else FALLBACK_COLOR

    def color_for(self, name: str) -> str:
        """Return the color of the category named name, or the fallback gray."""
        category = self.find_by_name(name)
        return category.color if category else FALLBACK_COLOR

    def resolve(self, value: Any) -> Category:
        """
        Resolve a Category, mapping or name into a Category with display attributes.

        Unknown names keep their name and get the fallback color.
        """
        if isinstance(value, Category):
            return value
        name = category_name(value)
        known = self.find_by_name(name)
        if known is not None:
            return known
        if isinstance(value, dict):
            return Category(name, value.get("icon") or "", value.get("color") or FALLBACK_COLOR)
        return Category(name)


_default_registry = CategoryRegistry()


def get_default_registry() -> CategoryRegistry:
    """Return the module-level registry holding the canonical categories."""
    return _default_registry


def resolve_color(color: Optional[str], registry: Optional[CategoryRegistry] = None) -> str:
    """
    Normalize a user-selected color to the canonical one.

    Args:
        color: Color chosen by the user
        registry: Optional registry (defaults to the canonical categories)

    Returns:
        Canonical color of the first category with that color, else '#808080'
    """
    return (registry or _default_registry).resolve_color(color)


def resolve_display_name(category: Any) -> str:
    """Return the display name of a category value, defaulting to 'General'."""
    return category_name(category)


class CategorizationEngine:
    """
    Keyword engine for categorizing expenses by title.

    Rules are evaluated in declaration order and the first matching rule
    wins. This is deliberately not best-match.
    """

    def __init__(self, rules: Optional[Sequence[KeywordRule]] = None):
        """
        Initialize the categorization engine.

        Args:
            rules: Optional ordered rules (defaults to DEFAULT_RULES)
        """
        self.rules: List[KeywordRule] = list(rules if rules is not None else DEFAULT_RULES)
        logger.debug(f"Categorization engine initialized with {len(self.rules)} rules")

    def add_rule(self, category: str, keywords: Iterable[str]) -> None:
        """
        Append a rule; it is checked after every existing rule.

        Args:
            category: Category to assign
            keywords: Substrings to search for (case-insensitive)
        """
        normalized = tuple(k.strip().lower() for k in keywords if k and k.strip())
        if not normalized:
            raise CategorizationError("A rule needs at least one keyword", details={"category": category})
        self.rules.append(KeywordRule(category, normalized))
        logger.debug(f"Added categorization rule: {normalized} -> {category}")

    def categorize(self, title: Optional[str]) -> str:
        """
        Categorize an expense title.

        Returns:
            Category of the first matching rule, or 'General'
        """
        if not title:
            return DEFAULT_CATEGORY
        for rule in self.rules:
            if rule.matches(title):
                logger.debug(f"Matched rule '{rule.category}' for '{title}'")
                return rule.category
        return DEFAULT_CATEGORY

    def suggest(self, title: Optional[str]) -> List[str]:
        """
        List every category whose keywords match the title, in rule order.

        Falls back to the common categories when nothing matches; an empty
        title yields no suggestions.
        """
        if not title:
            return []
        matched: List[str] = []
        for rule in self.rules:
            if rule.category not in matched and rule.matches(title):
                matched.append(rule.category)
        return matched or list(DEFAULT_SUGGESTIONS)


_default_engine = CategorizationEngine()


def auto_categorize(title: Optional[str]) -> str:
    """Categorize a title with the default keyword rules."""
    return _default_engine.categorize(title)


def suggest_categories(title: Optional[str]) -> List[str]:
    """Suggest categories for a title with the default keyword rules."""
    return _default_engine.suggest(title)


def suggest_title(category: str, amount: float) -> str:
    """
    Produce a readable default title for an expense that has none.

    Args:
        category: Category display name
        amount: Expense amount

    Returns:
        Generated title such as 'Quick Snack' or 'Housing Expense'
    """
    key = (category or DEFAULT_CATEGORY).lower()
    if key == "food":
        return "Dinner Outing" if amount > 500 else "Quick Snack"
    if key in ("travel", "transport", "transportation"):
        return "Commute"
    if key == "shopping":
        return "Store Purchase"
    if key in ("bills", "bills/utilities"):
        return "Utility Bill"
    return f"{category or DEFAULT_CATEGORY} Expense"

