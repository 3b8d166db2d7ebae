"""
Currency preference and conversion.

Rates are fixed and expressed relative to USD; they are display conversions,
not live exchange rates.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from blob_store import BASE_CURRENCY_KEY, BlobStore
from exceptions import CurrencyError, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrencyInfo:
    """Display symbol, name and rate relative to USD."""
    code: str
    symbol: str
    name: str
    rate: float


CURRENCIES: Dict[str, CurrencyInfo] = {
    "USD": CurrencyInfo("USD", "$", "US Dollar", 1.0),
    "EUR": CurrencyInfo("EUR", "€", "Euro", 0.85),
    "GBP": CurrencyInfo("GBP", "£", "British Pound", 0.73),
    "INR": CurrencyInfo("INR", "₹", "Indian Rupee", 83.5),
    "JPY": CurrencyInfo("JPY", "¥", "Japanese Yen", 110.0),
    "AUD": CurrencyInfo("AUD", "A$", "Australian Dollar", 1.35),
    "CAD": CurrencyInfo("CAD", "C$", "Canadian Dollar", 1.25),
    "CHF": CurrencyInfo("CHF", "Fr", "Swiss Franc", 0.92),
    "CNY": CurrencyInfo("CNY", "¥", "Chinese Yuan", 6.45),
    "KRW": CurrencyInfo("KRW", "₩", "Korean Won", 1180.0),
}

DEFAULT_CURRENCY = "USD"


def convert_amount(amount: float, from_code: str, to_code: str) -> float:
    """
    Convert an amount between currencies through USD.

    Unknown codes leave the amount unchanged.
    """
    source = CURRENCIES.get(from_code)
    target = CURRENCIES.get(to_code)
    if source is None or target is None:
        logger.debug(f"Unknown currency in conversion {from_code}->{to_code}; amount unchanged")
        return amount
    return amount / source.rate * target.rate


def format_amount(amount: float, from_code: str = DEFAULT_CURRENCY, to_code: Optional[str] = None) -> str:
    """
    Format an amount with the target currency symbol and at most two decimals.

    Example:
        >>> format_amount(1234.5)
        '$1,234.5'
    """
    to_code = to_code or from_code
    converted = convert_amount(amount, from_code, to_code)
    symbol = CURRENCIES[to_code].symbol if to_code in CURRENCIES else ""
    text = f"{converted:,.2f}".rstrip("0").rstrip(".")
    return f"{symbol}{text}"


class CurrencySettings:
    """The user's base currency, persisted in the blob store."""

    def __init__(self, store: BlobStore, default: str = DEFAULT_CURRENCY):
        self.store = store
        self.base_currency = default if default in CURRENCIES else DEFAULT_CURRENCY
        self._load()

    def _load(self) -> None:
        try:
            saved = self.store.get(BASE_CURRENCY_KEY)
        except StorageError as e:
            logger.error(f"Error loading currency preference: {e}")
            return
        if saved and saved in CURRENCIES:
            self.base_currency = saved

    @property
    def symbol(self) -> str:
        return CURRENCIES[self.base_currency].symbol

    def change_base_currency(self, code: str) -> str:
        """
        Switch the base currency and persist the choice.

        Raises:
            CurrencyError: If the code is not a supported currency
        """
        code = code.upper()
        if code not in CURRENCIES:
            raise CurrencyError(
                f"Unsupported currency: {code}",
                details={"supported": ",".join(CURRENCIES)}
            )
        self.base_currency = code
        try:
            self.store.set(BASE_CURRENCY_KEY, code)
        except StorageError as e:
            logger.error(f"Error saving currency preference: {e}")
        return code

    def format(self, amount: float, from_code: Optional[str] = None) -> str:
        """Format an amount in the base currency."""
        return format_amount(amount, from_code or self.base_currency, self.base_currency)

    @staticmethod
    def currency_list() -> List[CurrencyInfo]:
        return list(CURRENCIES.values())
