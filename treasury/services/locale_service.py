"""Locale helpers for money amounts and month names.

Uses babel with the LOCALE setting (default: id_ID). Only presentation
strings such as payment notes go through here; the engine itself keys
months by integers 1..12.

Example:
    >>> from treasury.services.locale_service import format_amount, month_label
    >>> format_amount(50000)
    'Rp50.000'
    >>> month_label(1, 2024)
    'Januari 2024'
"""

import logging

from babel import Locale, UnknownLocaleError
from babel.dates import get_month_names
from babel.numbers import format_currency as babel_format_currency
from babel.numbers import format_decimal as babel_format_decimal

from treasury.services.config import settings

logger = logging.getLogger(__name__)

# Default locale if LOCALE setting is invalid
DEFAULT_LOCALE = "id_ID"


def _get_locale() -> str:
    """Get locale from settings with validation and fallback.

    Returns:
        Valid locale string (e.g., 'id_ID')
    """
    locale_str = settings.locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


# Module-level constant (computed once at import)
LOCALE = _get_locale()


def format_amount(amount: int, currency: str | None = None, include_symbol: bool = True) -> str:
    """Format an integer amount in the smallest currency unit.

    Args:
        amount: Whole amount (e.g. 50000 for Rp 50.000)
        currency: ISO 4217 code (default: DEFAULT_CURRENCY setting)
        include_symbol: Whether to include the currency symbol

    Returns:
        Locale-formatted amount without fractional digits
    """
    if include_symbol:
        return babel_format_currency(
            amount,
            currency or settings.default_currency,
            format="¤#,##0",
            locale=LOCALE,
            currency_digits=False,
        )
    return babel_format_decimal(amount, locale=LOCALE)


def month_name(month: int) -> str:
    """Full month name for 1..12 in the configured locale."""
    return get_month_names("wide", locale=LOCALE)[month]


def month_label(month: int, year: int) -> str:
    """Month name and year, e.g. 'Maret 2024'."""
    return f"{month_name(month)} {year}"


def bulk_payment_note(note: str | None, month: int, year: int) -> str:
    """Note stored on each payment created by a bulk pay.

    Args:
        note: Caller-supplied note (may be empty)
        month: Paid month
        year: Paid year

    Returns:
        Note suffixed with the paid period
    """
    suffix = f"(bulk payment for {month_label(month, year)})"
    note = (note or "").strip()
    return f"{note} {suffix}" if note else suffix


__all__ = [
    "LOCALE",
    "format_amount",
    "month_name",
    "month_label",
    "bulk_payment_note",
]
