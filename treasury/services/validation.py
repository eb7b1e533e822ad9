"""Input checks shared by ledger services."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import TypeVar

from treasury.services.errors import ValidationError

MIN_YEAR = 2000
MAX_YEAR = 2100

E = TypeVar("E", bound=Enum)


def validate_month(month: int, field: str = "month") -> int:
    """Ensure month is an integer in 1..12."""
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"month must be an integer between 1 and 12, got {month!r}", field)
    return month


def validate_year(year: int, field: str = "year") -> int:
    """Ensure year is an integer in MIN_YEAR..MAX_YEAR."""
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(
            f"year must be an integer between {MIN_YEAR} and {MAX_YEAR}, got {year!r}", field
        )
    return year


def validate_amount(amount: int, field: str = "amount") -> int:
    """Ensure amount is a positive integer (no floats, no booleans)."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{field} must be an integer, got {amount!r}", field)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive, got {amount}", field)
    return amount


def validate_window(months: int, field: str = "months") -> int:
    """Ensure a trailing window length is a positive integer."""
    if isinstance(months, bool) or not isinstance(months, int) or months < 1:
        raise ValidationError(f"{field} must be a positive integer, got {months!r}", field)
    return months


def to_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def validate_enum(enum_cls: type[E], value: E | str, field: str) -> E:
    """Coerce value into enum_cls or raise ValidationError naming the choices."""
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of {choices}, got {value!r}", field) from None


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "validate_month",
    "validate_year",
    "validate_amount",
    "validate_window",
    "validate_enum",
    "to_utc",
    "utc_today",
]
