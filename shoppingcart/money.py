"""
Money Utilities - Safe Decimal operations for monetary values.

Avoids float precision issues by using Decimal throughout. Formatting
helpers only affect presentation, never the computed amounts.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from shoppingcart.config import get_format_settings

Number = Union[str, int, float, Decimal]

ZERO = Decimal("0")


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        # Convert via string to avoid float precision issues
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def is_numeric(value: object) -> bool:
    """True for ints, floats, Decimals and numeric strings (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value)).is_finite()
    if isinstance(value, str):
        try:
            return Decimal(value.strip()).is_finite()
        except InvalidOperation:
            return False
    return False


def round_money(value: Number, places: int = 2) -> Decimal:
    """Round monetary value half-up to the given number of places."""
    precision = Decimal(1).scaleb(-places) if places > 0 else Decimal("1")
    return to_decimal(value).quantize(precision, rounding=ROUND_HALF_UP)


def to_float(value: Number) -> float:
    """
    Convert Decimal to float for JSON responses.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def number_format(
    value: Number,
    decimals: Optional[int] = None,
    decimal_point: Optional[str] = None,
    thousands_sep: Optional[str] = None,
) -> str:
    """
    Format a number for display.

    Missing arguments fall back to CART_FORMAT_* settings
    (2 decimals, "." and "," by default).

    Example:
        number_format(Decimal("1234.5"), 2, ",", ".") -> "1.234,50"
    """
    settings = get_format_settings()
    if decimals is None:
        decimals = settings.decimals
    if decimal_point is None:
        decimal_point = settings.decimal_point
    if thousands_sep is None:
        thousands_sep = settings.thousands_sep

    rounded = round_money(value, decimals)
    text = f"{rounded:,.{decimals}f}"
    # Swap through a placeholder so "." and "," can trade places
    return text.replace(",", "\x00").replace(".", decimal_point).replace("\x00", thousands_sep)


def present(
    value: Number,
    formatted: bool = False,
    decimals: Optional[int] = None,
    decimal_point: Optional[str] = None,
    thousands_sep: Optional[str] = None,
) -> Union[Decimal, str]:
    """Return `value` untouched, or its display string when `formatted`."""
    if not formatted:
        return to_decimal(value)
    return number_format(value, decimals, decimal_point, thousands_sep)
