# backend/portfolio_tracker/utils/money.py
"""
Money and quantity primitives.

All amounts in the tracker are decimal.Decimal. Floats never enter the
engines: inputs are converted through to_decimal (via str, so 0.1 stays
0.1), and rounding happens only at the presentation boundary.

Quantity policy:
    Equities (local and foreign) are held in whole shares, so every
    quantity coming from a BUY, SELL or reinvested dividend is floored.
    Precious metals keep fractional quantities.

Usage:
    from portfolio_tracker.utils.money import to_decimal, normalize_quantity

    qty = normalize_quantity(AssetCategory.LOCAL_EQUITY, Decimal("10.7"))  # 10
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP, InvalidOperation

from portfolio_tracker.models import AssetCategory

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Rounding for API output
MONEY_PLACES = Decimal("0.01")
PERCENT_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.00000001")

# Accepted difference between a supplied total and quantity * price
TOTAL_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str | None, default: Decimal | None = None) -> Decimal | None:
    """
    Convert a number to Decimal without float artifacts.

    Returns `default` for None. Raises ValueError for values that are not
    finite numbers.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def floor_shares(value: Decimal) -> Decimal:
    """Truncate toward negative infinity to a whole number of shares."""
    return value.to_integral_value(rounding=ROUND_FLOOR)


def normalize_quantity(category: AssetCategory, quantity: Decimal) -> Decimal:
    """Apply the whole-share policy: floor for equities, unchanged for metals."""
    if category.is_equity:
        return floor_shares(quantity)
    return quantity


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, or 0 for a zero whole."""
    return safe_divide(part * HUNDRED, whole)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_percent(value: Decimal) -> Decimal:
    return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def is_close(a: Decimal, b: Decimal, tolerance: Decimal = TOTAL_TOLERANCE) -> bool:
    return abs(a - b) <= tolerance
