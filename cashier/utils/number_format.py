"""Number parsing utilities for amounts and quantities coming off the wire."""
import re
from decimal import Decimal, InvalidOperation

PH_DECIMAL_PATTERN = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$")


def to_decimal(value, default: Decimal = Decimal('0')) -> Decimal:
    """
    Coerce an API value (str, int, float, Decimal or None) to Decimal.

    Floats are converted through str() so 0.1 stays 0.1. Unparseable
    values fall back to ``default``; the backend serializes empty prices
    as null or "" and those mean zero.
    """
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default


def to_int(value, default: int = 0) -> int:
    """Coerce an API quantity to int (the backend sends "12", 12 or 12.0)."""
    if value is None or value == '':
        return default
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return default


def parse_quantity(value, default: int = 1) -> int:
    """
    Parse a quantity typed at the till.

    Blank means ``default``. Anything that is not a whole number
    (e.g. "abc", "2.7") comes back as 0, which the cart rejects as an
    invalid quantity instead of silently adding something else.
    """
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return 0
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not quantity.is_finite() or quantity != quantity.to_integral_value():
        return 0
    return int(quantity)


def parse_money(value) -> Decimal:
    """
    Parse a monetary amount typed at the till (e.g., 1,234.50 or 500).

    Rules:
    - Thousands separator: comma (,) optional, proper grouping
    - Decimal separator: dot (.)
    - No negatives

    Raises:
        ValueError: if the value is invalid or negative.
    """
    if value is None:
        raise ValueError('Invalid amount. Use 1,234.50')
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        cleaned = str(value).strip().lstrip('₱').strip()
        if not cleaned:
            return Decimal('0')
        if not PH_DECIMAL_PATTERN.match(cleaned):
            raise ValueError('Invalid amount. Use 1,234.50')
        try:
            amount = Decimal(cleaned.replace(',', ''))
        except (InvalidOperation, ValueError):
            raise ValueError('Invalid amount. Use 1,234.50')

    if amount < 0:
        raise ValueError('Amount cannot be negative')
    return amount
