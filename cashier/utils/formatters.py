"""
Display helpers for the cashier: Philippine peso amounts, quantities
with their unit names, and transaction-number parts for receipts.
"""
from decimal import Decimal, InvalidOperation
from typing import Union, Optional


def money_ph(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount as Philippine pesos with exactly 2 decimals.

    Examples:
        money_ph(1500) -> "₱1,500.00"
        money_ph(Decimal('12.5')) -> "₱12.50"
        money_ph(None) -> "₱0.00"
    """
    try:
        num = Decimal(str(value)) if value not in (None, '') else Decimal('0')
    except (InvalidOperation, ValueError, TypeError):
        num = Decimal('0')

    num = num.quantize(Decimal('0.01'))
    sign = '-' if num < 0 else ''
    return f"{sign}₱{abs(num):,.2f}"


def describe_quantity(quantity: int, unit_name: str, packaging: Optional[int] = None,
                      retail_unit_name: Optional[str] = None) -> str:
    """
    Describe a line quantity, adding the retail-equivalent for packages.

    Examples:
        describe_quantity(3, 'pc') -> "3 pc"
        describe_quantity(2, 'box', 12, 'pc') -> "2 box (24 pc)"
    """
    text = f"{quantity} {unit_name}"
    if packaging and packaging > 1 and retail_unit_name:
        text += f" ({quantity * packaging} {retail_unit_name})"
    return text


def sequence_number(transaction_number: Optional[str]) -> str:
    """
    Extract the sequence part of a PREFIX-SEQ transaction number.

    Examples:
        sequence_number('ORD-00042') -> "00042"
        sequence_number('00042') -> "00042"
        sequence_number(None) -> ""
    """
    if not transaction_number:
        return ''
    parts = transaction_number.split('-')
    return parts[1] if len(parts) > 1 else transaction_number
