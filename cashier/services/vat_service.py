"""VAT Service - Money breakdown of a set of line items."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from cashier.models import LineItem

# Philippine VAT, already included in catalog prices
VAT_RATE = Decimal('0.12')
VAT_DIVISOR = Decimal('1') + VAT_RATE


@dataclass(frozen=True)
class VatBreakdown:
    """
    Totals of a cart, with the VAT extracted from VAT-inclusive prices.

    No rounding happens here; amounts are quantized only when they are
    sent to the backend or displayed.
    """
    vatable_gross: Decimal
    vatable_base: Decimal
    vat_amount: Decimal
    non_vatable_base: Decimal
    total: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            'vatable_gross': str(self.vatable_gross),
            'vatable_base': str(self.vatable_base),
            'vat_amount': str(self.vat_amount),
            'non_vatable_base': str(self.non_vatable_base),
            'total': str(self.total),
        }


def compute_breakdown(lines: Iterable[LineItem]) -> VatBreakdown:
    """Split line totals into VAT-able and exempt parts."""
    vatable_gross = Decimal('0')
    non_vatable_base = Decimal('0')

    for line in lines:
        if line.snapshot.vatable:
            vatable_gross += line.line_total
        else:
            non_vatable_base += line.line_total

    if vatable_gross > 0:
        vatable_base = vatable_gross / VAT_DIVISOR
        vat_amount = vatable_gross - vatable_base
    else:
        vatable_base = Decimal('0')
        vat_amount = Decimal('0')

    return VatBreakdown(
        vatable_gross=vatable_gross,
        vatable_base=vatable_base,
        vat_amount=vat_amount,
        non_vatable_base=non_vatable_base,
        total=vatable_gross + non_vatable_base,
    )


def compute_change(total: Decimal, discount: Decimal, amount_tendered: Decimal) -> Decimal:
    """Change due to the customer; never negative."""
    return max(Decimal('0'), amount_tendered - (total - discount))
