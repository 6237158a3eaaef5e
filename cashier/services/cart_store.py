"""Cart Store - Owns a terminal's order draft and its line items."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from cashier.models import (
    CatalogEntry, LineItem, LineSnapshot, OrderDraft, OriginalOrder, PaymentMethod, UnitType
)
from cashier.services import stock_ledger
from cashier.services.vat_service import VatBreakdown, compute_breakdown, compute_change
from cashier.utils.formatters import describe_quantity
from cashier.utils.number_format import parse_money

logger = logging.getLogger(__name__)


@dataclass
class CartResult:
    """Outcome of a cart action. Rejections carry a user-facing warning."""
    ok: bool
    message: str = ''
    line: Optional[LineItem] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': 'success' if self.ok else 'warning',
            'message': self.message,
            'line': self.line.to_dict() if self.line else None,
        }


def _unit_label(unit_type: UnitType) -> str:
    if unit_type is UnitType.RETAIL:
        return 'retail units'
    return 'wholesale packages'


class CartStore:
    """
    Cart for one terminal.

    Holds the draft being rung up plus the catalog entries its stock
    gating is computed against. Every mutation goes through the stock
    ledger first and leaves the per-product retail-equivalent total at
    or below what the catalog holds.
    """

    def __init__(self, draft: Optional[OrderDraft] = None, catalog: Optional[Iterable[CatalogEntry]] = None):
        self.draft = draft or OrderDraft()
        self._catalog: Dict[int, CatalogEntry] = {}
        if catalog:
            self.seed_catalog(catalog)

    # =====================================================
    # LIFECYCLE
    # =====================================================

    @classmethod
    def create(cls, transaction_number: str, catalog: Optional[Iterable[CatalogEntry]] = None,
               local_number: bool = False) -> 'CartStore':
        """Empty cart for a freshly issued transaction number."""
        return cls(OrderDraft(transaction_number=transaction_number, local_number=local_number), catalog)

    def reset(self, transaction_number: str, local_number: bool = False) -> None:
        """Drop every line and header field; start over under a new number."""
        self.draft = OrderDraft(transaction_number=transaction_number, local_number=local_number)

    def hydrate_from_order(self, original: OriginalOrder) -> None:
        """Load a persisted sale into the draft for editing."""
        self.draft = original.to_draft()
        for product_id in {line.product_id for line in self.lines}:
            self._refresh_product(product_id)

    def seed_catalog(self, entries: Iterable[CatalogEntry], keep_warnings: bool = False) -> None:
        """
        Replace catalog entries (by id) and re-derive line stock fields.

        With ``keep_warnings`` only ``available_stock`` is recomputed and
        each line keeps the warning it was saved with; the warning is
        re-evaluated on the next add or increase.
        """
        for entry in entries:
            self._catalog[entry.id] = entry
        for product_id in {line.product_id for line in self.lines}:
            self._refresh_product(product_id, keep_warnings=keep_warnings)

    # =====================================================
    # READS
    # =====================================================

    @property
    def lines(self) -> List[LineItem]:
        return self.draft.lines

    @property
    def catalog(self) -> Dict[int, CatalogEntry]:
        return self._catalog

    def product(self, product_id: int) -> Optional[CatalogEntry]:
        return self._catalog.get(product_id)

    def find_line(self, product_id: int, unit_type: Optional[UnitType] = None) -> Optional[LineItem]:
        """First line of the product, optionally of one unit type."""
        for line in self.lines:
            if line.product_id == product_id and (unit_type is None or line.unit_type is unit_type):
                return line
        return None

    def breakdown(self) -> VatBreakdown:
        return compute_breakdown(self.lines)

    def change(self) -> Decimal:
        return compute_change(self.breakdown().total, self.draft.discount, self.draft.amount_tendered)

    def availability(self, product: CatalogEntry) -> Dict[str, Any]:
        """Stock summary of a product as the cart currently sees it."""
        retail = stock_ledger.max_addable(product, UnitType.RETAIL, self.lines)
        wholesale = stock_ledger.max_addable(product, UnitType.WHOLESALE, self.lines)
        return {
            'product_id': product.id,
            'retail_available': retail,
            'wholesale_available': wholesale,
            'in_cart_retail': stock_ledger.committed_retail_equivalent(product, self.lines),
            'out_of_stock': retail <= 0 and wholesale <= 0,
        }

    # =====================================================
    # MUTATIONS
    # =====================================================

    def add_to_cart(self, product: CatalogEntry, unit_type: UnitType, quantity: int = 1) -> CartResult:
        """Add ``quantity`` of ``unit_type``, merging into an existing line."""
        unit_type = UnitType.parse(unit_type)
        self._catalog[product.id] = product

        if quantity <= 0:
            return self._reject('Please enter a valid quantity')

        existing = self.find_line(product.id, unit_type)
        if existing is None and product.raw_quantity(unit_type) <= 0:
            return self._reject(f'No {_unit_label(unit_type)} of {product.name} available!')

        if stock_ledger.available_retail_equivalent(product, self.lines) <= 0:
            return self._reject(f'No more {product.name} available!')

        capacity = stock_ledger.max_addable(product, unit_type, self.lines)
        if quantity > capacity:
            return self._reject(f'Only {capacity} {_unit_label(unit_type)} available!')

        if existing:
            existing.quantity += quantity
            line = existing
        else:
            line = LineItem(snapshot=LineSnapshot.from_catalog(product, unit_type), quantity=quantity)
            self.lines.append(line)

        self._refresh_product(product.id)
        logger.debug(f"[CART] {self.draft.transaction_number}: +{quantity} {unit_type.value} of product {product.id}")
        return CartResult(ok=True, message=f'{quantity} {product.name} added to cart', line=line)

    def increase_quantity(self, product_id: int, unit_type: UnitType) -> CartResult:
        """One more unit on an existing line, gated like an add."""
        unit_type = UnitType.parse(unit_type)
        line = self.find_line(product_id, unit_type)
        if line is None:
            return self._reject('Item is not in the cart')

        product = self.product(product_id)
        if product is None:
            return self._reject(f'{line.snapshot.name} is no longer in the catalog')

        if line.stock_warning and line.quantity >= line.available_stock:
            return self._reject(f'Only {line.available_stock} {line.snapshot.unit_name} available!')

        return self.add_to_cart(product, unit_type, 1)

    def decrease_quantity(self, product_id: int, unit_type: Optional[UnitType] = None) -> CartResult:
        """One less unit on the first matching line; never below 1."""
        if unit_type is not None:
            unit_type = UnitType.parse(unit_type)
        line = self.find_line(product_id, unit_type)
        if line is None:
            return self._reject('Item is not in the cart')

        if line.quantity <= 1:
            return CartResult(ok=False, message='Quantity cannot go below 1', line=line)

        line.quantity -= 1
        self._refresh_product(product_id, clear_warning=line)
        return CartResult(ok=True, line=line)

    def remove_line(self, product_id: int, unit_type: UnitType) -> CartResult:
        unit_type = UnitType.parse(unit_type)
        self.draft.lines = [line for line in self.lines if line.key != (product_id, unit_type)]
        self._refresh_product(product_id)
        return CartResult(ok=True)

    def update_details(self, **fields) -> None:
        """
        Update draft header fields typed at the till.

        Accepts customer_name, customer_id, table_no, discount,
        amount_tendered and payment_method; unknown keys are ignored.

        Raises:
            ValueError: If an amount is malformed or negative.
            BusinessLogicError: If the payment method is unknown.
        """
        draft = self.draft
        if 'customer_name' in fields:
            draft.customer_name = (fields['customer_name'] or '').strip()
        if 'customer_id' in fields:
            value = fields['customer_id']
            draft.customer_id = int(value) if value not in (None, '') else None
        if 'table_no' in fields:
            draft.table_no = str(fields['table_no'] or '').strip()
        if 'discount' in fields:
            draft.discount = parse_money(fields['discount'])
        if 'amount_tendered' in fields:
            draft.amount_tendered = parse_money(fields['amount_tendered'])
        if 'payment_method' in fields:
            draft.payment_method = PaymentMethod.parse(fields['payment_method'])

    # =====================================================
    # SERIALIZATION
    # =====================================================

    def to_dict(self) -> Dict[str, Any]:
        return self.draft.to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], catalog: Optional[Iterable[CatalogEntry]] = None) -> 'CartStore':
        cart = cls(OrderDraft.from_dict(data))
        if catalog:
            cart.seed_catalog(catalog, keep_warnings=True)
        return cart

    def summary(self) -> Dict[str, Any]:
        """Draft, totals and change, as the till renders them."""
        breakdown = self.breakdown()
        data = self.to_dict()
        data['lines'] = [
            dict(line.to_dict(), quantity_label=describe_quantity(
                line.quantity, line.snapshot.unit_name,
                line.snapshot.packaging if line.unit_type is UnitType.WHOLESALE else None,
                line.snapshot.retail_unit_name,
            ))
            for line in self.lines
        ]
        data['totals'] = breakdown.to_dict()
        data['change'] = str(compute_change(breakdown.total, self.draft.discount, self.draft.amount_tendered))
        return data

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _refresh_product(self, product_id: int, clear_warning: Optional[LineItem] = None,
                         keep_warnings: bool = False) -> None:
        """Re-derive available_stock and stock_warning on the product's lines."""
        product = self.product(product_id)
        if product is None:
            return
        for line in self.lines:
            if line.product_id != product_id:
                continue
            line.available_stock = stock_ledger.line_available_stock(product, line, self.lines)
            if line is clear_warning:
                line.stock_warning = False
            elif keep_warnings:
                continue
            else:
                line.stock_warning = stock_ledger.stock_warning(product, line)

    def _reject(self, message: str) -> CartResult:
        logger.warning(f"[CART] {self.draft.transaction_number}: {message}")
        return CartResult(ok=False, message=message)
