"""
Edit Reconciliation - Stock checks for changes to a persisted sale.

The persisted sale already holds its stock, so an edit only has to
fit the *increase* over what was originally reserved. Lines that are
reduced or removed always pass and hand their stock back.
"""

import logging
from typing import Any, Dict, List, Optional

from cashier.exceptions import OrderNotEditableError
from cashier.models import CatalogEntry, LineItem, OriginalOrder
from cashier.services.cart_store import CartStore
from cashier.services.pos_api_client import PosApiClient
from cashier.services.stock_ledger import (
    StockShortfall, build_shortfall, retail_equivalent, total_catalog_retail_equivalent
)

logger = logging.getLogger(__name__)


def line_retail_equivalent(line: Optional[LineItem], packaging: int) -> int:
    if line is None:
        return 0
    return retail_equivalent(line.unit_type, line.quantity, packaging)


def net_change(product: CatalogEntry, current_line: Optional[LineItem], original_line: Optional[LineItem]) -> int:
    """Retail units the edit adds (positive) or returns (negative)."""
    current = line_retail_equivalent(current_line, product.packaging)
    original = line_retail_equivalent(original_line, product.packaging)
    return current - original


def has_sufficient_stock_for_edit(
    product: CatalogEntry,
    current_line: Optional[LineItem],
    original_line: Optional[LineItem]
) -> bool:
    """
    Whether the catalog can absorb this line's change.

    Only an increase is checked; it must fit in the catalog stock not
    already covered by the retained part of the original reservation.
    """
    change = net_change(product, current_line, original_line)
    if change <= 0:
        return True
    current = line_retail_equivalent(current_line, product.packaging)
    return change <= total_catalog_retail_equivalent(product) - (current - change)


def reconcile_edit(
    lines: List[LineItem],
    original: OriginalOrder,
    catalog: Dict[int, CatalogEntry]
) -> List[StockShortfall]:
    """
    Run the edit check once per line of the edited draft.

    Products missing from ``catalog`` are skipped; the backend re-checks
    them when the update is applied.
    """
    shortfalls = []
    for line in lines:
        product = catalog.get(line.product_id)
        if product is None:
            logger.warning(f"[EDIT] Product {line.product_id} not in catalog, skipping stock check")
            continue
        original_line = original.line_for(line.product_id, line.unit_type)
        if not has_sufficient_stock_for_edit(product, line, original_line):
            shortfalls.append(build_shortfall(product, line))
    return shortfalls


class EditSession:
    """
    A persisted sale opened for editing.

    Pairs the working cart with the immutable snapshot of the sale as
    it was loaded; only the cart is ever mutated.
    """

    def __init__(self, cart: CartStore, original: OriginalOrder):
        self.cart = cart
        self.original = original

    @classmethod
    def load(cls, client: PosApiClient, sale_id: int, catalog=None) -> 'EditSession':
        """
        Fetch a sale and hydrate a cart with it.

        Raises:
            UpstreamError: If the sale cannot be fetched.
            OrderNotEditableError: If the sale is cancelled or returned.
        """
        original = OriginalOrder.from_api(sale_id, client.get_sale(sale_id))
        if not original.status.is_mutable:
            logger.warning(f"[EDIT] Refused to open {original.transaction_number}: {original.status.label}")
            raise OrderNotEditableError(original.transaction_number, original.status)

        cart = CartStore(catalog=catalog)
        cart.hydrate_from_order(original)
        logger.info(f"[EDIT] Opened sale {sale_id} ({original.transaction_number}) with {len(original.lines)} lines")
        return cls(cart, original)

    @property
    def sale_id(self) -> int:
        return self.original.sale_id

    def original_line(self, line: LineItem) -> Optional[LineItem]:
        return self.original.line_for(line.product_id, line.unit_type)

    def reconcile(self, catalog: Dict[int, CatalogEntry]) -> List[StockShortfall]:
        return reconcile_edit(self.cart.lines, self.original, catalog)

    def refresh(self, original: OriginalOrder) -> None:
        """Adopt the sale as the backend now stores it and re-hydrate."""
        self.original = original
        self.cart.hydrate_from_order(original)

    def to_dict(self) -> Dict[str, Any]:
        return {'original': self.original.to_dict(), 'draft': self.cart.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], catalog=None) -> 'EditSession':
        return cls(
            CartStore.from_dict(data.get('draft') or {}, catalog),
            OriginalOrder.from_dict(data.get('original') or {}),
        )
