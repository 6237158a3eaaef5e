"""Barcode scans routed into the cart."""

import logging

from cashier.exceptions import UpstreamError
from cashier.models import CatalogEntry, UnitType
from cashier.services import stock_ledger
from cashier.services.cart_store import CartResult, CartStore
from cashier.services.pos_api_client import PosApiClient

logger = logging.getLogger(__name__)


def scan_into_cart(cart: CartStore, client: PosApiClient, barcode: str) -> CartResult:
    """
    Resolve ``barcode`` and add one unit of the resolved type.

    The backend decides whether a code means the loose item or the
    sealed package. Beyond the usual add gating, a wholesale scan needs
    a package in stock and room for one full package; a retail scan
    needs loose units in stock.
    """
    barcode = (barcode or '').strip()
    if not barcode:
        return CartResult(ok=False, message='Please scan a barcode')

    try:
        found = client.lookup_barcode(barcode)
    except UpstreamError as e:
        logger.error(f"[CART] Barcode lookup for {barcode} failed: {e.message}")
        return CartResult(ok=False, message='Failed to lookup product by barcode')

    if found is None:
        logger.warning(f"[CART] Barcode {barcode} not found")
        return CartResult(ok=False, message='Product not found')

    product = CatalogEntry.from_api(found['product'])
    unit_type = UnitType.parse(found['type'])
    cart.seed_catalog([product])

    if unit_type is UnitType.WHOLESALE:
        if product.wqty <= 0:
            return CartResult(ok=False, message=f'No wholesale packages of {product.name} available!')
        if stock_ledger.max_addable(product, unit_type, cart.lines) < 1:
            return CartResult(ok=False, message=f'Not enough stock for a full package of {product.name}!')
    elif product.rqty <= 0:
        return CartResult(ok=False, message=f'No retail units of {product.name} available!')

    return cart.add_to_cart(product, unit_type, 1)
