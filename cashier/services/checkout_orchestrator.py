"""
Checkout Orchestrator - Validates and submits a draft to the POS backend.

A submission attempt runs Idle -> Validating -> (Rejected | Submitting)
-> (Committed | Failed). Validation never raises: every rejection is a
``SubmissionResult`` the till can show as-is. Stock is re-checked
against a fresh, uncached catalog read right before submitting; the
backend stays the authority and decrements stock itself.
"""

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from cashier.exceptions import InsufficientStockError, UpstreamError
from cashier.models import CatalogEntry, Customer, LineItem, OriginalOrder, PaymentMethod, SubmissionMode, UnitType
from cashier.services import stock_ledger
from cashier.services.cache_service import CacheService
from cashier.services.cart_store import CartStore
from cashier.services.catalog_service import fetch_fresh_catalog, invalidate_catalog
from cashier.services.edit_reconciliation import EditSession
from cashier.services.pos_api_client import PosApiClient
from cashier.services.stock_ledger import StockShortfall, build_product_shortfall, build_shortfall
from cashier.services.transaction_number_service import DEFAULT_LOCAL_PREFIX, issue_transaction_number
from cashier.services.vat_service import VatBreakdown, compute_change
from cashier.utils.formatters import describe_quantity, money_ph, sequence_number

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


class SubmissionState(str, enum.Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    REJECTED = 'rejected'
    SUBMITTING = 'submitting'
    COMMITTED = 'committed'
    FAILED = 'failed'


@dataclass
class SubmissionResult:
    """Outcome of one submission attempt."""
    state: SubmissionState
    message: str = ''
    reason: Optional[str] = None
    shortfalls: List[StockShortfall] = field(default_factory=list)
    payload: Optional[Dict[str, Any]] = None
    receipt: Optional[Dict[str, Any]] = None
    transaction_number: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is SubmissionState.COMMITTED

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            status = 'success'
        elif self.state is SubmissionState.REJECTED:
            status = 'warning'
        else:
            status = 'error'
        return {
            'status': status,
            'state': self.state.value,
            'message': self.message,
            'reason': self.reason,
            'shortfalls': [item.to_dict() for item in self.shortfalls],
            'receipt': self.receipt,
            'transaction_number': self.transaction_number,
        }


def _money(value: Decimal) -> float:
    """Quantize to centavos for the wire."""
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def _vat_flag(vatable: bool) -> int:
    return 1 if vatable else 0


class CheckoutOrchestrator:
    """
    Drives submission of the draft held by ``cart``.

    ``state`` reflects the last transition of the current or most recent
    attempt.
    """

    def __init__(
        self,
        cart: CartStore,
        client: PosApiClient,
        cache: Optional[CacheService] = None,
        local_prefix: str = DEFAULT_LOCAL_PREFIX
    ):
        self.cart = cart
        self.client = client
        self.cache = cache
        self.local_prefix = local_prefix
        self.state = SubmissionState.IDLE

    # =====================================================
    # NEW SALE
    # =====================================================

    def submit(self, mode: SubmissionMode = SubmissionMode.COMPLETE) -> SubmissionResult:
        """Validate the draft and persist it as a new sale."""
        mode = SubmissionMode(mode)
        self.state = SubmissionState.VALIDATING
        draft = self.cart.draft
        breakdown = self.cart.breakdown()

        rejection = self._check_common(breakdown)
        if rejection:
            return rejection

        if draft.payment_method is PaymentMethod.CREDIT:
            return self._reject('credit_not_allowed', 'Credit payment is only available when editing an order')

        if mode is SubmissionMode.COMPLETE:
            rejection = self._check_tender(breakdown)
            if rejection:
                return rejection

        try:
            catalog = fetch_fresh_catalog(self.client)
        except UpstreamError as e:
            return self._fail(e.message)

        shortfalls = self.check_stock(catalog)
        if shortfalls:
            return self._reject_stock(shortfalls)

        payload = self.build_payload(mode, breakdown, catalog)
        self.state = SubmissionState.SUBMITTING
        try:
            response = self.client.checkout(payload)
        except UpstreamError as e:
            return self._fail(e.message)

        receipt = self.build_receipt(payload) if mode is SubmissionMode.COMPLETE else None
        logger.info(f"[CHECKOUT] Committed {payload['transaction_number']} ({mode.value}, total {payload['total']})")
        new_number = self._start_next_draft()
        self.state = SubmissionState.COMMITTED
        return SubmissionResult(
            state=self.state,
            message=response.get('message') or 'Order saved successfully',
            payload=payload,
            receipt=receipt,
            transaction_number=new_number,
        )

    def check_stock(self, catalog: Dict[int, CatalogEntry]) -> List[StockShortfall]:
        """
        Point-in-time re-check of every line against ``catalog``.

        Each line's retail-equivalent requirement is compared against
        the product's current catalog total; a product whose lines pass
        one by one is then checked once more with all its lines summed.
        Products the catalog no longer lists are left for the backend to
        reject.
        """
        shortfalls = []
        by_product: Dict[int, List[LineItem]] = {}
        for line in self.cart.lines:
            product = catalog.get(line.product_id)
            if product is None:
                logger.warning(f"[CHECKOUT] Product {line.product_id} not in catalog, skipping stock check")
                continue
            by_product.setdefault(product.id, []).append(line)
            required = stock_ledger.retail_equivalent(line.unit_type, line.quantity, product.packaging)
            if required > stock_ledger.total_catalog_retail_equivalent(product):
                shortfalls.append(build_shortfall(product, line))

        short = {item.product_id for item in shortfalls}
        for product_id, lines in by_product.items():
            if product_id in short or len(lines) < 2:
                continue
            product = catalog[product_id]
            total = stock_ledger.total_catalog_retail_equivalent(product)
            if stock_ledger.committed_retail_equivalent(product, lines) > total:
                shortfalls.append(build_product_shortfall(product, lines))
        return shortfalls

    # =====================================================
    # EDITED SALE
    # =====================================================

    def submit_update(self, session: EditSession) -> SubmissionResult:
        """Validate an edited sale and replace it in place on the backend."""
        self.state = SubmissionState.VALIDATING
        draft = self.cart.draft
        breakdown = self.cart.breakdown()

        rejection = self._check_common(breakdown)
        if rejection:
            return rejection

        customer = None
        if draft.payment_method is PaymentMethod.CREDIT:
            if draft.customer_id is None:
                return self._reject('customer_required', 'Please select a customer for credit payment')
            try:
                customers = [Customer.from_api(row) for row in self.client.get_customers()]
            except UpstreamError as e:
                return self._fail(e.message)
            customer = next((c for c in customers if c.id == draft.customer_id), None)
            if customer is None:
                return self._reject('customer_required', 'Selected customer was not found')
        else:
            rejection = self._check_tender(breakdown)
            if rejection:
                return rejection

        try:
            catalog = fetch_fresh_catalog(self.client)
        except UpstreamError as e:
            return self._fail(e.message)

        shortfalls = session.reconcile(catalog)
        if shortfalls:
            return self._reject_stock(shortfalls)

        payload = self.build_update_payload(breakdown, catalog, customer)
        self.state = SubmissionState.SUBMITTING
        try:
            response = self.client.update_sale(session.sale_id, payload)
        except UpstreamError as e:
            return self._fail(e.message)

        logger.info(f"[EDIT] Updated sale {session.sale_id} ({payload['transaction_number']})")
        invalidate_catalog(self.cache)
        message = response.get('message') or 'Order updated successfully'
        try:
            session.refresh(OriginalOrder.from_api(session.sale_id, self.client.get_sale(session.sale_id)))
            session.cart.seed_catalog(catalog.values())
        except UpstreamError as e:
            logger.warning(f"[EDIT] Sale {session.sale_id} updated but reload failed: {e.message}")

        self.state = SubmissionState.COMMITTED
        return SubmissionResult(
            state=self.state,
            message=message,
            payload=payload,
            transaction_number=payload['transaction_number'],
        )

    # =====================================================
    # PAYLOADS
    # =====================================================

    def build_payload(
        self,
        mode: SubmissionMode,
        breakdown: VatBreakdown,
        catalog: Dict[int, CatalogEntry]
    ) -> Dict[str, Any]:
        """Checkout payload; hold-for-later carries no tender and no change."""
        draft = self.cart.draft
        if mode is SubmissionMode.HOLD:
            tendered = Decimal('0')
            change = Decimal('0')
        else:
            tendered = draft.amount_tendered
            change = compute_change(breakdown.total, draft.discount, tendered)

        payload = self._base_payload(breakdown, catalog)
        payload.update({
            'amt_tendered': _money(tendered),
            'amount_change': _money(change),
            'customer': draft.customer_name,
            'customer_id': draft.customer_id,
            'status': int(mode.status),
        })
        return payload

    def build_update_payload(
        self,
        breakdown: VatBreakdown,
        catalog: Dict[int, CatalogEntry],
        customer: Optional[Customer] = None
    ) -> Dict[str, Any]:
        """Update payload; Credit sends the customer record and no tender."""
        draft = self.cart.draft
        payload = self._base_payload(breakdown, catalog)
        if customer is not None:
            payload.update({
                'amt_tendered': 0.0,
                'amount_change': 0.0,
                'customer': customer.name,
                'customer_id': customer.id,
            })
        else:
            payload.update({
                'amt_tendered': _money(draft.amount_tendered),
                'amount_change': _money(compute_change(breakdown.total, draft.discount, draft.amount_tendered)),
                'customer': draft.customer_name,
                'customer_id': None,
            })
        return payload

    def build_receipt(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Snapshot of a committed sale for the receipt printer."""
        draft = self.cart.draft
        lines = []
        for line in self.cart.lines:
            snap = line.snapshot
            lines.append({
                'name': snap.name,
                'unit_name': snap.unit_name,
                'quantity': line.quantity,
                'quantity_label': describe_quantity(
                    line.quantity, snap.unit_name,
                    snap.packaging if line.unit_type is UnitType.WHOLESALE else None,
                    snap.retail_unit_name,
                ),
                'price': money_ph(snap.unit_price),
                'subtotal': money_ph(line.line_total),
            })

        total_due = Decimal(str(payload['total'])) - Decimal(str(payload['discount']))
        return {
            'transaction_number': payload['transaction_number'],
            'sequence_number': sequence_number(payload['transaction_number']),
            'date': payload['date'],
            'customer': draft.customer_name,
            'table_no': draft.table_no,
            'payment_method': draft.payment_method.value,
            'lines': lines,
            'vatable_sales': money_ph(payload['vatable_sales']),
            'vat_amount': money_ph(payload['vat_amount']),
            'non_vatable_sales': money_ph(payload['non_vatable_sales']),
            'total': money_ph(payload['total']),
            'discount': money_ph(payload['discount']),
            'total_due': money_ph(total_due),
            'amount_tendered': money_ph(payload['amt_tendered']),
            'change': money_ph(payload['amount_change']),
        }

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _base_payload(self, breakdown: VatBreakdown, catalog: Dict[int, CatalogEntry]) -> Dict[str, Any]:
        draft = self.cart.draft
        items = []
        for line in self.cart.lines:
            snap = line.snapshot
            product = catalog.get(line.product_id)
            packaging = product.packaging if product is not None else snap.packaging
            items.append({
                'product_id': snap.product_id,
                'capital': _money(snap.capital),
                'price': _money(snap.unit_price),
                'price_type': snap.unit_type.value,
                'quantity': line.quantity,
                'subtotal': _money(line.line_total),
                'vatable': _vat_flag(snap.vatable),
                'packaging': packaging,
                'retail_equivalent': stock_ledger.retail_equivalent(line.unit_type, line.quantity, packaging),
            })

        return {
            'transaction_number': draft.transaction_number,
            'date': draft.date.isoformat(),
            'total': _money(breakdown.total),
            'discount': _money(draft.discount),
            'table_no': draft.table_no,
            'vatable_sales': _money(breakdown.vatable_base),
            'vat_amount': _money(breakdown.vat_amount),
            'non_vatable_sales': _money(breakdown.non_vatable_base),
            'payment_method': draft.payment_method.value,
            'items': items,
        }

    def _check_common(self, breakdown: VatBreakdown) -> Optional[SubmissionResult]:
        draft = self.cart.draft
        if not self.cart.lines:
            return self._reject('empty_cart', 'Cart is empty')
        if draft.discount < 0 or draft.discount > breakdown.total:
            return self._reject(
                'invalid_discount',
                f'Invalid discount: must be between {money_ph(0)} and {money_ph(breakdown.total)}'
            )
        return None

    def _check_tender(self, breakdown: VatBreakdown) -> Optional[SubmissionResult]:
        draft = self.cart.draft
        due = breakdown.total - draft.discount
        if draft.amount_tendered <= 0 or draft.amount_tendered < due:
            return self._reject(
                'insufficient_tender',
                f'Insufficient tender: amount due is {money_ph(due)}, received {money_ph(draft.amount_tendered)}'
            )
        return None

    def _start_next_draft(self) -> str:
        """Reset the cart under a new number with stock as the backend now sees it."""
        invalidate_catalog(self.cache)
        number, is_local = issue_transaction_number(self.client, self.local_prefix)
        self.cart.reset(number, local_number=is_local)
        try:
            self.cart.seed_catalog(fetch_fresh_catalog(self.client).values())
        except UpstreamError as e:
            logger.warning(f"[CHECKOUT] Catalog refresh after commit failed: {e.message}")
        return number

    def _reject(self, reason: str, message: str) -> SubmissionResult:
        self.state = SubmissionState.REJECTED
        logger.warning(f"[CHECKOUT] {self.cart.draft.transaction_number} rejected: {message}")
        return SubmissionResult(state=self.state, message=message, reason=reason)

    def _reject_stock(self, shortfalls: List[StockShortfall]) -> SubmissionResult:
        self.state = SubmissionState.REJECTED
        message = InsufficientStockError(shortfalls).message
        logger.warning(f"[CHECKOUT] {self.cart.draft.transaction_number} rejected: {len(shortfalls)} stock shortfall(s)")
        return SubmissionResult(state=self.state, message=message, reason='insufficient_stock', shortfalls=shortfalls)

    def _fail(self, message: str) -> SubmissionResult:
        self.state = SubmissionState.FAILED
        logger.error(f"[CHECKOUT] {self.cart.draft.transaction_number} failed: {message}")
        return SubmissionResult(state=self.state, message=message or 'Failed to save order', reason='upstream')
