"""Cashier blueprint: JSON endpoints for the till (cart, checkout, order edits)."""
from flask import Blueprint, request, session, jsonify, current_app, Response
from flask_wtf.csrf import generate_csrf

from typing import Any, Callable, Dict, Optional, Tuple, Union

from cashier.exceptions import BusinessLogicError, CashierError, NotFoundError
from cashier.models import Customer, SubmissionMode, UnitType, search_catalog
from cashier.services.barcode_service import scan_into_cart
from cashier.services.cache_service import get_cache
from cashier.services.cart_store import CartResult, CartStore
from cashier.services.catalog_service import fetch_catalog, fetch_categories
from cashier.services.checkout_orchestrator import CheckoutOrchestrator, SubmissionResult, SubmissionState
from cashier.services.edit_reconciliation import EditSession
from cashier.services.pos_api_client import get_pos_api
from cashier.services.sales_history_service import list_sales, parse_day
from cashier.services.transaction_number_service import issue_transaction_number
from cashier.utils.number_format import parse_quantity, to_int

cashier_bp = Blueprint('cashier', __name__, url_prefix='/cashier')

DRAFT_KEY = 'cashier_draft'
EDIT_KEY = 'cashier_edit'

DETAIL_FIELDS = ('customer_name', 'customer_id', 'table_no', 'discount', 'amount_tendered', 'payment_method')


def _cache():
    return get_cache()


def _local_prefix() -> str:
    return current_app.config.get('LOCAL_TRANSACTION_PREFIX', 'LOCAL')


def _payload() -> Dict[str, Any]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _catalog():
    return fetch_catalog(get_pos_api(), cache=_cache())


def get_cart() -> CartStore:
    """Draft of this terminal, created under a fresh number on first use."""
    catalog = _catalog()
    data = session.get(DRAFT_KEY)
    if data:
        return CartStore.from_dict(data, catalog)

    number, is_local = issue_transaction_number(get_pos_api(), _local_prefix())
    cart = CartStore.create(number, catalog, local_number=is_local)
    save_cart(cart)
    return cart


def _store(key: str, value: Any) -> None:
    """
    Put ``value`` in the signed cookie session.

    Raises:
        BusinessLogicError: If the resulting cookie would exceed
            SESSION_COOKIE_MAX_BYTES; the browser would silently drop it.
    """
    candidate = dict(session)
    candidate[key] = value
    interface = current_app.session_interface
    serializer = interface.get_signing_serializer(current_app) if hasattr(interface, 'get_signing_serializer') else None
    limit = current_app.config.get('SESSION_COOKIE_MAX_BYTES', 4000)
    if serializer is not None and len(serializer.dumps(candidate)) > limit:
        current_app.logger.warning(f"Session cookie over {limit} bytes, refusing to store {key}")
        raise BusinessLogicError('This order is too large to keep open at this terminal. '
                                 'Check it out or hold it before adding more items.')
    session[key] = value
    session.modified = True


def save_cart(cart: CartStore) -> None:
    _store(DRAFT_KEY, cart.to_dict())


def get_edit_session(sale_id: int) -> EditSession:
    data = (session.get(EDIT_KEY) or {}).get(str(sale_id))
    if not data:
        raise NotFoundError(f'Order {sale_id} is not open for editing')
    return EditSession.from_dict(data, _catalog())


def save_edit_session(edit: EditSession) -> None:
    edits = dict(session.get(EDIT_KEY) or {})
    edits[str(edit.sale_id)] = edit.to_dict()
    _store(EDIT_KEY, edits)


def _open_cart(payload: Dict[str, Any]) -> Tuple[CartStore, Callable[[], None]]:
    """Cart the request targets: an open edit when ``sale_id`` is given, else the draft."""
    sale_id = payload.get('sale_id')
    if sale_id in (None, ''):
        cart = get_cart()
        return cart, lambda: save_cart(cart)
    edit = get_edit_session(to_int(sale_id))
    return edit.cart, lambda: save_edit_session(edit)


def _unit_type(payload: Dict[str, Any], required: bool = True) -> Optional[UnitType]:
    value = payload.get('type') or payload.get('unit_type')
    if not value and not required:
        return None
    return UnitType.parse(value)


def _product_id(payload: Dict[str, Any]) -> int:
    product_id = to_int(payload.get('product_id'))
    if product_id <= 0:
        raise BusinessLogicError('Missing product id')
    return product_id


def _cart_response(cart: CartStore, result: CartResult) -> Response:
    data = result.to_dict()
    data['cart'] = cart.summary()
    return jsonify(data)


def _submission_response(cart: CartStore, result: SubmissionResult) -> Tuple[Response, int]:
    data = result.to_dict()
    data['cart'] = cart.summary()
    if result.state is SubmissionState.COMMITTED:
        return jsonify(data), 200
    if result.state is SubmissionState.REJECTED:
        return jsonify(data), 400
    return jsonify(data), 502


@cashier_bp.errorhandler(CashierError)
def handle_cashier_error(error: CashierError):
    current_app.logger.warning(f"CashierError [{error.status_code}]: {error.message}")
    return jsonify(error.to_dict()), error.status_code


# =====================================================
# CATALOG
# =====================================================

@cashier_bp.route('/csrf-token', methods=['GET'])
def csrf_token() -> Response:
    return jsonify({'csrf_token': generate_csrf()})


@cashier_bp.route('/categories', methods=['GET'])
def categories() -> Response:
    return jsonify({'status': 'success', 'categories': fetch_categories(get_pos_api(), cache=_cache())})


@cashier_bp.route('/catalog', methods=['GET'])
def catalog() -> Response:
    """Catalog (optionally one category) with what the cart can still take of each product."""
    category_id = request.args.get('category_id', type=int)
    cart = get_cart()
    entries = fetch_catalog(get_pos_api(), category_id=category_id, cache=_cache())
    return jsonify({
        'status': 'success',
        'products': [dict(entry.to_dict(), availability=cart.availability(entry)) for entry in entries],
    })


@cashier_bp.route('/search', methods=['GET'])
def search() -> Response:
    cart = get_cart()
    matches = search_catalog(cart.catalog.values(), request.args.get('q', ''))
    return jsonify({
        'status': 'success',
        'products': [dict(entry.to_dict(), availability=cart.availability(entry)) for entry in matches],
    })


@cashier_bp.route('/customers', methods=['GET'])
def customers() -> Response:
    rows = [Customer.from_api(row) for row in get_pos_api().get_customers()]
    return jsonify({'status': 'success', 'customers': [{'id': c.id, 'name': c.name} for c in rows]})


# =====================================================
# CART
# =====================================================

@cashier_bp.route('/cart', methods=['GET'])
def cart_view() -> Response:
    cart, persist = _open_cart(request.args.to_dict())
    persist()
    return jsonify({'status': 'success', 'cart': cart.summary()})


@cashier_bp.route('/cart/add', methods=['POST'])
def cart_add() -> Response:
    payload = _payload()
    cart, persist = _open_cart(payload)
    product_id = _product_id(payload)
    product = cart.product(product_id)
    if product is None:
        raise NotFoundError(f'Product {product_id} not found')

    result = cart.add_to_cart(product, _unit_type(payload), parse_quantity(payload.get('quantity')))
    persist()
    return _cart_response(cart, result)


@cashier_bp.route('/cart/increase', methods=['POST'])
def cart_increase() -> Response:
    payload = _payload()
    cart, persist = _open_cart(payload)
    result = cart.increase_quantity(_product_id(payload), _unit_type(payload))
    persist()
    return _cart_response(cart, result)


@cashier_bp.route('/cart/decrease', methods=['POST'])
def cart_decrease() -> Response:
    payload = _payload()
    cart, persist = _open_cart(payload)
    result = cart.decrease_quantity(_product_id(payload), _unit_type(payload, required=False))
    persist()
    return _cart_response(cart, result)


@cashier_bp.route('/cart/remove', methods=['POST'])
def cart_remove() -> Response:
    payload = _payload()
    cart, persist = _open_cart(payload)
    result = cart.remove_line(_product_id(payload), _unit_type(payload))
    persist()
    return _cart_response(cart, result)


@cashier_bp.route('/cart/scan', methods=['POST'])
def cart_scan() -> Response:
    payload = _payload()
    cart, persist = _open_cart(payload)
    result = scan_into_cart(cart, get_pos_api(), payload.get('barcode'))
    persist()
    return _cart_response(cart, result)


@cashier_bp.route('/cart/details', methods=['POST'])
def cart_details() -> Response:
    """Header fields typed at the till (customer, table, discount, tender, payment)."""
    payload = _payload()
    cart, persist = _open_cart(payload)
    try:
        cart.update_details(**{key: payload[key] for key in DETAIL_FIELDS if key in payload})
    except ValueError as e:
        raise BusinessLogicError(str(e))
    persist()
    return jsonify({'status': 'success', 'cart': cart.summary()})


@cashier_bp.route('/cart/reset', methods=['POST'])
def cart_reset() -> Response:
    """Discard the draft and start over under a new transaction number."""
    cart = get_cart()
    number, is_local = issue_transaction_number(get_pos_api(), _local_prefix())
    cart.reset(number, local_number=is_local)
    save_cart(cart)
    return jsonify({'status': 'success', 'cart': cart.summary()})


# =====================================================
# CHECKOUT
# =====================================================

@cashier_bp.route('/checkout', methods=['POST'])
def checkout() -> Union[Response, Tuple[Response, int]]:
    """Complete the sale, or hold it for later with ``mode=hold``."""
    payload = _payload()
    try:
        mode = SubmissionMode(str(payload.get('mode') or SubmissionMode.COMPLETE.value).lower())
    except ValueError:
        raise BusinessLogicError(f"Invalid checkout mode: {payload.get('mode')!r}")

    cart = get_cart()
    orchestrator = CheckoutOrchestrator(cart, get_pos_api(), cache=_cache(), local_prefix=_local_prefix())
    result = orchestrator.submit(mode)
    save_cart(cart)
    return _submission_response(cart, result)


# =====================================================
# ORDER EDITS
# =====================================================

@cashier_bp.route('/sales', methods=['GET'])
def sales() -> Response:
    """Sales of one day (``?date=YYYY-MM-DD``, default today); ``editable`` rows can be opened."""
    day = parse_day(request.args.get('date'))
    return jsonify({'status': 'success', 'date': day.isoformat(), 'sales': list_sales(get_pos_api(), day)})


@cashier_bp.route('/edit/<int:sale_id>', methods=['GET'])
def edit_load(sale_id: int) -> Response:
    """Open a persisted sale for editing."""
    edit = EditSession.load(get_pos_api(), sale_id, catalog=_catalog())
    save_edit_session(edit)
    return jsonify({'status': 'success', 'original': edit.original.to_dict(), 'cart': edit.cart.summary()})


@cashier_bp.route('/edit/<int:sale_id>', methods=['PUT'])
def edit_update(sale_id: int) -> Union[Response, Tuple[Response, int]]:
    edit = get_edit_session(sale_id)
    orchestrator = CheckoutOrchestrator(edit.cart, get_pos_api(), cache=_cache(), local_prefix=_local_prefix())
    result = orchestrator.submit_update(edit)
    save_edit_session(edit)
    return _submission_response(edit.cart, result)


@cashier_bp.route('/edit/<int:sale_id>', methods=['DELETE'])
def edit_close(sale_id: int) -> Response:
    """Drop an open edit without saving it."""
    edits = dict(session.get(EDIT_KEY) or {})
    edits.pop(str(sale_id), None)
    session[EDIT_KEY] = edits
    session.modified = True
    return jsonify({'status': 'success'})
