"""POS backend API client (catalog, transaction numbers, sales)."""
import logging
import requests
from urllib.parse import quote
from typing import Dict, Any, List, Optional
from flask import Flask, current_app

from cashier.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class PosApiClient:
    """HTTP client for the POS backend, the single source of truth for stock."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 10):
        """
        Initialize the client.

        Args:
            base_url: Backend root, e.g. http://pos-backend:8000
            token: Optional bearer token
            timeout: Per-request timeout in seconds
        """
        if not base_url:
            raise ValueError("POS_API_BASE_URL is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        }
        if token:
            self.headers['Authorization'] = f'Bearer {token}'

    # =====================================================
    # CATALOG
    # =====================================================

    def get_categories(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/categories')

    def get_products(self, category_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Per-unit-type product rows, optionally for one category."""
        path = '/api/products' if category_id is None else f'/api/products/{int(category_id)}'
        return self._request('GET', path)

    def get_all_products(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/all-products')

    def lookup_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        """
        Resolve a scanned code.

        Returns:
            Dict with ``product`` (merged shape) and ``type`` (retail or
            wholesale), or None when the code is unknown.
        """
        try:
            data = self._request('GET', f'/api/products-by-barcode/{quote(barcode, safe="")}')
        except UpstreamError as e:
            if e.upstream_status == 404:
                return None
            raise

        if not data or not data.get('product') or not data.get('type'):
            return None
        return data

    # =====================================================
    # SALES
    # =====================================================

    def get_next_transaction_number(self) -> str:
        data = self._request('GET', '/api/next-transaction-number')
        number = (data or {}).get('transaction_number')
        if not number:
            raise UpstreamError('Backend returned no transaction number')
        return number

    def checkout(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a new sale; the backend decrements stock atomically."""
        logger.info(f"[POS-API] Checkout {payload.get('transaction_number')}")
        data = self._request('POST', '/api/checkout', json=payload)
        return self._expect_success(data, 'Failed to save order')

    def get_sale(self, sale_id: int) -> Dict[str, Any]:
        """Sale header plus persisted line items for editing."""
        data = self._request('GET', f'/api/edit-sales/{int(sale_id)}')
        data = self._expect_success(data, 'Failed to load order data')
        return data.get('data') or {}

    def update_sale(self, sale_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a persisted sale's lines and totals in place."""
        logger.info(f"[POS-API] Update sale {sale_id} ({payload.get('transaction_number')})")
        data = self._request('PUT', f'/api/update-sales/{int(sale_id)}', json=payload)
        return self._expect_success(data, 'Failed to update order')

    def get_sales(self, day: str) -> List[Dict[str, Any]]:
        """Sale headers recorded on ``day`` (YYYY-MM-DD)."""
        data = self._request('GET', f'/api/sales/{quote(day, safe="")}')
        sales = data if isinstance(data, list) else (data or {}).get('data') or []
        if not isinstance(sales, list):
            raise UpstreamError('Invalid sales data format')
        return sales

    def get_customers(self) -> List[Dict[str, Any]]:
        data = self._request('GET', '/api/customers')
        customers = data if isinstance(data, list) else (data or {}).get('data') or []
        if not isinstance(customers, list):
            raise UpstreamError('Invalid customers data format')
        return customers

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            if not response.content:
                return None
            return response.json()

        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            message = self._server_message(e.response) or f'POS backend error ({status})'
            logger.error(f"[POS-API] {method} {path} failed [{status}]: {message}")
            raise UpstreamError(message, upstream_status=status)
        except ValueError as e:
            logger.error(f"[POS-API] {method} {path} returned invalid JSON: {e}")
            raise UpstreamError('Invalid response from the POS backend')
        except requests.RequestException as e:
            logger.error(f"[POS-API] {method} {path} unreachable: {e}")
            raise UpstreamError('Could not reach the POS backend')

    @staticmethod
    def _server_message(response) -> Optional[str]:
        if response is None:
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict):
            return data.get('message')
        return None

    @staticmethod
    def _expect_success(data: Any, fallback: str) -> Dict[str, Any]:
        if not isinstance(data, dict) or data.get('status') != 'success':
            message = data.get('message') if isinstance(data, dict) else None
            raise UpstreamError(message or fallback)
        return data


def init_pos_api(app: Flask) -> None:
    """Build the client from config and register it on the app."""
    client = PosApiClient(
        base_url=app.config.get('POS_API_BASE_URL'),
        token=app.config.get('POS_API_TOKEN'),
        timeout=app.config.get('POS_API_TIMEOUT', 10)
    )
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['pos_api'] = client


def get_pos_api() -> PosApiClient:
    """Client registered on the current app."""
    client = current_app.extensions.get('pos_api')
    if client is None:
        raise RuntimeError("POS API client not initialized.")
    return client
