import pytest
from decimal import Decimal
import os

# Test configuration must be in the environment before config.Config is imported
os.environ['CACHE_ENABLED'] = 'false'
os.environ['WTF_CSRF_ENABLED'] = 'false'
os.environ.setdefault('FLASK_DEBUG', '0')
os.environ.setdefault('POS_API_BASE_URL', 'http://pos-backend.test')

from cashier import create_app
from cashier.exceptions import UpstreamError
from cashier.models import CatalogEntry


def product_rows(id, name='Item', r_price='10.00', w_price='100.00', rqty=0, wqty=0,
                 packaging=1, vatable=1, capital='5.00', retail_unit='pc', wholesale_unit='box'):
    """The two per-unit-type rows the backend returns for one product."""
    shared = {
        'id': id,
        'barcode': f'480{id:04d}',
        'product_name': name,
        'model': None,
        'packaging': packaging,
        'capital': capital,
        'vatable': vatable,
        'image': None,
    }
    return [
        dict(shared, type='retail', price=r_price, qty=rqty, unit_name=retail_unit),
        dict(shared, type='wholesale', price=w_price, qty=wqty, unit_name=wholesale_unit),
    ]


def merged_product(id, name='Item', r_price='10.00', w_price='100.00', rqty=0, wqty=0, packaging=1, vatable=1):
    """Merged shape returned by the barcode lookup."""
    return {
        'id': id,
        'product_name': name,
        'r_price': r_price,
        'w_price': w_price,
        'rqty': rqty,
        'wqty': wqty,
        'packaging': packaging,
        'vatable': vatable,
        'capital': '5.00',
        'retail_unit_name': 'pc',
        'wholesale_unit_name': 'box',
    }


class FakePosApi:
    """In-memory stand-in for PosApiClient that records every call."""

    def __init__(self):
        self.rows = []
        self.categories = [{'id': 1, 'name': 'Beverages'}]
        self.numbers = [f'ORD-{n:05d}' for n in range(1, 100)]
        self.barcodes = {}
        self.sales = {}
        self.day_sales = {}
        self.customers = []
        self.checkout_response = {'status': 'success', 'message': 'Order saved successfully'}
        self.update_response = {'status': 'success', 'message': 'Order updated successfully'}
        self.failures = {}
        self.calls = []

    def add_product(self, id, **kwargs):
        self.rows.extend(product_rows(id, **kwargs))

    def fail(self, method, message='POS backend error'):
        self.failures[method] = message

    def _call(self, method, *args):
        self.calls.append((method,) + args)
        if method in self.failures:
            raise UpstreamError(self.failures[method])

    def called(self, method):
        return [call for call in self.calls if call[0] == method]

    def get_categories(self):
        self._call('get_categories')
        return list(self.categories)

    def get_products(self, category_id=None):
        self._call('get_products', category_id)
        return list(self.rows)

    def get_all_products(self):
        self._call('get_all_products')
        return list(self.rows)

    def lookup_barcode(self, barcode):
        self._call('lookup_barcode', barcode)
        return self.barcodes.get(barcode)

    def get_next_transaction_number(self):
        self._call('get_next_transaction_number')
        return self.numbers.pop(0)

    def checkout(self, payload):
        self._call('checkout', payload)
        return dict(self.checkout_response)

    def get_sale(self, sale_id):
        self._call('get_sale', sale_id)
        return self.sales[sale_id]

    def update_sale(self, sale_id, payload):
        self._call('update_sale', sale_id, payload)
        return dict(self.update_response)

    def get_sales(self, day):
        self._call('get_sales', day)
        return list(self.day_sales.get(day, []))

    def get_customers(self):
        self._call('get_customers')
        return list(self.customers)


@pytest.fixture
def fake_api():
    return FakePosApi()


@pytest.fixture
def rows():
    return product_rows


@pytest.fixture
def merged():
    return merged_product


@pytest.fixture
def make_entry():
    """Factory for catalog entries with sensible defaults."""
    def _make(id=1, name='Item', retail_price='10.00', wholesale_price='100.00', rqty=0, wqty=0,
              packaging=1, vatable=True, **kwargs):
        return CatalogEntry(
            id=id,
            name=name,
            retail_price=Decimal(retail_price),
            wholesale_price=Decimal(wholesale_price),
            rqty=rqty,
            wqty=wqty,
            packaging=packaging,
            vatable=vatable,
            retail_unit_name=kwargs.pop('retail_unit_name', 'pc'),
            wholesale_unit_name=kwargs.pop('wholesale_unit_name', 'box'),
            **kwargs
        )
    return _make


@pytest.fixture
def sale_data():
    """Factory for the edit-sales payload of a persisted sale."""
    def _make(status=1, lines=(), payment_method='Cash', transaction_number='ORD-00042', **sale):
        header = {
            'id': 42,
            'transaction_number': transaction_number,
            'date': '2026-10-01',
            'customer': 'Juan',
            'customer_id': None,
            'table_no': '3',
            'discount': '0.00',
            'amt_tendered': '500.00',
            'payment_method': payment_method,
            'status': status,
        }
        header.update(sale)
        return {'sale': header, 'sales_orders': list(lines)}
    return _make


def sales_order(product_id, price_type, quantity, price='10.00', packaging=1, vatable=1, name='Item'):
    return {
        'product_id': product_id,
        'price_type': price_type,
        'quantity': quantity,
        'price': price,
        'packaging': packaging,
        'vatable': vatable,
        'capital': '5.00',
        'product': {'product_name': name, 'retail_unit_name': 'pc', 'wholesale_unit_name': 'box'},
    }


@pytest.fixture
def order_line():
    return sales_order


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    return app


@pytest.fixture(scope='function')
def api(app, fake_api):
    """Fake backend registered on the app for the duration of a test."""
    original = app.extensions['pos_api']
    app.extensions['pos_api'] = fake_api
    yield fake_api
    app.extensions['pos_api'] = original


@pytest.fixture(scope='function')
def client(app, api):
    """Create test client."""
    return app.test_client()
