"""
Unit tests for the POS backend client.
"""

import pytest
import requests

from cashier.exceptions import UpstreamError
from cashier.services import pos_api_client
from cashier.services.pos_api_client import PosApiClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, raw=None):
        self.status_code = status_code
        self._body = body
        if raw is not None:
            self.content = raw
        else:
            self.content = b'' if body is None else b'{...}'

    def json(self):
        if self._body is None:
            raise ValueError('No JSON object could be decoded')
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error', response=self)


@pytest.fixture
def http(monkeypatch):
    """Queue of responses served to requests.request, with the calls recorded."""
    class Http:
        def __init__(self):
            self.responses = []
            self.calls = []

        def request(self, method, url, **kwargs):
            self.calls.append((method, url, kwargs))
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

    http = Http()
    monkeypatch.setattr(pos_api_client.requests, 'request', http.request)
    return http


@pytest.fixture
def api():
    return PosApiClient('http://pos.test/', token='secret', timeout=5)


class TestPosApiClient:

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            PosApiClient('')

    def test_headers_and_url(self, http, api):
        http.responses.append(FakeResponse(body=[{'id': 1}]))

        assert api.get_products(3) == [{'id': 1}]

        method, url, kwargs = http.calls[0]
        assert method == 'GET'
        assert url == 'http://pos.test/api/products/3'
        assert kwargs['headers']['Authorization'] == 'Bearer secret'
        assert kwargs['timeout'] == 5

    def test_next_transaction_number(self, http, api):
        http.responses.append(FakeResponse(body={'transaction_number': 'ORD-00012'}))

        assert api.get_next_transaction_number() == 'ORD-00012'

    def test_missing_transaction_number(self, http, api):
        http.responses.append(FakeResponse(body={}))

        with pytest.raises(UpstreamError):
            api.get_next_transaction_number()

    def test_checkout_posts_payload(self, http, api):
        http.responses.append(FakeResponse(body={'status': 'success', 'message': 'Order saved successfully'}))

        response = api.checkout({'transaction_number': 'ORD-00012'})

        method, url, kwargs = http.calls[0]
        assert (method, url) == ('POST', 'http://pos.test/api/checkout')
        assert kwargs['json'] == {'transaction_number': 'ORD-00012'}
        assert response['message'] == 'Order saved successfully'

    def test_non_success_status_raises_server_message(self, http, api):
        http.responses.append(FakeResponse(body={'status': 'error', 'message': 'Insufficient stock for Cola'}))

        with pytest.raises(UpstreamError) as exc:
            api.checkout({})

        assert exc.value.message == 'Insufficient stock for Cola'

    def test_http_error_keeps_server_message(self, http, api):
        http.responses.append(FakeResponse(status_code=422, body={'message': 'The items field is required.'}))

        with pytest.raises(UpstreamError) as exc:
            api.update_sale(42, {})

        assert exc.value.message == 'The items field is required.'
        assert exc.value.upstream_status == 422
        assert http.calls[0][:2] == ('PUT', 'http://pos.test/api/update-sales/42')

    def test_connection_error(self, http, api):
        http.responses.append(requests.ConnectionError('refused'))

        with pytest.raises(UpstreamError) as exc:
            api.get_all_products()

        assert exc.value.message == 'Could not reach the POS backend'

    def test_invalid_json(self, http, api):
        http.responses.append(FakeResponse(body=None, raw=b'<html>'))

        with pytest.raises(UpstreamError) as exc:
            api.get_categories()

        assert exc.value.message == 'Invalid response from the POS backend'

    def test_barcode_not_found(self, http, api):
        http.responses.append(FakeResponse(status_code=404, body={'message': 'Product not found'}))

        assert api.lookup_barcode('123') is None

    def test_barcode_found(self, http, api):
        http.responses.append(FakeResponse(body={'product': {'id': 1}, 'type': 'wholesale'}))

        assert api.lookup_barcode('48 01')['type'] == 'wholesale'
        assert http.calls[0][1] == 'http://pos.test/api/products-by-barcode/48%2001'

    def test_get_sale_returns_data(self, http, api):
        http.responses.append(FakeResponse(body={'status': 'success', 'data': {'sale': {'id': 42}}}))

        assert api.get_sale(42) == {'sale': {'id': 42}}

    def test_sales_of_a_day(self, http, api):
        http.responses.append(FakeResponse(body={'data': [{'id': 9, 'status': 1}]}))

        assert api.get_sales('2026-10-01') == [{'id': 9, 'status': 1}]
        assert http.calls[0][1] == 'http://pos.test/api/sales/2026-10-01'

    def test_customers_accepts_wrapped_list(self, http, api):
        http.responses.append(FakeResponse(body={'data': [{'id': 1, 'name': 'Ana'}]}))

        assert api.get_customers() == [{'id': 1, 'name': 'Ana'}]
