"""
Unit tests for catalog reads and transaction-number issuing.
"""

from cashier.services.catalog_service import (
    CATALOG_MODULE, fetch_catalog, fetch_categories, fetch_fresh_catalog, invalidate_catalog
)
from cashier.services.transaction_number_service import issue_transaction_number, local_placeholder


class DictCache:
    """Cache stand-in with the CacheService memoize/invalidate surface."""

    def __init__(self):
        self.store = {}

    def memoize(self, module, key, loader_fn, ttl=None):
        if (module, key) not in self.store:
            self.store[(module, key)] = loader_fn()
        return self.store[(module, key)]

    def invalidate_module(self, module):
        keys = [k for k in self.store if k[0] == module]
        for k in keys:
            del self.store[k]
        return len(keys)


class TestCatalogService:

    def test_fetch_catalog_merges_rows(self, fake_api):
        fake_api.add_product(1, name='Cola', rqty=3, wqty=1, packaging=6)

        entries = fetch_catalog(fake_api)

        assert len(entries) == 1
        assert entries[0].rqty == 3
        assert entries[0].wqty == 1

    def test_cached_reads_and_invalidation(self, app, fake_api):
        fake_api.add_product(1, rqty=3)
        cache = DictCache()

        with app.app_context():
            fetch_catalog(fake_api, cache=cache)
            fetch_catalog(fake_api, cache=cache)
            assert len(fake_api.called('get_products')) == 1

            invalidate_catalog(cache)
            fetch_catalog(fake_api, cache=cache)
            assert len(fake_api.called('get_products')) == 2

            fetch_categories(fake_api, cache=cache)
            fetch_categories(fake_api, cache=cache)
            assert len(fake_api.called('get_categories')) == 1
            assert all(module == CATALOG_MODULE for module, _ in cache.store)

    def test_category_reads_are_keyed_separately(self, app, fake_api):
        cache = DictCache()

        with app.app_context():
            fetch_catalog(fake_api, category_id=2, cache=cache)
            fetch_catalog(fake_api, cache=cache)

        assert fake_api.called('get_products') == [('get_products', 2), ('get_products', None)]

    def test_fresh_catalog_is_keyed_by_id(self, fake_api):
        fake_api.add_product(4, rqty=1)
        fake_api.add_product(9, rqty=2)

        catalog = fetch_fresh_catalog(fake_api)

        assert sorted(catalog) == [4, 9]
        assert catalog[9].rqty == 2

    def test_invalidate_without_cache(self):
        invalidate_catalog(None)


class TestTransactionNumbers:

    def test_issued_by_backend(self, fake_api):
        assert issue_transaction_number(fake_api) == ('ORD-00001', False)

    def test_local_fallback(self, fake_api):
        fake_api.fail('get_next_transaction_number')

        number, is_local = issue_transaction_number(fake_api, 'TILL1')

        assert is_local is True
        assert number.startswith('TILL1-')

    def test_placeholder_uses_epoch_millis(self):
        assert local_placeholder('LOCAL', now=1760832000.5) == 'LOCAL-1760832000500'
