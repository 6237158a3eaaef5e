"""
Unit tests for the catalog and order models.
"""

import datetime
from decimal import Decimal

import pytest

from cashier.exceptions import BusinessLogicError
from cashier.models import (
    CatalogEntry, OrderDraft, OriginalOrder, PaymentMethod, SaleStatus, SubmissionMode, UnitType,
    merge_catalog_rows, normalize_packaging, search_catalog
)


class TestCatalogModels:

    def test_merge_per_type_rows(self, rows):
        entries = merge_catalog_rows(
            rows(1, name='Cola', r_price='15.00', w_price='170.00', rqty=7, wqty=3, packaging=12)
            + rows(2, name='Bread', rqty=4)
        )

        assert [entry.id for entry in entries] == [1, 2]
        cola = entries[0]
        assert cola.retail_price == Decimal('15.00')
        assert cola.wholesale_price == Decimal('170.00')
        assert cola.rqty == 7
        assert cola.wqty == 3
        assert cola.packaging == 12
        assert cola.retail_unit_name == 'pc'
        assert cola.wholesale_unit_name == 'box'
        assert cola.vatable is True

    def test_merge_defaults(self):
        entries = merge_catalog_rows([{'id': '3', 'product_name': 'Salt', 'type': 'retail', 'price': '2', 'qty': '9',
                                       'packaging': None, 'vatable': 0}])

        salt = entries[0]
        assert salt.id == 3
        assert salt.packaging == 1
        assert salt.rqty == 9
        assert salt.wqty == 0
        assert salt.wholesale_unit_name == 'pkg'
        assert salt.vatable is False

    def test_merge_unit_names_default_per_type(self):
        entries = merge_catalog_rows([
            {'id': 4, 'product_name': 'Sugar', 'type': 'retail', 'price': '5', 'qty': 3, 'unit_name': 'kg'},
            {'id': 5, 'product_name': 'Eggs', 'type': 'wholesale', 'price': '180', 'qty': 2, 'unit_name': 'tray'},
        ])

        sugar, eggs = entries
        assert sugar.retail_unit_name == 'kg'
        assert sugar.wholesale_unit_name == 'pkg'
        assert eggs.retail_unit_name == 'pc'
        assert eggs.wholesale_unit_name == 'tray'

    @pytest.mark.parametrize('value,expected', [(None, 1), (0, 1), (-4, 1), ('12', 12), (6, 6)])
    def test_normalize_packaging(self, value, expected):
        assert normalize_packaging(value) == expected

    def test_from_api_merged_shape(self, merged):
        entry = CatalogEntry.from_api(merged(5, name='Soap', r_price='20', rqty=3, wqty=2, packaging=0))

        assert entry.name == 'Soap'
        assert entry.packaging == 1
        assert entry.price_for(UnitType.RETAIL) == Decimal('20')
        assert entry.raw_quantity(UnitType.WHOLESALE) == 2

    def test_search_by_name_or_barcode(self, make_entry):
        entries = [make_entry(id=1, name='Coca Cola', barcode='4801'), make_entry(id=2, name='Bread', barcode='4802')]

        assert [e.id for e in search_catalog(entries, 'cola')] == [1]
        assert [e.id for e in search_catalog(entries, '4802')] == [2]
        assert search_catalog(entries, '  ') == []

    def test_unit_type_parse(self):
        assert UnitType.parse(' Wholesale ') is UnitType.WHOLESALE
        with pytest.raises(BusinessLogicError):
            UnitType.parse('crate')


class TestOrderModels:

    def test_payment_method_parse(self):
        assert PaymentMethod.parse('bank') is PaymentMethod.BANK_TRANSFER
        assert PaymentMethod.parse('Bank Transfer') is PaymentMethod.BANK_TRANSFER
        assert PaymentMethod.parse('GCASH') is PaymentMethod.GCASH
        with pytest.raises(BusinessLogicError):
            PaymentMethod.parse('cheque')

    @pytest.mark.parametrize('status,mutable', [(1, True), (2, True), (3, False), (4, False), (5, True)])
    def test_status_mutability(self, status, mutable):
        assert SaleStatus(status).is_mutable is mutable

    def test_status_labels(self):
        assert SaleStatus.PARTIALLY_RETURNED.label == 'Partially returned'

    def test_submission_mode_status(self):
        assert SubmissionMode.COMPLETE.status is SaleStatus.PAID
        assert SubmissionMode.HOLD.status is SaleStatus.UNPAID

    def test_draft_round_trip(self):
        draft = OrderDraft(
            transaction_number='ORD-00007', date=datetime.date(2026, 10, 19), customer_name='Ana',
            discount=Decimal('5.50'), payment_method=PaymentMethod.GCASH, local_number=True
        )

        restored = OrderDraft.from_dict(draft.to_dict())

        assert restored == draft

    def test_original_order_from_api(self, sale_data, order_line):
        original = OriginalOrder.from_api(42, sale_data(
            status=2, customer_id='7', payment_method='Credit',
            lines=[order_line(1, 'wholesale', 3, price='120.00', packaging=6, vatable=0, name='Soap')]
        ))

        assert original.status is SaleStatus.UNPAID
        assert original.customer_id == 7
        assert original.payment_method is PaymentMethod.CREDIT
        assert original.date == datetime.date(2026, 10, 1)
        line = original.line_for(1, UnitType.WHOLESALE)
        assert line.quantity == 3
        assert line.snapshot.packaging == 6
        assert line.snapshot.vatable is False
        assert line.snapshot.name == 'Soap'
        assert original.line_for(1, UnitType.RETAIL) is None

    def test_unknown_sale_status(self, sale_data):
        with pytest.raises(BusinessLogicError):
            OriginalOrder.from_api(42, sale_data(status=9))
