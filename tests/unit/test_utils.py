"""
Unit tests for number parsing and display helpers.
"""

from decimal import Decimal

import pytest

from cashier.utils.formatters import describe_quantity, money_ph, sequence_number
from cashier.utils.number_format import parse_money, parse_quantity, to_decimal, to_int


class TestNumberFormat:

    @pytest.mark.parametrize('value,expected', [
        ('1,234.50', Decimal('1234.50')),
        ('500', Decimal('500')),
        ('₱ 1,000', Decimal('1000')),
        (250, Decimal('250')),
        ('', Decimal('0')),
    ])
    def test_parse_money(self, value, expected):
        assert parse_money(value) == expected

    @pytest.mark.parametrize('value', ['12,34', 'abc', '-5', None, -1])
    def test_parse_money_rejects(self, value):
        with pytest.raises(ValueError):
            parse_money(value)

    def test_to_decimal_and_to_int(self):
        assert to_decimal('12.50') == Decimal('12.50')
        assert to_decimal(0.1) == Decimal('0.1')
        assert to_decimal(None) == Decimal('0')
        assert to_decimal('n/a') == Decimal('0')
        assert to_int('12') == 12
        assert to_int(12.0) == 12
        assert to_int('', default=1) == 1

    @pytest.mark.parametrize('value,expected', [
        (None, 1),
        ('', 1),
        ('3', 3),
        (4, 4),
        ('2.0', 2),
        ('2.7', 0),
        ('abc', 0),
        ('-2', -2),
        (True, 0),
    ])
    def test_parse_quantity(self, value, expected):
        assert parse_quantity(value) == expected


class TestFormatters:

    def test_money_ph(self):
        assert money_ph(1500) == '₱1,500.00'
        assert money_ph(Decimal('12.5')) == '₱12.50'
        assert money_ph(None) == '₱0.00'

    def test_describe_quantity(self):
        assert describe_quantity(3, 'pc') == '3 pc'
        assert describe_quantity(2, 'box', 12, 'pc') == '2 box (24 pc)'
        assert describe_quantity(2, 'box', 1, 'pc') == '2 box'

    def test_sequence_number(self):
        assert sequence_number('ORD-00042') == '00042'
        assert sequence_number('00042') == '00042'
        assert sequence_number(None) == ''
