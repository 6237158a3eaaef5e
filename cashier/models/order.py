"""Order draft and persisted-order snapshot models."""
import datetime
import enum
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from cashier.exceptions import BusinessLogicError
from cashier.models.catalog import UnitType
from cashier.models.line_item import LineItem
from cashier.utils.number_format import to_decimal, to_int


class PaymentMethod(str, enum.Enum):
    """Payment methods accepted at the till."""
    CASH = 'Cash'
    GCASH = 'GCash'
    BANK_TRANSFER = 'Bank Transfer'
    CREDIT = 'Credit'  # edit mode only

    @classmethod
    def parse(cls, value) -> 'PaymentMethod':
        if isinstance(value, cls):
            return value
        normalized = str(value or '').strip().lower()
        for method in cls:
            if method.value.lower() == normalized or method.name.lower() == normalized:
                return method
        if normalized == 'bank':
            return cls.BANK_TRANSFER
        raise BusinessLogicError(f'Invalid payment method: {value!r}')


class SaleStatus(enum.IntEnum):
    """Status codes of a persisted sale."""
    PAID = 1
    UNPAID = 2
    CANCELLED = 3
    RETURNED = 4
    PARTIALLY_RETURNED = 5

    @property
    def label(self) -> str:
        return self.name.replace('_', ' ').capitalize()

    @property
    def is_mutable(self) -> bool:
        """Cancelled and fully returned sales are closed for editing."""
        return self not in (SaleStatus.CANCELLED, SaleStatus.RETURNED)


class SubmissionMode(str, enum.Enum):
    """Terminal transition requested for a draft."""
    COMPLETE = 'complete'
    HOLD = 'hold'

    @property
    def status(self) -> SaleStatus:
        if self is SubmissionMode.COMPLETE:
            return SaleStatus.PAID
        return SaleStatus.UNPAID


def _parse_date(value) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    if value:
        try:
            return datetime.date.fromisoformat(str(value)[:10])
        except ValueError:
            pass
    return datetime.date.today()


@dataclass
class OrderDraft:
    """The order being rung up (or edited) at a terminal."""
    transaction_number: str = ''
    date: datetime.date = field(default_factory=datetime.date.today)
    customer_name: str = ''
    customer_id: Optional[int] = None
    table_no: str = ''
    discount: Decimal = Decimal('0')
    amount_tendered: Decimal = Decimal('0')
    payment_method: PaymentMethod = PaymentMethod.CASH
    lines: List[LineItem] = field(default_factory=list)
    local_number: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transaction_number': self.transaction_number,
            'date': self.date.isoformat(),
            'customer_name': self.customer_name,
            'customer_id': self.customer_id,
            'table_no': self.table_no,
            'discount': str(self.discount),
            'amount_tendered': str(self.amount_tendered),
            'payment_method': self.payment_method.value,
            'lines': [line.to_dict() for line in self.lines],
            'local_number': self.local_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderDraft':
        customer_id = data.get('customer_id')
        return cls(
            transaction_number=data.get('transaction_number') or '',
            date=_parse_date(data.get('date')),
            customer_name=data.get('customer_name') or '',
            customer_id=to_int(customer_id) if customer_id not in (None, '') else None,
            table_no=data.get('table_no') or '',
            discount=to_decimal(data.get('discount')),
            amount_tendered=to_decimal(data.get('amount_tendered')),
            payment_method=PaymentMethod.parse(data.get('payment_method') or PaymentMethod.CASH),
            lines=[LineItem.from_dict(item) for item in data.get('lines') or []],
            local_number=bool(data.get('local_number')),
        )


@dataclass(frozen=True)
class OriginalOrder:
    """
    A sale exactly as it was persisted before editing began.

    Used only as the baseline for edit reconciliation; the line tuple
    holds private copies so cart mutations never reach it.
    """
    sale_id: int
    transaction_number: str
    date: datetime.date
    status: SaleStatus
    customer_name: str
    customer_id: Optional[int]
    table_no: str
    discount: Decimal
    amount_tendered: Decimal
    payment_method: PaymentMethod
    lines: Tuple[LineItem, ...]

    def line_for(self, product_id: int, unit_type: UnitType) -> Optional[LineItem]:
        for line in self.lines:
            if line.product_id == product_id and line.unit_type is unit_type:
                return line
        return None

    def to_draft(self) -> OrderDraft:
        return OrderDraft(
            transaction_number=self.transaction_number,
            date=self.date,
            customer_name=self.customer_name,
            customer_id=self.customer_id,
            table_no=self.table_no,
            discount=self.discount,
            amount_tendered=self.amount_tendered,
            payment_method=self.payment_method,
            lines=[replace(line) for line in self.lines],
        )

    @classmethod
    def from_api(cls, sale_id: int, data: Dict[str, Any]) -> 'OriginalOrder':
        """Build from the ``data`` object of the edit-sales endpoint."""
        sale = data.get('sale') or {}
        customer_id = sale.get('customer_id')
        try:
            status = SaleStatus(to_int(sale.get('status'), default=SaleStatus.PAID))
        except ValueError:
            raise BusinessLogicError(f"Unknown sale status: {sale.get('status')!r}")
        return cls(
            sale_id=sale_id,
            transaction_number=sale.get('transaction_number') or '',
            date=_parse_date(sale.get('date')),
            status=status,
            customer_name=sale.get('customer') or '',
            customer_id=to_int(customer_id) if customer_id not in (None, '') else None,
            table_no=sale.get('table_no') or '',
            discount=to_decimal(sale.get('discount')),
            amount_tendered=to_decimal(sale.get('amt_tendered')),
            payment_method=PaymentMethod.parse(sale.get('payment_method') or PaymentMethod.CASH),
            lines=tuple(LineItem.from_sales_order(order) for order in data.get('sales_orders') or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        draft = self.to_draft().to_dict()
        draft['sale_id'] = self.sale_id
        draft['status'] = int(self.status)
        return draft

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OriginalOrder':
        draft = OrderDraft.from_dict(data)
        return cls(
            sale_id=to_int(data.get('sale_id')),
            transaction_number=draft.transaction_number,
            date=draft.date,
            status=SaleStatus(to_int(data.get('status'), default=SaleStatus.PAID)),
            customer_name=draft.customer_name,
            customer_id=draft.customer_id,
            table_no=draft.table_no,
            discount=draft.discount,
            amount_tendered=draft.amount_tendered,
            payment_method=draft.payment_method,
            lines=tuple(draft.lines),
        )


@dataclass(frozen=True)
class Customer:
    """Customer record selectable for Credit payments."""
    id: int
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(id=to_int(data.get('id')), name=data.get('name') or '')
