"""Order line item model."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from cashier.models.catalog import CatalogEntry, UnitType, normalize_packaging
from cashier.utils.number_format import to_decimal, to_int


@dataclass(frozen=True)
class LineSnapshot:
    """
    Product terms captured when the line was first added.

    Price, VAT flag and packaging never change after the add, even if
    the catalog is refreshed afterwards.
    """
    product_id: int
    name: str
    unit_type: UnitType
    unit_price: Decimal
    vatable: bool
    packaging: int
    capital: Decimal = Decimal('0')
    retail_unit_name: str = 'pc'
    wholesale_unit_name: str = 'pkg'
    image: Optional[str] = None

    @classmethod
    def from_catalog(cls, entry: CatalogEntry, unit_type: UnitType) -> 'LineSnapshot':
        return cls(
            product_id=entry.id,
            name=entry.name,
            unit_type=unit_type,
            unit_price=entry.price_for(unit_type),
            vatable=entry.vatable,
            packaging=entry.packaging,
            capital=entry.capital,
            retail_unit_name=entry.retail_unit_name,
            wholesale_unit_name=entry.wholesale_unit_name,
            image=entry.image,
        )

    @property
    def unit_name(self) -> str:
        if self.unit_type is UnitType.RETAIL:
            return self.retail_unit_name
        return self.wholesale_unit_name


@dataclass
class LineItem:
    """A cart line, unique per (product_id, unit_type)."""
    snapshot: LineSnapshot
    quantity: int
    available_stock: int = 0
    stock_warning: bool = False

    @property
    def key(self) -> Tuple[int, UnitType]:
        return self.snapshot.product_id, self.snapshot.unit_type

    @property
    def product_id(self) -> int:
        return self.snapshot.product_id

    @property
    def unit_type(self) -> UnitType:
        return self.snapshot.unit_type

    @property
    def line_total(self) -> Decimal:
        return self.snapshot.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        snap = self.snapshot
        return {
            'product_id': snap.product_id,
            'name': snap.name,
            'type': snap.unit_type.value,
            'price': str(snap.unit_price),
            'vatable': snap.vatable,
            'packaging': snap.packaging,
            'capital': str(snap.capital),
            'retail_unit_name': snap.retail_unit_name,
            'wholesale_unit_name': snap.wholesale_unit_name,
            'image': snap.image,
            'quantity': self.quantity,
            'available_stock': self.available_stock,
            'stock_warning': self.stock_warning,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        snapshot = LineSnapshot(
            product_id=to_int(data.get('product_id')),
            name=data.get('name') or '',
            unit_type=UnitType.parse(data.get('type')),
            unit_price=to_decimal(data.get('price')),
            vatable=bool(data.get('vatable')),
            packaging=normalize_packaging(data.get('packaging')),
            capital=to_decimal(data.get('capital')),
            retail_unit_name=data.get('retail_unit_name') or 'pc',
            wholesale_unit_name=data.get('wholesale_unit_name') or 'pkg',
            image=data.get('image'),
        )
        return cls(
            snapshot=snapshot,
            quantity=to_int(data.get('quantity'), default=1),
            available_stock=to_int(data.get('available_stock')),
            stock_warning=bool(data.get('stock_warning')),
        )

    @classmethod
    def from_sales_order(cls, order: Dict[str, Any]) -> 'LineItem':
        """Build from a persisted sales_orders row of the edit-sales endpoint."""
        product = order.get('product') or {}
        snapshot = LineSnapshot(
            product_id=to_int(order.get('product_id')),
            name=product.get('product_name') or '',
            unit_type=UnitType.parse(order.get('price_type')),
            unit_price=to_decimal(order.get('price')),
            vatable=str(order.get('vatable')).strip().lower() in ('1', 'true'),
            packaging=normalize_packaging(order.get('packaging')),
            capital=to_decimal(order.get('capital')),
            retail_unit_name=product.get('retail_unit_name') or 'pc',
            wholesale_unit_name=product.get('wholesale_unit_name') or 'pkg',
            image=product.get('image'),
        )
        return cls(snapshot=snapshot, quantity=to_int(order.get('quantity'), default=1))
