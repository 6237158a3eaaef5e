"""Catalog entry model (read-only view of the backend's product stock)."""
import enum
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from cashier.exceptions import BusinessLogicError
from cashier.utils.number_format import to_decimal, to_int


class UnitType(str, enum.Enum):
    """Unit a line item is sold in."""
    RETAIL = 'retail'
    WHOLESALE = 'wholesale'

    @classmethod
    def parse(cls, value) -> 'UnitType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            raise BusinessLogicError(f'Invalid unit type: {value!r}')


def normalize_packaging(value) -> int:
    """Retail units per wholesale package; anything below 1 counts as 1."""
    packaging = to_int(value, default=1)
    return packaging if packaging >= 1 else 1


def _flag(value) -> bool:
    """VAT flag: the backend sends 1/"1"/true for VAT-able products."""
    return str(value).strip().lower() in ('1', 'true')


@dataclass
class CatalogEntry:
    """
    Live catalog state for one product, both unit types merged.

    ``rqty`` counts loose retail units, ``wqty`` counts sealed wholesale
    packages of ``packaging`` retail units each.
    """
    id: int
    name: str
    retail_price: Decimal = Decimal('0')
    wholesale_price: Decimal = Decimal('0')
    rqty: int = 0
    wqty: int = 0
    packaging: int = 1
    vatable: bool = False
    capital: Decimal = Decimal('0')
    retail_unit_name: str = 'pc'
    wholesale_unit_name: str = 'pkg'
    barcode: Optional[str] = None
    model: Optional[str] = None
    image: Optional[str] = None

    def __post_init__(self):
        self.packaging = normalize_packaging(self.packaging)

    def price_for(self, unit_type: UnitType) -> Decimal:
        if unit_type is UnitType.RETAIL:
            return self.retail_price
        return self.wholesale_price

    def unit_name_for(self, unit_type: UnitType) -> str:
        if unit_type is UnitType.RETAIL:
            return self.retail_unit_name
        return self.wholesale_unit_name

    def raw_quantity(self, unit_type: UnitType) -> int:
        """Catalog count for one unit type, without conversion."""
        if unit_type is UnitType.RETAIL:
            return self.rqty
        return self.wqty

    def offers(self, unit_type: UnitType) -> bool:
        """A unit type is on sale only when it carries a price."""
        return self.price_for(unit_type) > 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'CatalogEntry':
        """Build from the merged shape returned by the barcode lookup."""
        return cls(
            id=to_int(data.get('id')),
            name=data.get('product_name') or data.get('name') or '',
            retail_price=to_decimal(data.get('r_price')),
            wholesale_price=to_decimal(data.get('w_price')),
            rqty=to_int(data.get('rqty')),
            wqty=to_int(data.get('wqty')),
            packaging=data.get('packaging'),
            vatable=_flag(data.get('vatable')),
            capital=to_decimal(data.get('capital')),
            retail_unit_name=data.get('retail_unit_name') or 'pc',
            wholesale_unit_name=data.get('wholesale_unit_name') or 'pkg',
            barcode=data.get('barcode'),
            model=data.get('model'),
            image=data.get('image'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('retail_price', 'wholesale_price', 'capital'):
            data[key] = str(data[key])
        return data


def merge_catalog_rows(rows: Iterable[Dict[str, Any]]) -> List[CatalogEntry]:
    """
    Merge the backend's per-unit-type product rows into catalog entries.

    The product endpoints return one row per (product, type): the retail
    row carries the retail price/qty/unit name, the wholesale row the
    wholesale ones. Shared fields come from whichever row appears first.
    Order of first appearance is preserved.
    """
    merged: Dict[int, CatalogEntry] = {}

    for row in rows:
        product_id = to_int(row.get('id'))
        entry = merged.get(product_id)
        if entry is None:
            entry = CatalogEntry(
                id=product_id,
                name=row.get('product_name') or '',
                packaging=row.get('packaging'),
                vatable=_flag(row.get('vatable')),
                capital=to_decimal(row.get('capital')),
                barcode=row.get('barcode'),
                model=row.get('model'),
                image=row.get('image'),
            )
            merged[product_id] = entry

        row_type = str(row.get('type') or '').lower()
        if row_type == UnitType.RETAIL.value:
            entry.retail_price = to_decimal(row.get('price'))
            entry.rqty = to_int(row.get('qty'))
            if row.get('unit_name'):
                entry.retail_unit_name = row['unit_name']
        elif row_type == UnitType.WHOLESALE.value:
            entry.wholesale_price = to_decimal(row.get('price'))
            entry.wqty = to_int(row.get('qty'))
            if row.get('unit_name'):
                entry.wholesale_unit_name = row['unit_name']

    return list(merged.values())


def search_catalog(entries: Iterable[CatalogEntry], term: str) -> List[CatalogEntry]:
    """Case-insensitive substring match on product name or barcode."""
    term = (term or '').strip()[:100]
    if not term:
        return []
    needle = term.lower()
    return [
        entry for entry in entries
        if needle in entry.name.lower() or (entry.barcode and term in entry.barcode)
    ]
