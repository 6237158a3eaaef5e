"""
Stock Ledger - Optimistic availability math for the cart.

All quantities are compared in retail-equivalent units: a wholesale
package counts as ``packaging`` retail units. The figures here are a
prediction used to gate cart actions; the backend re-validates on
submit and stays authoritative.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cashier.models import CatalogEntry, LineItem, UnitType
from cashier.utils.formatters import describe_quantity


def retail_equivalent(unit_type: UnitType, quantity: int, packaging: int) -> int:
    """Convert a quantity of ``unit_type`` to retail units."""
    packaging = max(1, packaging)
    if unit_type is UnitType.RETAIL:
        return quantity
    if unit_type is UnitType.WHOLESALE:
        return quantity * packaging
    raise ValueError(f'Unhandled unit type: {unit_type!r}')


def total_catalog_retail_equivalent(product: CatalogEntry) -> int:
    """Everything the catalog holds for a product, in retail units."""
    return product.rqty + product.wqty * product.packaging


def committed_retail_equivalent(
    product: CatalogEntry,
    lines: Iterable[LineItem],
    exclude: Optional[Tuple[int, UnitType]] = None
) -> int:
    """
    Retail units already reserved by the cart for this product.

    Wholesale lines are converted with the catalog's packaging ratio.
    ``exclude`` skips one line key (used when sizing that line itself).
    """
    committed = 0
    for line in lines:
        if line.product_id != product.id or line.key == exclude:
            continue
        committed += retail_equivalent(line.unit_type, line.quantity, product.packaging)
    return committed


def available_retail_equivalent(product: CatalogEntry, lines: Iterable[LineItem]) -> int:
    """Retail units still free after the cart's reservations."""
    remaining = total_catalog_retail_equivalent(product) - committed_retail_equivalent(product, lines)
    return max(0, remaining)


def max_addable(product: CatalogEntry, unit_type: UnitType, lines: Iterable[LineItem]) -> int:
    """
    Largest quantity of ``unit_type`` that can still be added.

    Wholesale is floored to whole packages: a partial package is never
    sold as a wholesale unit.
    """
    remaining = available_retail_equivalent(product, lines)
    if unit_type is UnitType.RETAIL:
        return remaining
    if unit_type is UnitType.WHOLESALE:
        return remaining // product.packaging
    raise ValueError(f'Unhandled unit type: {unit_type!r}')


def line_available_stock(product: CatalogEntry, line: LineItem, lines: Iterable[LineItem]) -> int:
    """
    Raw catalog count of the line's unit type left after the other lines.

    Other lines of the same product are converted to the line's unit
    (whole packages for wholesale) and subtracted from ``rqty``/``wqty``.
    """
    others = committed_retail_equivalent(product, lines, exclude=line.key)
    if line.unit_type is UnitType.RETAIL:
        return max(0, product.rqty - others)
    if line.unit_type is UnitType.WHOLESALE:
        return max(0, product.wqty - others // product.packaging)
    raise ValueError(f'Unhandled unit type: {line.unit_type!r}')


def stock_warning(product: CatalogEntry, line: LineItem) -> bool:
    """UI hint: the line has outgrown the raw count of its unit type."""
    return line.quantity > product.raw_quantity(line.unit_type)



@dataclass(frozen=True)
class StockShortfall:
    """One line the catalog can no longer cover, for the rejection report."""
    product_id: int
    name: str
    unit_type: UnitType
    requested_quantity: int
    requested_retail_equivalent: int
    available_retail: int
    available_wholesale: int
    available_retail_equivalent: int
    requested_label: str
    available_label: str

    def describe(self) -> str:
        return f"{self.name}: Needed {self.requested_label}, Available {self.available_label}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'name': self.name,
            'unit_type': self.unit_type.value,
            'requested_quantity': self.requested_quantity,
            'requested_retail_equivalent': self.requested_retail_equivalent,
            'available_retail': self.available_retail,
            'available_wholesale': self.available_wholesale,
            'available_retail_equivalent': self.available_retail_equivalent,
            'requested': self.requested_label,
            'available': self.available_label,
        }


def build_shortfall(product: CatalogEntry, line: LineItem) -> StockShortfall:
    """Shortfall entry for ``line`` against the product's current stock."""
    packaging = product.packaging
    requested_label = describe_quantity(
        line.quantity,
        product.unit_name_for(line.unit_type),
        packaging if line.unit_type is UnitType.WHOLESALE else None,
        product.retail_unit_name,
    )
    available_label = (
        f"{product.rqty} {product.retail_unit_name} + "
        f"{product.wqty} {product.wholesale_unit_name} "
        f"({product.wqty * packaging} {product.retail_unit_name})"
    )
    return StockShortfall(
        product_id=product.id,
        name=line.snapshot.name or product.name,
        unit_type=line.unit_type,
        requested_quantity=line.quantity,
        requested_retail_equivalent=retail_equivalent(line.unit_type, line.quantity, packaging),
        available_retail=product.rqty,
        available_wholesale=product.wqty,
        available_retail_equivalent=total_catalog_retail_equivalent(product),
        requested_label=requested_label,
        available_label=available_label,
    )


def build_product_shortfall(product: CatalogEntry, lines: List[LineItem]) -> StockShortfall:
    """Shortfall entry for several lines of one product that overdraw it together."""
    first = build_shortfall(product, lines[0])
    requested = committed_retail_equivalent(product, lines)
    return StockShortfall(
        product_id=product.id,
        name=first.name,
        unit_type=UnitType.RETAIL,
        requested_quantity=requested,
        requested_retail_equivalent=requested,
        available_retail=product.rqty,
        available_wholesale=product.wqty,
        available_retail_equivalent=total_catalog_retail_equivalent(product),
        requested_label=' + '.join(build_shortfall(product, line).requested_label for line in lines),
        available_label=first.available_label,
    )
