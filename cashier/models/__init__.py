"""Models package - exports the cashier's domain records."""
# Catalog
from cashier.models.catalog import (
    CatalogEntry, UnitType, merge_catalog_rows, normalize_packaging, search_catalog
)

# Orders
from cashier.models.line_item import LineItem, LineSnapshot
from cashier.models.order import (
    Customer, OrderDraft, OriginalOrder, PaymentMethod, SaleStatus, SubmissionMode
)

__all__ = [
    # Catalog
    'CatalogEntry', 'UnitType', 'merge_catalog_rows', 'normalize_packaging', 'search_catalog',
    # Orders
    'LineItem', 'LineSnapshot',
    'Customer', 'OrderDraft', 'OriginalOrder', 'PaymentMethod', 'SaleStatus', 'SubmissionMode',
]
