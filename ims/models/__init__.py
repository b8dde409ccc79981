from .catalog import Category, Product, Supplier, Customer
from .orders import PurchaseOrder, PurchaseOrderLine, SaleOrder, SaleOrderLine
from .inventory import StockMovement

__all__ = [
    'Category', 'Product', 'Supplier', 'Customer',
    'PurchaseOrder', 'PurchaseOrderLine', 'SaleOrder', 'SaleOrderLine',
    'StockMovement',
]
