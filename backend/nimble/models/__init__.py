from .catalog import Category, Warehouse, Product, PriceHistory, PRICE_TYPE_PURCHASE, PRICE_TYPE_SALE, PRICE_TYPES
from .parties import Customer, Supplier
from .orders import (
    PurchaseOrder,
    PurchaseOrderItem,
    SalesOrder,
    SalesOrderItem,
    STATUS_ORDERED,
    STATUS_DELIVERED,
    PURCHASE_STATUSES,
    SALE_STATUS_COMPLETED,
)

__all__ = [
    'Category', 'Warehouse', 'Product', 'PriceHistory',
    'PRICE_TYPE_PURCHASE', 'PRICE_TYPE_SALE', 'PRICE_TYPES',
    'Customer', 'Supplier',
    'PurchaseOrder', 'PurchaseOrderItem', 'SalesOrder', 'SalesOrderItem',
    'STATUS_ORDERED', 'STATUS_DELIVERED', 'PURCHASE_STATUSES', 'SALE_STATUS_COMPLETED',
]
