# backend/nimble/services/products_service.py
"""
Products Service

PRICE HISTORY: product writes feed the price history log.
- create_product records a purchase entry when a purchase price is given
- update_product records a purchase entry when last_purchase_price changes

Stock movements caused by orders do NOT go through update_product; the
order workflow mutates products directly so each delivery or sale line
produces exactly one history row.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import ConflictError
from ..models import PRICE_TYPE_PURCHASE, Product, PurchaseOrderItem, SalesOrderItem
from .entity_store import EntityStore, default_store
from .price_history_service import record_price

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "warehouse_id",
    "category_id",
    "last_purchase_price",
    "selling_price",
    "stock",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_references(store: EntityStore, patch: dict) -> None:
    if patch.get("warehouse_id") is not None:
        store.require("warehouses", patch["warehouse_id"])
    if patch.get("category_id") is not None:
        store.require("categories", patch["category_id"])


def list_products(
    *,
    search: str | None = None,
    warehouse_id: int | None = None,
    category_id: int | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
    store: EntityStore | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Args:
        search: Case-insensitive substring match on name
        warehouse_id: Filter by warehouse
        category_id: Filter by category
        low_stock: Only products at or below LOW_STOCK_THRESHOLD
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    store = store or default_store()
    base_query = store.query("products")

    if search:
        base_query = base_query.filter(Product.name.ilike(f"%{search.strip()}%"))
    if warehouse_id is not None:
        base_query = base_query.filter(Product.warehouse_id == warehouse_id)
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if low_stock:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
        base_query = base_query.filter(Product.stock <= threshold)

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = max(1, min(per_page or 20, 100))
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int, *, store: EntityStore | None = None) -> Product:
    store = store or default_store()
    return store.require("products", product_id)


def create_product(*, patch: dict, store: EntityStore | None = None) -> Product:
    """
    Create product from a validated patch dict.

    Raises:
        NotFoundError: If warehouse_id / category_id do not exist
    """
    store = store or default_store()
    with store.transaction():
        _check_references(store, patch)

        p = Product(last_purchase_price=Decimal("0"), selling_price=Decimal("0"), stock=0)
        apply_product_patch(p, patch)
        store.add(p)

        if p.last_purchase_price:
            record_price(
                product_id=p.id,
                price=p.last_purchase_price,
                price_type=PRICE_TYPE_PURCHASE,
                source_type="product",
                source_id=p.id,
                store=store,
            )
    return p


def update_product(*, product_id: int, patch: dict, store: EntityStore | None = None) -> Product:
    """
    Update a product.

    Raises:
        NotFoundError: If the product or a referenced warehouse/category is missing
    """
    store = store or default_store()
    with store.transaction():
        p = store.require("products", product_id, for_update=True)
        _check_references(store, patch)

        previous_purchase_price = p.last_purchase_price
        apply_product_patch(p, patch)
        store.session.flush()

        new_price = patch.get("last_purchase_price")
        if new_price is not None and Decimal(new_price) != Decimal(previous_purchase_price or 0):
            record_price(
                product_id=p.id,
                price=new_price,
                price_type=PRICE_TYPE_PURCHASE,
                source_type="product",
                source_id=p.id,
                store=store,
            )
    return p


def delete_product(*, product_id: int, store: EntityStore | None = None) -> bool:
    """
    Delete a product and its price history.

    Returns:
        True if deleted, False if not found

    Raises:
        ConflictError: If order lines still reference the product
    """
    store = store or default_store()
    with store.transaction():
        p = store.get_by_id("products", product_id)
        if p is None:
            return False

        purchase_refs = store.session.query(PurchaseOrderItem).filter(PurchaseOrderItem.product_id == product_id).count()
        sale_refs = store.session.query(SalesOrderItem).filter(SalesOrderItem.product_id == product_id).count()
        if purchase_refs or sale_refs:
            raise ConflictError(
                "Product is referenced by orders and cannot be deleted",
                details={"purchase_order_items": purchase_refs, "sales_order_items": sale_refs},
            )

        store.delete("products", product_id)

    current_app.logger.info("Deleted product %s", product_id)
    return True

