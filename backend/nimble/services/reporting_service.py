# Overview: Service-layer read models for the dashboard.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..models import STATUS_ORDERED, Product, PurchaseOrder, SalesOrder
from ..models.catalog import money
from .entity_store import EntityStore, default_store


def dashboard_stats(*, low_stock_threshold: int | None = None, store: EntityStore | None = None) -> dict:
    """
    Headline numbers for the dashboard.

    - total_sales: sum of all sales order totals
    - total_purchases: sum of all purchase order totals (any status)
    - low_stock_products: products with stock <= threshold
    - pending_orders: purchase orders still ORDERED
    """
    store = store or default_store()
    session = store.session
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)

    total_sales = session.query(func.coalesce(func.sum(SalesOrder.total), 0)).scalar()
    total_purchases = session.query(func.coalesce(func.sum(PurchaseOrder.total), 0)).scalar()

    low_stock = (
        session.query(Product)
        .filter(Product.stock <= low_stock_threshold)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
    pending_orders = (
        session.query(func.count(PurchaseOrder.id))
        .filter(PurchaseOrder.status == STATUS_ORDERED)
        .scalar()
    )

    return {
        "total_sales": money(Decimal(str(total_sales or 0)).quantize(Decimal("0.01"))),
        "total_purchases": money(Decimal(str(total_purchases or 0)).quantize(Decimal("0.01"))),
        "low_stock_threshold": low_stock_threshold,
        "low_stock_products": len(low_stock),
        "low_stock_items": [
            {"id": p.id, "name": p.name, "stock": p.stock} for p in low_stock
        ],
        "pending_orders": pending_orders or 0,
        "product_count": session.query(func.count(Product.id)).scalar() or 0,
    }
