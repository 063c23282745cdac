"""
Sales Order Service

Sales orders are created complete. Creation applies, in one transaction:
- stock decrement per line (products locked for update)
- one sale price history row per line

OVERSELL POLICY: a sale asking for more units than are on hand is rejected
with InsufficientStockError. With ALLOW_OVERSELL enabled the sale goes
through and stock is clamped at zero instead.

Updates replace lines and header fields but never re-apply stock or price
history. Deleting a sales order does not restock.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import InsufficientStockError, ValidationError
from ..models import PRICE_TYPE_SALE, SalesOrder, SalesOrderItem
from ..time_utils import coerce_datetime, utcnow
from ..validation import MAX_MONEY, coerce_money, coerce_quantity
from .entity_store import EntityStore, default_store
from .price_history_service import record_price

SOURCE_TYPE = "sales_order"


def _parse_ordered_at(value) -> datetime | None:
    try:
        return coerce_datetime(value)
    except ValueError:
        raise ValidationError("Invalid ordered_at format")


def _build_items(store: EntityStore, raw_items) -> list[SalesOrderItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    items = []
    for position, raw in enumerate(raw_items):
        label = f"items[{position}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{label} must be an object")

        product_id = raw.get("product_id")
        if product_id is None:
            raise ValidationError(f"{label}.product_id is required")
        product = store.require("products", product_id)

        quantity = coerce_quantity(raw.get("quantity"), f"{label}.quantity")

        # Unit price defaults to the product's current selling price
        if raw.get("unit_price") is None:
            unit_price = Decimal(product.selling_price or 0)
        else:
            unit_price = coerce_money(raw["unit_price"], f"{label}.unit_price")
            if unit_price < 0:
                raise ValidationError(f"{label}.unit_price must be >= 0")
            if unit_price > MAX_MONEY:
                raise ValidationError(f"{label}.unit_price cannot exceed {MAX_MONEY}")

        items.append(
            SalesOrderItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price=unit_price,
                line_total=Decimal(quantity) * unit_price,
            )
        )
    return items


def _apply_sale_effects(store: EntityStore, order: SalesOrder) -> None:
    allow_oversell = current_app.config.get("ALLOW_OVERSELL", False)

    # Check the whole order before touching any product
    requested: dict[int, int] = {}
    for item in order.items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    products = {
        product_id: store.require("products", product_id, for_update=True)
        for product_id in requested
    }

    insufficient = [
        {
            "product_id": product_id,
            "requested_quantity": qty,
            "on_hand": products[product_id].stock,
        }
        for product_id, qty in requested.items()
        if products[product_id].stock < qty
    ]
    if insufficient and not allow_oversell:
        raise InsufficientStockError(
            "Insufficient stock to complete sale",
            details={"items": insufficient},
        )

    now = utcnow()
    for item in order.items:
        product = products[item.product_id]
        if product.stock < item.quantity:
            current_app.logger.warning(
                "Oversell on product %s: stock %s, sold %s; clamping to zero",
                product.id, product.stock, item.quantity,
            )
        product.stock = max(0, product.stock - item.quantity)
        store.session.flush()

        record_price(
            product_id=product.id,
            price=item.unit_price,
            price_type=PRICE_TYPE_SALE,
            occurred_at=now,
            source_type=SOURCE_TYPE,
            source_id=order.id,
            store=store,
        )


def create_sales_order(
    *,
    customer_id: int | None,
    items,
    ordered_at=None,
    notes: str | None = None,
    store: EntityStore | None = None,
) -> SalesOrder:
    """
    Create a sales order and apply its stock / price history effects.

    Raises:
        ValidationError: If customer_id is missing or items are empty/invalid
        NotFoundError: If the customer or a product is missing
        InsufficientStockError: If stock is short and oversell is not allowed
    """
    if customer_id is None:
        raise ValidationError("customer_id is required")

    store = store or default_store()
    with store.transaction():
        store.require("customers", customer_id)
        order_items = _build_items(store, items)

        order = SalesOrder(customer_id=customer_id, notes=notes)
        order_at = _parse_ordered_at(ordered_at)
        if order_at is not None:
            order.ordered_at = order_at
        order.items.extend(order_items)
        order.recalculate_total()
        store.add(order)

        _apply_sale_effects(store, order)

    current_app.logger.info(
        "Sales order %s created: %d lines, total %s", order.id, len(order.items), order.total
    )
    return order


def update_sales_order(
    order_id: int,
    *,
    customer_id: int | None = None,
    items=None,
    ordered_at=None,
    notes: str | None = None,
    store: EntityStore | None = None,
) -> SalesOrder:
    """
    Update a sales order. Lines are replaced; stock is NOT adjusted.

    Raises:
        NotFoundError: If the order, customer or a product is missing
        ValidationError: If input is invalid
    """
    store = store or default_store()
    with store.transaction():
        order = store.require("sales_orders", order_id, for_update=True)

        if customer_id is not None:
            store.require("customers", customer_id)
            order.customer_id = customer_id
        if notes is not None:
            order.notes = notes
        order_at = _parse_ordered_at(ordered_at)
        if order_at is not None:
            order.ordered_at = order_at

        if items is not None:
            new_items = _build_items(store, items)
            order.items.clear()
            store.session.flush()
            order.items.extend(new_items)

        order.recalculate_total()
        store.session.flush()
    return order


def get_sales_order(order_id: int, *, store: EntityStore | None = None) -> SalesOrder:
    store = store or default_store()
    return store.require("sales_orders", order_id)


def list_sales_orders(
    *,
    customer_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
    store: EntityStore | None = None,
) -> tuple[list[SalesOrder], int]:
    store = store or default_store()
    query = store.query("sales_orders")
    if customer_id:
        query = query.filter(SalesOrder.customer_id == customer_id)

    total = query.count()
    query = query.order_by(SalesOrder.ordered_at.desc(), SalesOrder.id.desc())
    return query.offset(offset).limit(limit).all(), total


def delete_sales_order(order_id: int, *, store: EntityStore | None = None) -> bool:
    """Delete a sales order. Stock and price history are left as they are."""
    store = store or default_store()
    with store.transaction():
        deleted = store.delete("sales_orders", order_id)
    return deleted
