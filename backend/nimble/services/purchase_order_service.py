# Overview: Service-layer operations for purchase orders; owns the ORDERED -> DELIVERED workflow.

"""
Purchase Order Service

LIFECYCLE:
1. ORDERED: created with its lines; lines can be added, edited, removed and
   prorated; header fields can change.
2. DELIVERED: delivery effects have been applied exactly once.

ORDERED -> DELIVERED is one-way. There is no cancellation state.

DELIVERY EFFECTS (per line, inside the same transaction as the status change):
- new-product line: create the Product with stock = quantity,
  last_purchase_price = unit_price, selling_price = suggested price (or
  unit_price x 1.4 rounded), record one purchase price entry, and point the
  line at the new product.
- existing-product line: product must exist (NotFoundError otherwise, the
  whole delivery rolls back); stock += quantity; last_purchase_price =
  unit_price; selling_price overwritten when a suggested price is present;
  one purchase price entry.

IDEMPOTENCE: the transition is detected from the status stored BEFORE the
update, so re-submitting a DELIVERED order never applies effects twice.
A delivered order's lines are frozen: resubmitting identical lines is a
no-op, changing them is an OrderStateError.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, OrderStateError, ValidationError
from ..models import (
    PRICE_TYPE_PURCHASE,
    PURCHASE_STATUSES,
    STATUS_DELIVERED,
    STATUS_ORDERED,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
)
from ..time_utils import coerce_datetime, utcnow
from ..validation import MAX_MONEY, coerce_money, coerce_quantity
from .entity_store import EntityStore, default_store
from .price_history_service import record_price
from .proration_service import (
    ProrationResult,
    additional_costs_for,
    apply_proration,
    clear_proration,
    prorate_items,
    suggested_price,
)

SOURCE_TYPE = "purchase_order"


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------

def _money_field(value, field: str, *, default: Decimal | None = None) -> Decimal | None:
    if value is None:
        return default
    amount = coerce_money(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")
    return amount


def _parse_status(status: str | None) -> str | None:
    if status is None:
        return None
    status = str(status).strip().upper()
    if status not in PURCHASE_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(sorted(PURCHASE_STATUSES))}"
        )
    return status


def _parse_ordered_at(value) -> datetime | None:
    try:
        return coerce_datetime(value)
    except ValueError:
        raise ValidationError("Invalid ordered_at format")


def _build_item(store: EntityStore, raw: dict, position: int) -> PurchaseOrderItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{position}] must be an object")
    label = f"items[{position}]"

    quantity = coerce_quantity(raw.get("quantity"), f"{label}.quantity")
    is_new_product = bool(raw.get("is_new_product", False))

    if is_new_product:
        product_name = str(raw.get("product_name") or "").strip()
        if not product_name:
            raise ValidationError(f"{label}.product_name is required for a new product")
        if len(product_name) > 255:
            raise ValidationError(f"{label}.product_name exceeds max length 255")
        if raw.get("unit_price") is None:
            raise ValidationError(f"{label}.unit_price is required for a new product")
        unit_price = _money_field(raw.get("unit_price"), f"{label}.unit_price")

        warehouse_id = raw.get("warehouse_id")
        category_id = raw.get("category_id")
        if warehouse_id is not None:
            store.require("warehouses", warehouse_id)
        if category_id is not None:
            store.require("categories", category_id)
        product_id = None
    else:
        product_id = raw.get("product_id")
        if product_id is None:
            raise ValidationError(f"{label}.product_id is required")
        product = store.require("products", product_id)
        product_name = product.name
        # Unit price defaults to the last price paid for the product
        unit_price = _money_field(
            raw.get("unit_price"),
            f"{label}.unit_price",
            default=Decimal(product.last_purchase_price or 0),
        )
        warehouse_id = None
        category_id = None

    item = PurchaseOrderItem(
        position=position,
        product_id=product_id,
        product_name=product_name,
        is_new_product=is_new_product,
        warehouse_id=warehouse_id,
        category_id=category_id,
        quantity=quantity,
        unit_price=unit_price,
        prorated_unit_cost=_money_field(raw.get("prorated_unit_cost"), f"{label}.prorated_unit_cost"),
        suggested_selling_price=_money_field(
            raw.get("suggested_selling_price"), f"{label}.suggested_selling_price"
        ),
    )
    item.recalculate_line_total()
    return item


def build_items(store: EntityStore, raw_items) -> list[PurchaseOrderItem]:
    """
    Parse and validate a JSON item list into transient PurchaseOrderItem rows.

    Raises:
        ValidationError: If the list is missing/empty or an item is malformed
        NotFoundError: If a referenced product, warehouse or category is missing
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")
    return [_build_item(store, raw, position) for position, raw in enumerate(raw_items)]


def _replace_items(store: EntityStore, order: PurchaseOrder, items: list[PurchaseOrderItem]) -> None:
    # delete-then-reinsert; delete-orphan removes the old rows on flush
    order.items.clear()
    store.session.flush()
    for position, item in enumerate(items):
        item.position = position
        order.items.append(item)
    store.session.flush()


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

def _apply_delivery_effects(store: EntityStore, order: PurchaseOrder) -> None:
    if not order.items:
        raise ValidationError("Cannot deliver an order with no items")

    now = utcnow()
    for item in order.items:
        if item.is_new_product:
            selling_price = item.suggested_selling_price
            if selling_price is None:
                selling_price = suggested_price(item.unit_price)
            product = Product(
                name=item.product_name,
                description="",
                warehouse_id=item.warehouse_id,
                category_id=item.category_id,
                stock=item.quantity,
                last_purchase_price=item.unit_price,
                selling_price=selling_price,
            )
            store.add(product)
            item.product_id = product.id
        else:
            product = store.require("products", item.product_id, for_update=True)
            product.stock += item.quantity
            product.last_purchase_price = item.unit_price
            if item.suggested_selling_price is not None:
                product.selling_price = item.suggested_selling_price
            store.session.flush()

        record_price(
            product_id=product.id,
            price=item.unit_price,
            price_type=PRICE_TYPE_PURCHASE,
            occurred_at=now,
            source_type=SOURCE_TYPE,
            source_id=order.id,
            store=store,
        )

    order.status = STATUS_DELIVERED
    order.delivered_at = now
    store.session.flush()

    current_app.logger.info(
        "Purchase order %s delivered: %d lines, total %s",
        order.id, len(order.items), order.total,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

def create_purchase_order(
    *,
    supplier_id: int | None,
    items,
    status: str | None = None,
    shipping_cost=None,
    additional_fees=None,
    discount=None,
    ordered_at=None,
    notes: str | None = None,
    store: EntityStore | None = None,
) -> PurchaseOrder:
    """
    Create a purchase order with its lines.

    An order created as DELIVERED gets its delivery effects in the same
    transaction.

    Raises:
        ValidationError: If supplier_id is missing, items are empty or invalid
        NotFoundError: If the supplier or a referenced product is missing
    """
    if supplier_id is None:
        raise ValidationError("supplier_id is required")
    status = _parse_status(status) or STATUS_ORDERED

    store = store or default_store()
    with store.transaction():
        store.require("suppliers", supplier_id)
        order_items = build_items(store, items)

        order = PurchaseOrder(
            supplier_id=supplier_id,
            status=STATUS_ORDERED,
            shipping_cost=_money_field(shipping_cost, "shipping_cost", default=Decimal("0")),
            additional_fees=_money_field(additional_fees, "additional_fees", default=Decimal("0")),
            discount=_money_field(discount, "discount", default=Decimal("0")),
            notes=notes,
        )
        order_at = _parse_ordered_at(ordered_at)
        if order_at is not None:
            order.ordered_at = order_at
        order.items.extend(order_items)
        order.recalculate_total()
        store.add(order)

        if status == STATUS_DELIVERED:
            _apply_delivery_effects(store, order)

    return order


def update_purchase_order(
    order_id: int,
    *,
    supplier_id: int | None = None,
    status: str | None = None,
    shipping_cost=None,
    additional_fees=None,
    discount=None,
    items=None,
    ordered_at=None,
    notes: str | None = None,
    store: EntityStore | None = None,
) -> PurchaseOrder:
    """
    Update header fields and (optionally) replace the line set.

    None means "leave unchanged" for every field.

    Raises:
        NotFoundError: If the order, supplier or a product is missing
        ValidationError: If input is invalid
        OrderStateError: If reverting DELIVERED -> ORDERED or changing the
            lines of a delivered order
    """
    new_status = _parse_status(status)

    store = store or default_store()
    with store.transaction():
        order = store.require("purchase_orders", order_id, for_update=True)
        previous_status = order.status
        target_status = new_status or previous_status

        if previous_status == STATUS_DELIVERED and target_status == STATUS_ORDERED:
            raise OrderStateError("Cannot revert a DELIVERED purchase order to ORDERED")

        if supplier_id is not None:
            store.require("suppliers", supplier_id)
            order.supplier_id = supplier_id

        previous_costs = additional_costs_for(order)
        if shipping_cost is not None:
            order.shipping_cost = _money_field(shipping_cost, "shipping_cost")
        if additional_fees is not None:
            order.additional_fees = _money_field(additional_fees, "additional_fees")
        if discount is not None:
            order.discount = _money_field(discount, "discount")
        if notes is not None:
            order.notes = notes
        order_at = _parse_ordered_at(ordered_at)
        if order_at is not None:
            order.ordered_at = order_at

        if items is not None:
            new_items = build_items(store, items)
            if previous_status == STATUS_DELIVERED:
                current = [item.signature() for item in order.items]
                if [item.signature() for item in new_items] != current:
                    raise OrderStateError("Cannot change the items of a DELIVERED purchase order")
            else:
                _replace_items(store, order, new_items)
        elif previous_status == STATUS_ORDERED and additional_costs_for(order) != previous_costs:
            # stored proration was computed from the old costs
            clear_proration(order.items)

        order.recalculate_total()
        store.session.flush()

        if previous_status == STATUS_ORDERED and target_status == STATUS_DELIVERED:
            _apply_delivery_effects(store, order)

    return order


def deliver_purchase_order(order_id: int, *, store: EntityStore | None = None) -> PurchaseOrder:
    """Mark an order DELIVERED; a no-op for orders that already are."""
    return update_purchase_order(order_id, status=STATUS_DELIVERED, store=store)


def get_purchase_order(order_id: int, *, store: EntityStore | None = None) -> PurchaseOrder:
    store = store or default_store()
    return store.require("purchase_orders", order_id)


def list_purchase_orders(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
    store: EntityStore | None = None,
) -> tuple[list[PurchaseOrder], int]:
    """
    List purchase orders, newest first.

    Returns:
        Tuple of (list of orders, total count)
    """
    store = store or default_store()
    query = store.query("purchase_orders")

    status = _parse_status(status)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)

    total = query.count()
    query = query.order_by(PurchaseOrder.ordered_at.desc(), PurchaseOrder.id.desc())
    return query.offset(offset).limit(limit).all(), total


def delete_purchase_order(order_id: int, *, store: EntityStore | None = None) -> bool:
    """
    Delete an ORDERED purchase order.

    Returns:
        True if deleted, False if not found

    Raises:
        OrderStateError: If the order was already delivered
    """
    store = store or default_store()
    with store.transaction():
        order = store.get_by_id("purchase_orders", order_id)
        if order is None:
            return False
        if order.status == STATUS_DELIVERED:
            raise OrderStateError("Cannot delete a DELIVERED purchase order")
        store.delete("purchase_orders", order_id)
    return True


# ---------------------------------------------------------------------------
# Line editing (ORDERED only)
# ---------------------------------------------------------------------------

def _require_editable(order: PurchaseOrder) -> None:
    if order.status != STATUS_ORDERED:
        raise OrderStateError(
            f"Cannot modify lines on {order.status} order. Only ORDERED orders can be modified."
        )


def add_purchase_order_item(order_id: int, *, item: dict, store: EntityStore | None = None) -> PurchaseOrderItem:
    """
    Add a line to an ORDERED purchase order.

    A line for a product already on the order is merged into the existing
    line: quantities add up and the line keeps its unit price.
    Any proration on the order is cleared.

    Raises:
        NotFoundError: If the order or product is missing
        OrderStateError: If the order is not ORDERED
        ValidationError: If the line is invalid
    """
    store = store or default_store()
    with store.transaction():
        order = store.require("purchase_orders", order_id, for_update=True)
        _require_editable(order)

        new_item = _build_item(store, item, len(order.items))

        existing = None
        if not new_item.is_new_product:
            existing = next(
                (line for line in order.items
                 if not line.is_new_product and line.product_id == new_item.product_id),
                None,
            )

        if existing is not None:
            existing.quantity += new_item.quantity
            existing.recalculate_line_total()
            result = existing
        else:
            order.items.append(new_item)
            result = new_item

        clear_proration(order.items)
        order.recalculate_total()
        store.session.flush()
    return result


def update_purchase_order_item(
    item_id: int,
    *,
    quantity=None,
    unit_price=None,
    store: EntityStore | None = None,
) -> PurchaseOrderItem:
    """
    Update quantity / unit price of a line on an ORDERED order.

    Raises:
        NotFoundError: If the line is missing
        OrderStateError: If the order is not ORDERED
        ValidationError: If values are invalid
    """
    store = store or default_store()
    with store.transaction():
        line = store.session.query(PurchaseOrderItem).filter_by(id=item_id).first()
        if line is None:
            raise NotFoundError("Purchase order item", item_id)
        order = line.purchase_order
        _require_editable(order)

        if quantity is not None:
            line.quantity = coerce_quantity(quantity)
        if unit_price is not None:
            line.unit_price = _money_field(unit_price, "unit_price")
        line.recalculate_line_total()

        clear_proration(order.items)
        order.recalculate_total()
        store.session.flush()
    return line


def remove_purchase_order_item(item_id: int, *, store: EntityStore | None = None) -> PurchaseOrder:
    """
    Remove a line from an ORDERED order.

    Returns:
        The updated order

    Raises:
        NotFoundError: If the line is missing
        OrderStateError: If the order is not ORDERED
    """
    store = store or default_store()
    with store.transaction():
        line = store.session.query(PurchaseOrderItem).filter_by(id=item_id).first()
        if line is None:
            raise NotFoundError("Purchase order item", item_id)
        order = line.purchase_order
        _require_editable(order)

        order.items.remove(line)
        for position, remaining in enumerate(order.items):
            remaining.position = position

        clear_proration(order.items)
        order.recalculate_total()
        store.session.flush()
    return order


# ---------------------------------------------------------------------------
# Proration
# ---------------------------------------------------------------------------

def prorate_purchase_order(order_id: int, *, store: EntityStore | None = None) -> ProrationResult:
    """
    Prorate the order's extra costs over its lines and persist the
    prorated unit cost / suggested selling price on each line.

    Raises:
        NotFoundError: If the order is missing
        OrderStateError: If the order is not ORDERED
        ValidationError: If the order has no lines
        ProrationError: If the subtotal is zero
    """
    store = store or default_store()
    with store.transaction():
        order = store.require("purchase_orders", order_id, for_update=True)
        _require_editable(order)

        result = prorate_items(order.items, additional_costs_for(order))
        apply_proration(order.items, result)
        store.session.flush()
    return result


def prorate_draft(
    *,
    items,
    shipping_cost=None,
    additional_fees=None,
    discount=None,
    store: EntityStore | None = None,
) -> tuple[list[PurchaseOrderItem], ProrationResult]:
    """
    Prorate an unsaved order. Nothing is written.

    Returns:
        Tuple of (transient lines with proration applied, result)
    """
    store = store or default_store()
    order_items = build_items(store, items)
    draft = PurchaseOrder(
        shipping_cost=_money_field(shipping_cost, "shipping_cost", default=Decimal("0")),
        additional_fees=_money_field(additional_fees, "additional_fees", default=Decimal("0")),
        discount=_money_field(discount, "discount", default=Decimal("0")),
    )
    result = prorate_items(order_items, additional_costs_for(draft))
    apply_proration(order_items, result)
    return order_items, result
