# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

"""
Purchase Order Routes

Lifecycle: ORDERED -> DELIVERED. Delivery can happen by
- POST /api/purchase-orders with "status": "DELIVERED"
- PUT /api/purchase-orders/<id> with "status": "DELIVERED"
- POST /api/purchase-orders/<id>/deliver

All three apply delivery effects once; repeating them is a no-op.

Line editing (/items) and /prorate are only allowed while ORDERED.
POST /api/purchase-orders/prorate prorates an unsaved draft and writes nothing.
"""

from flask import Blueprint, request

from ..services import purchase_order_service


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

HEADER_FIELDS = (
    "supplier_id",
    "status",
    "shipping_cost",
    "additional_fees",
    "discount",
    "ordered_at",
    "notes",
)


def _header_kwargs(payload: dict) -> dict:
    return {field: payload.get(field) for field in HEADER_FIELDS}


@purchase_orders_bp.get("")
def list_purchase_orders_route():
    """
    List purchase orders, newest first.

    Query parameters:
    - status: ORDERED or DELIVERED
    - supplier_id: Filter by supplier
    - limit: Maximum results (default: 100, max 500)
    - offset: Pagination offset (default: 0)

    Returns:
        {items: PurchaseOrder[], count: int, total: int}
    """
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)

    # Clamp limit
    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    orders, total = purchase_order_service.list_purchase_orders(
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
        limit=limit,
        offset=offset,
    )
    return {
        "items": [order.to_dict(include_items=False) for order in orders],
        "count": len(orders),
        "total": total,
    }


@purchase_orders_bp.post("")
def create_purchase_order_route():
    """
    Create a purchase order.

    Request body:
    {
        "supplier_id": int,
        "status": "ORDERED" | "DELIVERED" (optional, default ORDERED),
        "shipping_cost": number, "additional_fees": number, "discount": number,
        "ordered_at": ISO-8601 (optional),
        "notes": str (optional),
        "items": [
            {"product_id": int, "quantity": int, "unit_price": number},
            {"is_new_product": true, "product_name": str, "quantity": int,
             "unit_price": number, "warehouse_id": int, "category_id": int}
        ]
    }
    """
    payload = request.get_json(silent=True) or {}
    order = purchase_order_service.create_purchase_order(
        items=payload.get("items"),
        **_header_kwargs(payload),
    )
    return order.to_dict(), 201


@purchase_orders_bp.get("/<int:order_id>")
def get_purchase_order_route(order_id: int):
    return purchase_order_service.get_purchase_order(order_id).to_dict()


@purchase_orders_bp.put("/<int:order_id>")
def update_purchase_order_route(order_id: int):
    """Update header fields and/or replace items. Omitted fields are unchanged."""
    payload = request.get_json(silent=True) or {}
    order = purchase_order_service.update_purchase_order(
        order_id,
        items=payload.get("items"),
        **_header_kwargs(payload),
    )
    return order.to_dict(), 200


@purchase_orders_bp.delete("/<int:order_id>")
def delete_purchase_order_route(order_id: int):
    if not purchase_order_service.delete_purchase_order(order_id):
        return {"error": "Purchase order not found"}, 404
    return {"ok": True}, 200


@purchase_orders_bp.post("/<int:order_id>/deliver")
def deliver_purchase_order_route(order_id: int):
    order = purchase_order_service.deliver_purchase_order(order_id)
    return order.to_dict(), 200


@purchase_orders_bp.post("/<int:order_id>/prorate")
def prorate_purchase_order_route(order_id: int):
    """Prorate shipping + fees - discount over the lines and store the results."""
    result = purchase_order_service.prorate_purchase_order(order_id)
    order = purchase_order_service.get_purchase_order(order_id)
    return {"proration": result.to_dict(), "order": order.to_dict()}, 200


@purchase_orders_bp.post("/prorate")
def prorate_draft_route():
    """
    Prorate an unsaved order (same body shape as create, supplier optional).

    Returns:
        {proration: {...}, items: [...]}
    """
    payload = request.get_json(silent=True) or {}
    items, result = purchase_order_service.prorate_draft(
        items=payload.get("items"),
        shipping_cost=payload.get("shipping_cost"),
        additional_fees=payload.get("additional_fees"),
        discount=payload.get("discount"),
    )
    return {
        "proration": result.to_dict(),
        "items": [item.to_dict() for item in items],
    }, 200


@purchase_orders_bp.post("/<int:order_id>/items")
def add_item_route(order_id: int):
    """Add a line; a product already on the order is merged into its line."""
    payload = request.get_json(silent=True) or {}
    purchase_order_service.add_purchase_order_item(order_id, item=payload)
    order = purchase_order_service.get_purchase_order(order_id)
    return order.to_dict(), 201


@purchase_orders_bp.put("/items/<int:item_id>")
def update_item_route(item_id: int):
    """Request body: {"quantity": int, "unit_price": number} (both optional)."""
    payload = request.get_json(silent=True) or {}
    line = purchase_order_service.update_purchase_order_item(
        item_id,
        quantity=payload.get("quantity"),
        unit_price=payload.get("unit_price"),
    )
    return line.purchase_order.to_dict(), 200


@purchase_orders_bp.delete("/items/<int:item_id>")
def remove_item_route(item_id: int):
    order = purchase_order_service.remove_purchase_order_item(item_id)
    return order.to_dict(), 200
