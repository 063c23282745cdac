# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import sales_order_service


sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


@sales_orders_bp.get("")
def list_sales_orders_route():
    """
    Query parameters:
    - customer_id: Filter by customer
    - limit: Maximum results (default: 100, max 500)
    - offset: Pagination offset (default: 0)
    """
    limit = max(1, min(request.args.get("limit", 100, type=int), 500))
    offset = max(0, request.args.get("offset", 0, type=int))

    orders, total = sales_order_service.list_sales_orders(
        customer_id=request.args.get("customer_id", type=int),
        limit=limit,
        offset=offset,
    )
    return {
        "items": [order.to_dict(include_items=False) for order in orders],
        "count": len(orders),
        "total": total,
    }


@sales_orders_bp.post("")
def create_sales_order_route():
    """
    Create a sales order; stock is decremented immediately.

    Request body:
    {
        "customer_id": int,
        "ordered_at": ISO-8601 (optional),
        "notes": str (optional),
        "items": [{"product_id": int, "quantity": int, "unit_price": number (optional)}]
    }

    409 when stock is insufficient (unless ALLOW_OVERSELL is enabled).
    """
    payload = request.get_json(silent=True) or {}
    order = sales_order_service.create_sales_order(
        customer_id=payload.get("customer_id"),
        items=payload.get("items"),
        ordered_at=payload.get("ordered_at"),
        notes=payload.get("notes"),
    )
    return order.to_dict(), 201


@sales_orders_bp.get("/<int:order_id>")
def get_sales_order_route(order_id: int):
    return sales_order_service.get_sales_order(order_id).to_dict()


@sales_orders_bp.put("/<int:order_id>")
def update_sales_order_route(order_id: int):
    """Edit a sales order. Stock is not adjusted."""
    payload = request.get_json(silent=True) or {}
    order = sales_order_service.update_sales_order(
        order_id,
        customer_id=payload.get("customer_id"),
        items=payload.get("items"),
        ordered_at=payload.get("ordered_at"),
        notes=payload.get("notes"),
    )
    return order.to_dict(), 200


@sales_orders_bp.delete("/<int:order_id>")
def delete_sales_order_route(order_id: int):
    if not sales_order_service.delete_sales_order(order_id):
        return {"error": "Sales order not found"}, 404
    return {"ok": True}, 200
