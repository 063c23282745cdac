# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/nimble/routes/products.py
"""
Product management routes.

Stock is normally moved by purchase-order delivery and sales; PUT accepts
a stock value for manual corrections. Purchase price edits feed the
product's price history.
"""
from flask import Blueprint, request

from ..models import Product
from ..services import price_history_service
from ..services.products_service import (
    create_product,
    delete_product,
    get_product,
    list_products as list_products_service,
    update_product,
)
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "warehouse_id",
        "category_id",
        "last_purchase_price",
        "selling_price",
        "stock",
    },
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - search: str (optional) - case-insensitive match on name
    - warehouse_id / category_id: int (optional)
    - low_stock: bool (optional) - only products at or below the threshold
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return list_products_service(
        search=request.args.get("search"),
        warehouse_id=request.args.get("warehouse_id", type=int),
        category_id=request.args.get("category_id", type=int),
        low_stock=_flag(request.args.get("low_stock")),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    return get_product(product_id).to_dict()


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    created = create_product(patch=patch)
    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    updated = update_product(product_id=product_id, patch=patch)
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    if not delete_product(product_id=product_id):
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.get("/<int:product_id>/price-history")
def product_price_history(product_id: int):
    """Price observations for one product, newest first."""
    get_product(product_id)
    entries = price_history_service.get_by_product_id(product_id)
    return {
        "items": [entry.to_dict() for entry in entries],
        "count": len(entries),
    }
