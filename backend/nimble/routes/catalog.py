# Overview: Flask API routes for reference data (categories, warehouses, customers, suppliers).

"""
Catalog Routes

The four reference resources share one CRUD shape, so their blueprints are
built by make_catalog_blueprint(). Each resource has its own validation
policy; deletes are refused (409) while other records reference the entity.
"""

from flask import Blueprint, request

from ..models import Category, Customer, Supplier, Warehouse
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "address"},
    required_on_create={"name"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone", "email"},
    required_on_create={"name"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone", "email", "website"},
    required_on_create={"name"},
)


def make_catalog_blueprint(kind: str, model, policy: ModelValidationPolicy, label: str) -> Blueprint:
    bp = Blueprint(kind, __name__, url_prefix=f"/api/{kind}")

    @bp.get("")
    def list_route():
        """Query params: search (optional) - case-insensitive match on name."""
        entities = catalog_service.list_entities(kind, search=request.args.get("search"))
        return {
            "items": [e.to_dict() for e in entities],
            "count": len(entities),
        }

    @bp.get("/<int:entity_id>")
    def get_route(entity_id: int):
        return catalog_service.get_entity(kind, entity_id).to_dict()

    @bp.post("")
    def create_route():
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
        created = catalog_service.create_entity(kind, patch=patch)
        return created.to_dict(), 201

    @bp.put("/<int:entity_id>")
    def update_route(entity_id: int):
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(model=model, payload=payload, policy=policy, partial=True)
        updated = catalog_service.update_entity(kind, entity_id, patch=patch)
        return updated.to_dict(), 200

    @bp.delete("/<int:entity_id>")
    def delete_route(entity_id: int):
        if not catalog_service.delete_entity(kind, entity_id):
            return {"error": f"{label} not found"}, 404
        return {"ok": True}, 200

    return bp


categories_bp = make_catalog_blueprint("categories", Category, CATEGORY_POLICY, "Category")
warehouses_bp = make_catalog_blueprint("warehouses", Warehouse, WAREHOUSE_POLICY, "Warehouse")
customers_bp = make_catalog_blueprint("customers", Customer, CUSTOMER_POLICY, "Customer")
suppliers_bp = make_catalog_blueprint("suppliers", Supplier, SUPPLIER_POLICY, "Supplier")
