# Overview: Service-layer CRUD for reference data (categories, warehouses, customers, suppliers).

"""
Catalog Service

Reference entities share one lifecycle: create, patch, delete. The only
business rule is referential: an entity that products or orders point at
cannot be deleted.
"""

from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..models import STATUS_ORDERED, Product, PurchaseOrder, PurchaseOrderItem, SalesOrder
from .entity_store import EntityStore, default_store

CATALOG_KINDS = ("categories", "warehouses", "customers", "suppliers")

# kind -> [(referencing model, foreign key attribute, label), ...]
# Pending new-product lines carry warehouse/category ids until delivery.
_REFERENCES = {
    "categories": [
        (Product, "category_id", "products"),
        (PurchaseOrderItem, "category_id", "purchase order items"),
    ],
    "warehouses": [
        (Product, "warehouse_id", "products"),
        (PurchaseOrderItem, "warehouse_id", "purchase order items"),
    ],
    "customers": [(SalesOrder, "customer_id", "sales orders")],
    "suppliers": [(PurchaseOrder, "supplier_id", "purchase orders")],
}


# kind -> column that must be unique when set
_UNIQUE_FIELDS = {
    "categories": "name",
    "warehouses": "code",
}


def _require_catalog_kind(kind: str) -> None:
    if kind not in CATALOG_KINDS:
        raise ValidationError(f"Unknown catalog kind: {kind}")


def _check_unique(store: EntityStore, kind: str, patch: dict, entity_id: int | None = None) -> None:
    field = _UNIQUE_FIELDS.get(kind)
    if field is None or patch.get(field) is None:
        return
    model = store.model_for(kind)
    query = store.query(kind).filter(getattr(model, field) == patch[field])
    if entity_id is not None:
        query = query.filter(model.id != entity_id)
    if query.first() is not None:
        raise ConflictError(f"{field} already exists: {patch[field]}")


def _count_references(store: EntityStore, model, column: str, entity_id: int) -> int:
    query = store.session.query(model).filter(getattr(model, column) == entity_id)
    if model is PurchaseOrderItem:
        # delivered lines already point at a real product
        query = query.join(PurchaseOrder).filter(PurchaseOrder.status == STATUS_ORDERED)
    return query.count()


def list_entities(kind: str, *, search: str | None = None, store: EntityStore | None = None) -> list:
    _require_catalog_kind(kind)
    store = store or default_store()
    model = store.model_for(kind)
    query = store.query(kind)
    if search:
        query = query.filter(model.name.ilike(f"%{search.strip()}%"))
    return query.order_by(model.name.asc(), model.id.asc()).all()


def get_entity(kind: str, entity_id: int, *, store: EntityStore | None = None):
    _require_catalog_kind(kind)
    store = store or default_store()
    return store.require(kind, entity_id)


def create_entity(kind: str, *, patch: dict, store: EntityStore | None = None):
    """Create from a validated patch dict."""
    _require_catalog_kind(kind)
    store = store or default_store()
    with store.transaction():
        _check_unique(store, kind, patch)
        entity = store.create(kind, patch)
    return entity


def update_entity(kind: str, entity_id: int, *, patch: dict, store: EntityStore | None = None):
    _require_catalog_kind(kind)
    store = store or default_store()
    with store.transaction():
        store.require(kind, entity_id)
        _check_unique(store, kind, patch, entity_id)
        entity = store.update(kind, entity_id, patch)
    return entity


def delete_entity(kind: str, entity_id: int, *, store: EntityStore | None = None) -> bool:
    """
    Delete a catalog entity.

    Returns:
        True if deleted, False if not found

    Raises:
        ConflictError: If other records still reference it
    """
    _require_catalog_kind(kind)
    store = store or default_store()
    with store.transaction():
        if store.get_by_id(kind, entity_id) is None:
            return False

        references = {}
        for model, column, label in _REFERENCES[kind]:
            count = _count_references(store, model, column, entity_id)
            if count:
                references[label] = count

        if references:
            summary = ", ".join(f"{count} {label}" for label, count in references.items())
            raise ConflictError(
                f"Cannot delete: referenced by {summary}",
                details={label.replace(" ", "_"): count for label, count in references.items()},
            )
        store.delete(kind, entity_id)
    return True
