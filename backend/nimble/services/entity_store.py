# Overview: Service-layer persistence gateway; CRUD by entity kind plus transaction scoping.

"""
Entity Store

Every service reads and writes through an EntityStore instead of reaching
for a global. The default store is bound to Flask-SQLAlchemy's scoped
session; tests and scripts can pass their own.

KINDS: products, categories, warehouses, customers, suppliers,
purchase_orders, sales_orders, price_history.

TRANSACTIONS:
- create/update/delete only flush; nothing is committed until the
  outermost transaction() block exits cleanly.
- transaction() blocks nest: inner blocks join the outer one.
- Any exception rolls the whole unit back. Store failures are re-raised as
  TransactionError; domain errors propagate unchanged.
- A failing block unwinds only its own level. An outer block that catches
  the error can keep going, but the writes it made before are already gone.
- rollback() aborts every level at once.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..errors import NotFoundError, TransactionError, ValidationError
from ..extensions import db
from ..models import (
    Category,
    Customer,
    PriceHistory,
    Product,
    PurchaseOrder,
    SalesOrder,
    Supplier,
    Warehouse,
)


ENTITY_KINDS: dict[str, type] = {
    "products": Product,
    "categories": Category,
    "warehouses": Warehouse,
    "customers": Customer,
    "suppliers": Supplier,
    "purchase_orders": PurchaseOrder,
    "sales_orders": SalesOrder,
    "price_history": PriceHistory,
}

# Singular labels for error messages ("Product 7 not found")
KIND_LABELS = {
    "products": "Product",
    "categories": "Category",
    "warehouses": "Warehouse",
    "customers": "Customer",
    "suppliers": "Supplier",
    "purchase_orders": "Purchase order",
    "sales_orders": "Sales order",
    "price_history": "Price history entry",
}


def lock_for_update(query):
    """
    Apply row-level locking for stock mutations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class EntityStore:
    def __init__(self, session: Session | None = None):
        self._session = session
        self._depth = 0

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    @staticmethod
    def model_for(kind: str) -> type:
        try:
            return ENTITY_KINDS[kind]
        except KeyError:
            raise ValidationError(f"Unknown entity kind: {kind}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(self, kind: str):
        return self.session.query(self.model_for(kind))

    def get_all(self, kind: str) -> list[Any]:
        model = self.model_for(kind)
        return self.session.query(model).order_by(model.id.asc()).all()

    def get_by_id(self, kind: str, entity_id: int, *, for_update: bool = False):
        model = self.model_for(kind)
        query = self.session.query(model).filter(model.id == entity_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def require(self, kind: str, entity_id: int | None, *, for_update: bool = False):
        """get_by_id that raises NotFoundError instead of returning None."""
        entity = None
        if entity_id is not None:
            entity = self.get_by_id(kind, entity_id, for_update=for_update)
        if entity is None:
            raise NotFoundError(KIND_LABELS.get(kind, kind), entity_id)
        return entity

    # ------------------------------------------------------------------
    # Writes (flush only; commit belongs to transaction())
    # ------------------------------------------------------------------

    def add(self, entity):
        self.session.add(entity)
        self.session.flush()
        return entity

    def create(self, kind: str, data: dict):
        model = self.model_for(kind)
        entity = model(**data)
        return self.add(entity)

    def update(self, kind: str, entity_id: int, data: dict):
        entity = self.require(kind, entity_id)
        for key, value in data.items():
            setattr(entity, key, value)
        self.session.flush()
        return entity

    def delete(self, kind: str, entity_id: int) -> bool:
        entity = self.get_by_id(kind, entity_id)
        if entity is None:
            return False
        self.session.delete(entity)
        self.session.flush()
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def begin(self) -> None:
        self._depth += 1

    def commit(self) -> None:
        if self._depth == 0:
            raise TransactionError("commit() called outside a transaction")
        self._depth -= 1
        if self._depth == 0:
            self.session.commit()

    def rollback(self) -> None:
        self._depth = 0
        self.session.rollback()

    def _abort_block(self) -> None:
        self._depth = max(self._depth - 1, 0)
        self.session.rollback()

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        self.begin()
        try:
            yield self
        except (SQLAlchemyError, StaleDataError) as exc:
            self._abort_block()
            raise TransactionError(f"Store operation failed: {exc}") from exc
        except BaseException:
            self._abort_block()
            raise
        try:
            self.commit()
        except SQLAlchemyError as exc:
            self._abort_block()
            raise TransactionError(f"Commit failed: {exc}") from exc


def default_store() -> EntityStore:
    return EntityStore()
