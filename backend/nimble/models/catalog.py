from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


def money(value) -> str | None:
    """Decimal -> JSON string, keeping the column scale ("700.00")."""
    if value is None:
        return None
    return str(value)


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Warehouse(db.Model):
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_warehouses_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    # Short code shown on shelf labels, e.g. "DEP-01"
    code = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    STOCK: on-hand quantity, never negative. Only the order workflow moves it
    after creation (delivery adds, sales subtract); direct edits go through
    the products service.

    PRICES:
    - last_purchase_price: unit cost of the most recent delivery
    - selling_price: current list price (may be overwritten by a suggested
      price computed during purchase-order proration)

    version_id guards concurrent stock updates: a stale write raises
    StaleDataError instead of silently losing an increment.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        db.CheckConstraint("last_purchase_price >= 0", name="purchase_price_non_negative"),
        db.CheckConstraint("selling_price >= 0", name="selling_price_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    last_purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    warehouse = db.relationship("Warehouse", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    price_history = db.relationship(
        "PriceHistory",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "warehouse_id": self.warehouse_id,
            "category_id": self.category_id,
            "last_purchase_price": money(self.last_purchase_price),
            "selling_price": money(self.selling_price),
            "stock": self.stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


PRICE_TYPE_PURCHASE = "purchase"
PRICE_TYPE_SALE = "sale"
PRICE_TYPES = {PRICE_TYPE_PURCHASE, PRICE_TYPE_SALE}


class PriceHistory(db.Model):
    """
    Append-only log of observed prices per product.

    One row per observation: product creation, purchase price edits,
    purchase-order deliveries and sales. Rows are never updated.
    source_type/source_id point at the order that produced the row, if any.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        db.CheckConstraint("type IN ('purchase', 'sale')", name="price_type"),
        db.Index("ix_price_history_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    source_type = db.Column(db.String(32), nullable=True)
    source_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="price_history")

    def __repr__(self) -> str:
        return f"<PriceHistory id={self.id} product_id={self.product_id} {self.type} {self.price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "price": money(self.price),
            "type": self.type,
            "occurred_at": to_utc_z(self.occurred_at),
            "source_type": self.source_type,
            "source_id": self.source_id,
            "created_at": to_utc_z(self.created_at),
        }
