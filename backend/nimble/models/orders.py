from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z
from .catalog import money

# Purchase order statuses: ORDERED -> DELIVERED (one-way)
STATUS_ORDERED = "ORDERED"
STATUS_DELIVERED = "DELIVERED"
PURCHASE_STATUSES = {STATUS_ORDERED, STATUS_DELIVERED}

SALE_STATUS_COMPLETED = "COMPLETED"


class PurchaseOrder(db.Model):
    """
    Purchase order placed with a supplier.

    LIFECYCLE:
    1. ORDERED: lines can be added, edited, removed and prorated
    2. DELIVERED: delivery effects applied (stock in, prices, history);
       the line set is frozen from here on

    TOTAL: sum(line totals) + shipping_cost + additional_fees - discount,
    recomputed by recalculate_total() whenever lines or cost fields change.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.CheckConstraint("status IN ('ORDERED', 'DELIVERED')", name="purchase_status"),
        db.CheckConstraint("shipping_cost >= 0", name="shipping_non_negative"),
        db.CheckConstraint("additional_fees >= 0", name="fees_non_negative"),
        db.CheckConstraint("discount >= 0", name="discount_non_negative"),
        db.Index("ix_purchase_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_ORDERED)

    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    additional_fees = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} supplier_id={self.supplier_id} status={self.status}>"

    @property
    def subtotal(self) -> Decimal:
        return sum((Decimal(item.line_total) for item in self.items), Decimal("0"))

    def recalculate_total(self) -> Decimal:
        self.total = (
            self.subtotal
            + Decimal(self.shipping_cost or 0)
            + Decimal(self.additional_fees or 0)
            - Decimal(self.discount or 0)
        )
        return self.total

    def to_dict(self, include_items: bool = True) -> dict:
        result = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "status": self.status,
            "shipping_cost": money(self.shipping_cost),
            "additional_fees": money(self.additional_fees),
            "discount": money(self.discount),
            "subtotal": money(self.subtotal),
            "total": money(self.total),
            "notes": self.notes,
            "ordered_at": to_utc_z(self.ordered_at),
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            result["items"] = [item.to_dict() for item in self.items]
        return result


class PurchaseOrderItem(db.Model):
    """
    Line on a purchase order.

    Either references an existing product (product_id) or, with
    is_new_product set, carries only a product_name placeholder; the product
    is created on delivery and product_id is filled in then.
    """
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    is_new_product = db.Column(db.Boolean, nullable=False, default=False)

    # Only used when a new product is created on delivery
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    prorated_unit_cost = db.Column(db.Numeric(12, 4), nullable=True)
    suggested_selling_price = db.Column(db.Numeric(12, 2), nullable=True)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<PurchaseOrderItem id={self.id} product={self.product_name!r} qty={self.quantity}>"

    def recalculate_line_total(self) -> Decimal:
        self.line_total = Decimal(self.quantity) * Decimal(self.unit_price)
        return self.line_total

    def signature(self) -> tuple:
        """Fields that define the line for no-op resubmission checks."""
        return (
            self.product_id if not self.is_new_product else None,
            self.product_name if self.is_new_product else None,
            bool(self.is_new_product),
            int(self.quantity),
            Decimal(self.unit_price),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "is_new_product": self.is_new_product,
            "warehouse_id": self.warehouse_id,
            "category_id": self.category_id,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "total": money(self.line_total),
            "prorated_unit_cost": money(self.prorated_unit_cost),
            "suggested_selling_price": money(self.suggested_selling_price),
        }


class SalesOrder(db.Model):
    """
    Sales order to a customer.

    Created complete: stock and price history are applied once, at creation.
    Later edits replace lines and fields without touching stock.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))
    items = db.relationship(
        "SalesOrderItem",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.position",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<SalesOrder id={self.id} customer_id={self.customer_id} total={self.total}>"

    def recalculate_total(self) -> Decimal:
        self.total = sum((Decimal(item.line_total) for item in self.items), Decimal("0"))
        return self.total

    def to_dict(self, include_items: bool = True) -> dict:
        result = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "status": self.status,
            "total": money(self.total),
            "notes": self.notes,
            "ordered_at": to_utc_z(self.ordered_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            result["items"] = [item.to_dict() for item in self.items]
        return result


class SalesOrderItem(db.Model):
    __tablename__ = "sales_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Snapshot of the product name at sale time
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    sales_order = db.relationship("SalesOrder", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "total": money(self.line_total),
        }
