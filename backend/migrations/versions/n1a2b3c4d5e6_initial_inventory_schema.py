"""initial inventory schema

Revision ID: n1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete Nimble schema from scratch:
- categories, warehouses: reference data for products
- customers, suppliers: order counterparties
- products: master data with stock and optimistic version_id
- purchase_orders / purchase_order_items: ORDERED -> DELIVERED workflow
- sales_orders / sales_order_items: completed sales
- price_history: append-only purchase/sale price log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'n1a2b3c4d5e6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # Reference data
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'warehouses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_warehouses'),
        sa.UniqueConstraint('code', name='uq_warehouses_code'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_suppliers'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'])

    # ============================================================================
    # products: stock >= 0 enforced by constraint, version_id for optimistic locking
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('last_purchase_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('selling_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('last_purchase_price >= 0', name='ck_products_purchase_price_non_negative'),
        sa.CheckConstraint('selling_price >= 0', name='ck_products_selling_price_non_negative'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'],
                                name='fk_products_warehouse_id_warehouses'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'],
                                name='fk_products_category_id_categories'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_warehouse_id', 'products', ['warehouse_id'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])

    # ============================================================================
    # purchase orders
    # ============================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('additional_fees', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('ordered_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('ORDERED', 'DELIVERED')", name='ck_purchase_orders_purchase_status'),
        sa.CheckConstraint('shipping_cost >= 0', name='ck_purchase_orders_shipping_non_negative'),
        sa.CheckConstraint('additional_fees >= 0', name='ck_purchase_orders_fees_non_negative'),
        sa.CheckConstraint('discount >= 0', name='ck_purchase_orders_discount_non_negative'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'],
                                name='fk_purchase_orders_supplier_id_suppliers'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_orders'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_supplier_id', 'purchase_orders', ['supplier_id'])

    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('is_new_product', sa.Boolean(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('prorated_unit_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('suggested_selling_price', sa.Numeric(12, 2), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_order_items_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_purchase_order_items_unit_price_non_negative'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'],
                                name='fk_purchase_order_items_purchase_order_id_purchase_orders'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_purchase_order_items_product_id_products'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'],
                                name='fk_purchase_order_items_warehouse_id_warehouses'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'],
                                name='fk_purchase_order_items_category_id_categories'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_order_items'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])
    op.create_index('ix_purchase_order_items_product_id', 'purchase_order_items', ['product_id'])

    # ============================================================================
    # sales orders
    # ============================================================================
    op.create_table(
        'sales_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('ordered_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'],
                                name='fk_sales_orders_customer_id_customers'),
        sa.PrimaryKeyConstraint('id', name='pk_sales_orders'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_orders_customer_id', 'sales_orders', ['customer_id'])

    op.create_table(
        'sales_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sales_order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sales_order_items_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_sales_order_items_unit_price_non_negative'),
        sa.ForeignKeyConstraint(['sales_order_id'], ['sales_orders.id'],
                                name='fk_sales_order_items_sales_order_id_sales_orders'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_sales_order_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_sales_order_items'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_order_items_sales_order_id', 'sales_order_items', ['sales_order_id'])
    op.create_index('ix_sales_order_items_product_id', 'sales_order_items', ['product_id'])

    # ============================================================================
    # price_history: append-only, never updated
    # ============================================================================
    op.create_table(
        'price_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('source_type', sa.String(length=32), nullable=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("type IN ('purchase', 'sale')", name='ck_price_history_price_type'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_price_history_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_price_history'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_price_history_product_occurred', 'price_history', ['product_id', 'occurred_at'])
    op.create_index('ix_price_history_type', 'price_history', ['type'])


def downgrade():
    op.drop_table('price_history')
    op.drop_table('sales_order_items')
    op.drop_table('sales_orders')
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('products')
    op.drop_table('suppliers')
    op.drop_table('customers')
    op.drop_table('warehouses')
    op.drop_table('categories')
