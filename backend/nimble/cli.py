# Overview: Flask CLI command groups for bootstrap, demo data and inspection.

# backend/nimble/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="nimble:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Load demo products, customers, suppliers, one open purchase order and one sale.
#
# Product inspection:
# - python -m flask products list [--low-stock]
#   List products with stock and prices.
# - python -m flask products history 1
#   Show a product's price history, newest first.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import catalog_service, price_history_service, products_service
from .services.purchase_order_service import create_purchase_order
from .services.sales_order_service import create_sales_order


DEMO_PRODUCTS = [
    ("Laptop HP ProBook", "Laptop profesional para trabajo de oficina", "500", "700", 15),
    ('Monitor 24" Samsung', "Monitor LED de 24 pulgadas Full HD", "120", "168", 25),
    ("Teclado Logitech K380", "Teclado inalámbrico compacto", "30", "42", 40),
    ("Mouse Óptico Dell", "Mouse ergonómico con cable USB", "15", "21", 50),
]

DEMO_CUSTOMERS = [
    {
        "name": "Empresa ABC S.A.",
        "address": "Calle Principal 123, Ciudad",
        "phone": "+54 11 1234-5678",
        "email": "contacto@empresaabc.com",
    },
    {
        "name": "Comercial XYZ",
        "address": "Av. Central 456, Ciudad",
        "phone": "+54 11 8765-4321",
        "email": "ventas@comercialxyz.com",
    },
]

DEMO_SUPPLIERS = [
    {
        "name": "Distribuidora Tech",
        "address": "Calle Industrial 789, Ciudad",
        "phone": "+54 11 2468-1357",
        "email": "ventas@distribuidoratech.com",
        "website": "www.distribuidoratech.com",
    },
    {
        "name": "Importadora Global",
        "address": "Av. Comercio 321, Ciudad",
        "phone": "+54 11 1357-2468",
        "email": "info@importadoraglobal.com",
        "website": "www.importadoraglobal.com",
    },
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the model metadata."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for demo data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load demo data. Skipped when products already exist."""
    if db.session.query(Product).count():
        click.echo("SKIP Products already exist; demo data not loaded.")
        return

    warehouse = catalog_service.create_entity(
        "warehouses", patch={"name": "Depósito Central", "code": "DEP-01"}
    )
    category = catalog_service.create_entity(
        "categories", patch={"name": "Informática", "description": "Equipos y periféricos"}
    )

    products = []
    for name, description, purchase, selling, stock in DEMO_PRODUCTS:
        products.append(products_service.create_product(patch={
            "name": name,
            "description": description,
            "warehouse_id": warehouse.id,
            "category_id": category.id,
            "last_purchase_price": Decimal(purchase),
            "selling_price": Decimal(selling),
            "stock": stock,
        }))
    click.echo(f"PASS Created {len(products)} products")

    customers = [catalog_service.create_entity("customers", patch=c) for c in DEMO_CUSTOMERS]
    suppliers = [catalog_service.create_entity("suppliers", patch=s) for s in DEMO_SUPPLIERS]
    click.echo(f"PASS Created {len(customers)} customers, {len(suppliers)} suppliers")

    order = create_purchase_order(
        supplier_id=suppliers[0].id,
        shipping_cost="50",
        items=[
            {"product_id": products[0].id, "quantity": 5, "unit_price": "500"},
            {"product_id": products[2].id, "quantity": 10, "unit_price": "20"},
        ],
    )
    click.echo(f"PASS Created purchase order #{order.id} (ORDERED, total {order.total})")

    sale = create_sales_order(
        customer_id=customers[0].id,
        items=[
            {"product_id": products[0].id, "quantity": 2, "unit_price": "700"},
            {"product_id": products[3].id, "quantity": 5, "unit_price": "21"},
            {"product_id": products[2].id, "quantity": 2, "unit_price": "42"},
        ],
    )
    click.echo(f"PASS Created sales order #{sale.id} (total {sale.total})")


@click.group('products')
def products_group():
    """Product inspection commands."""


@products_group.command('list')
@click.option('--low-stock', is_flag=True, help='Only products at or below LOW_STOCK_THRESHOLD')
@with_appcontext
def list_products_cli(low_stock):
    """List products with stock and prices."""
    result = products_service.list_products(low_stock=low_stock)

    if not result["items"]:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<35} {'Stock':>7} {'Purchase':>12} {'Selling':>12}")
    click.echo("=" * 90)
    for p in result["items"]:
        click.echo(
            f"{p['id']:<5} {p['name'][:35]:<35} {p['stock']:>7} "
            f"{p['last_purchase_price']:>12} {p['selling_price']:>12}"
        )
    click.echo("=" * 90 + "\n")


@products_group.command('history')
@click.argument('product_id', type=int)
@with_appcontext
def product_history_cli(product_id):
    """Show a product's price history, newest first."""
    product = db.session.get(Product, product_id)
    if product is None:
        click.echo(f"FAIL Product {product_id} not found")
        return

    entries = price_history_service.get_by_product_id(product_id)
    click.echo(f"\nPrice history for {product.name} (ID: {product.id})")
    if not entries:
        click.echo("  (no entries)")
        return
    for entry in entries:
        data = entry.to_dict()
        source = f"{entry.source_type} #{entry.source_id}" if entry.source_type else "-"
        click.echo(f"  {data['occurred_at']}  {entry.type:<9} {data['price']:>12}  {source}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
