"""
Pytest fixtures for Nimble backend tests.

Provides the application on an in-memory SQLite database, a per-test clean
session, a test client and a small catalog (warehouse, category, supplier,
customer, two products).
"""

from decimal import Decimal

import pytest

from nimble import create_app
from nimble.extensions import db
from nimble.models import Category, Customer, Product, Supplier, Warehouse


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_OVERSELL': False,
        'LOW_STOCK_THRESHOLD': 5,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def allow_oversell(app):
    """Enable ALLOW_OVERSELL for one test."""
    app.config['ALLOW_OVERSELL'] = True
    yield
    app.config['ALLOW_OVERSELL'] = False


@pytest.fixture(scope='function')
def warehouse(db_session):
    warehouse = Warehouse(name="Depósito Central", code="DEP-01")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Informática")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Distribuidora Tech", email="ventas@distribuidoratech.com")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Empresa ABC S.A.", phone="+54 11 1234-5678")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product(db_session, warehouse, category):
    """Laptop: bought at 500, sold at 700, 15 in stock."""
    product = Product(
        name="Laptop HP ProBook",
        warehouse_id=warehouse.id,
        category_id=category.id,
        last_purchase_price=Decimal("500"),
        selling_price=Decimal("700"),
        stock=15,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_b(db_session, warehouse):
    """Keyboard: bought at 30, sold at 42, 40 in stock."""
    product = Product(
        name="Teclado Logitech K380",
        warehouse_id=warehouse.id,
        last_purchase_price=Decimal("30"),
        selling_price=Decimal("42"),
        stock=40,
    )
    db_session.add(product)
    db_session.commit()
    return product
