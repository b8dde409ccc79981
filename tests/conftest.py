"""
Pytest fixtures for IMS tests.

Provides the app with an in-memory database, per-test clean tables, a test
client, and small factories for catalog rows.
"""

from decimal import Decimal

import pytest

from ims import create_app
from ims.extensions import db
from ims.models import Category, Customer, Product, Supplier
from ims.services import stock_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOCK_NEGATIVE_POLICY': 'allow',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
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


@pytest.fixture
def stock_policy(app, monkeypatch):
    """Switch STOCK_NEGATIVE_POLICY for one test."""
    def _set(policy: str):
        monkeypatch.setitem(app.config, 'STOCK_NEGATIVE_POLICY', policy)
    return _set


@pytest.fixture
def make_product(db_session):
    def _make(name="Widget", stock=0, sku=None, cost_price="5.00", selling_price="20.00", category=None):
        product = Product(
            name=name,
            sku=sku,
            cost_price=Decimal(cost_price),
            selling_price=Decimal(selling_price),
            stock_quantity=stock,
            category_id=category.id if category else None,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_category(db_session):
    def _make(name="General"):
        category = Category(name=name)
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture
def supplier(db_session):
    """Create a supplier."""
    supplier = Supplier(name="Acme Supply", contact_person="Pat", email="pat@acme.example")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture
def customer(db_session):
    """Create a customer."""
    customer = Customer(name="Corner Shop", address="1 Main Street")
    db_session.add(customer)
    db_session.commit()
    return customer


def stock_of(product) -> int:
    """Read the stored counter, bypassing any stale ORM state."""
    product_id = product if isinstance(product, int) else product.id
    return stock_service.get_stock_quantity(product_id)


def line(product, quantity, unit_price="5.00") -> dict:
    return {"product_id": product.id, "quantity": quantity, "unit_price": unit_price}
