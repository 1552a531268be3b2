"""
Pytest fixtures for StockDesk backend tests.

Provides test database setup, catalog factories, and test client.
"""

from decimal import Decimal

import pytest
from stockdesk import create_app
from stockdesk.extensions import db
from stockdesk.models import Product, Variant


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'AUTH_DISABLED': True,
        'API_TOKENS': {},
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
        db.session.rollback()

        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for products with variants.

    Variants are given as dicts with keys name, sku, cost, price, stock and
    optionally threshold.
    """
    def _make(name="Brake Pad Set", variants=None, category="Brakes", brand="Bosch", supplier="PartsCo"):
        if variants is None:
            variants = [{"name": "Front", "sku": f"{name[:3].upper()}-F", "cost": "10.00", "price": "15.00", "stock": 10}]
        product = Product(name=name, category=category, brand=brand, supplier=supplier)
        product.variants = [
            Variant(
                name=v["name"],
                sku=v["sku"],
                cost_price=Decimal(str(v["cost"])),
                selling_price=Decimal(str(v["price"])),
                current_stock=v["stock"],
                low_stock_threshold=v.get("threshold", 5),
            )
            for v in variants
        ]
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def brake_pads(make_product):
    """Product with two variants: Front (stock 10) and Rear (stock 8)."""
    return make_product(
        name="Brake Pad Set",
        variants=[
            {"name": "Front", "sku": "BP-FRONT", "cost": "10.00", "price": "15.00", "stock": 10},
            {"name": "Rear", "sku": "BP-REAR", "cost": "8.00", "price": "12.50", "stock": 8},
        ],
    )


@pytest.fixture(scope='function')
def oil_filter(make_product):
    return make_product(
        name="Oil Filter",
        category="Filters",
        brand="Mann",
        supplier="FilterHub",
        variants=[
            {"name": "Standard", "sku": "OF-STD", "cost": "4.00", "price": "7.00", "stock": 3},
        ],
    )


def variant_stock(product_id: int, name: str) -> int:
    """Helper to read committed stock for a variant."""
    db.session.expire_all()
    variant = db.session.query(Variant).filter_by(product_id=product_id, name=name).one()
    return variant.current_stock


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
