"""
Pytest fixtures for the shop backend tests.

Provides test database setup, shop/user/product fixtures, and test client.
"""

import os
import tempfile

import pytest
from app import create_app
from app.extensions import db
from app.models import Shop, User, PointConfig
from app.services import products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def file_app():
    """
    App on a file-backed SQLite database so every thread gets its own
    connection. Used by the concurrency tests.
    """
    tmpdir = tempfile.TemporaryDirectory()
    db_path = os.path.join(tmpdir.name, "concurrency.db")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"check_same_thread": False, "timeout": 30}},
        'LOG_LEVEL': 'WARNING',
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
    tmpdir.cleanup()


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
        app.config['LOYALTY_REDEEM_ON_SALE'] = False

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def shop_a(db_session):
    """Create Shop A (first tenant)."""
    shop = Shop(name="Shop A - Main Street", code="SHOPA", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def shop_b(db_session):
    """Create Shop B (second tenant)."""
    shop = Shop(name="Shop B - Harbor", code="SHOPB", is_active=True)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def user_a(db_session, shop_a):
    """Create salesman in Shop A."""
    user = User(shop_id=shop_a.id, username="sales_a", name="Alice Seller", phone="0100")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_b(db_session, shop_b):
    """Create salesman in Shop B."""
    user = User(shop_id=shop_b.id, username="sales_b", name="Bob Seller", phone="0200")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def product_a(db_session, shop_a, user_a):
    """Product in Shop A with 10 units in stock."""
    created = products_service.create_product(
        shop_a.id,
        {
            "name": "Phone Case",
            "sku": "CASE-001",
            "quantity": 10,
            "purchase_price_cents": 300,
            "sale_price_cents": 500,
            "category": {"id": 1, "name": "Accessories"},
        },
        user_id=user_a.id,
    )
    return created[0]


@pytest.fixture(scope='function')
def product_b(db_session, shop_b):
    """Product in Shop B with 5 units in stock."""
    created = products_service.create_product(
        shop_b.id,
        {"name": "Charger", "sku": "CHG-001", "quantity": 5, "sale_price_cents": 1500},
    )
    return created[0]


@pytest.fixture(scope='function')
def point_config_a(db_session, shop_a):
    """Shop A credits 10% of the total as points."""
    config = PointConfig(shop_id=shop_a.id, point_amount=10, point_value=100)
    db_session.add(config)
    db_session.commit()
    return config


def actor_headers(user) -> dict:
    """Helper to create actor headers for a user."""
    return {'X-User-Id': str(user.id)}
