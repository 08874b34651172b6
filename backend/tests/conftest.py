"""
Pytest fixtures for shopfloor backend tests.

Provides test database setup, model factories, and test client.
"""

import pytest

from shopfloor import create_app
from shopfloor.extensions import db
from shopfloor.models import Product, Store, User, VatRate
from shopfloor.services.blob_storage import BlobStorage


TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
}


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    config = dict(TEST_CONFIG)
    config['BLOB_CONTAINER_DIR'] = str(tmp_path_factory.mktemp('blobs'))
    app = create_app(config)

    with app.app_context():
        db.create_all()
        BlobStorage.from_app().provision()
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
def make_product(db_session):
    """Factory: make_product(code="A1", quantity=10, price_cents=500, ...)."""
    counter = {'n': 0}

    def _make(code=None, name=None, quantity=10, price_cents=500, critical_quantity=0, **extra):
        counter['n'] += 1
        product = Product(
            code=code or f"P-{counter['n']:03d}",
            name=name or f"Product {counter['n']}",
            quantity=quantity,
            critical_quantity=critical_quantity,
            price_cents=price_cents,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product_a1(make_product):
    """{code A1, quantity 10, price 5.00}"""
    return make_product(code="A1", name="Widget", quantity=10, price_cents=500)


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(location=101)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def user(db_session):
    user = User(email="cashier@shop.local", name="Cashier", role="cashier", password_hash="x")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def vat_20(db_session):
    from datetime import date
    rate = VatRate(effective_date=date(2020, 1, 1), rate_bps=2000)
    db_session.add(rate)
    db_session.commit()
    return rate
