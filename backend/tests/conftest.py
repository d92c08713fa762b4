"""
Pytest fixtures for kasir backend tests.

Provides the application on an in-memory database, per-test table cleanup,
model factories, and a static QRIS payload built field by field.
"""

import pytest
from kasir import create_app
from kasir.extensions import db
from kasir.models import Product, Customer, PaymentSetting
from kasir import qris


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def make_product(db_session):
    """Factory: make_product(title, sell_price=..., buy_price=..., stock=...)."""
    def _make(title="Item", *, sell_price=10000, buy_price=6000, stock=10, barcode=None):
        product = Product(
            title=title,
            barcode=barcode,
            sell_price=sell_price,
            buy_price=buy_price,
            stock=stock,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Budi", phone="08123456789", address="Jl. Merdeka 1")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def example_cart(make_product):
    """The two products of the worked allocation example."""
    first = make_product("Kopi Bubuk", sell_price=10000, buy_price=6000, stock=5)
    second = make_product("Gula Pasir", sell_price=5000, buy_price=3000, stock=5)
    return first, second


def build_static_qris() -> str:
    fields = [
        ("00", "01"),
        ("01", "11"),
        ("26", "0010ID.CO.TEST0215ID1234567890123"),
        ("52", "5411"),
        ("53", "360"),
        ("58", "ID"),
        ("59", "TOKO KASIR"),
        ("60", "JAKARTA"),
        ("61", "12345"),
    ]
    body = qris.serialize(fields) + "6304"
    return body + qris.crc16(body)


@pytest.fixture(scope='session')
def static_qris():
    return build_static_qris()


@pytest.fixture(scope='function')
def qris_setting(db_session, static_qris):
    setting = PaymentSetting(default_gateway="qris", qris_enabled=True, qris_string=static_qris)
    db_session.add(setting)
    db_session.commit()
    return setting


@pytest.fixture(scope='function')
def midtrans_setting(db_session):
    setting = PaymentSetting(
        default_gateway="midtrans",
        midtrans_enabled=True,
        midtrans_server_key="SB-Mid-server-test",
        midtrans_client_key="SB-Mid-client-test",
    )
    db_session.add(setting)
    db_session.commit()
    return setting


@pytest.fixture
def cashier_headers():
    return {"X-Cashier-Id": "7"}
