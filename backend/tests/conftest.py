"""
Pytest fixtures for PlatePOS backend tests.

Provides the in-memory test database, seeded staff accounts, product
factories and auth helpers.
"""

import pytest

from platepos import create_app
from platepos.extensions import db
from platepos.models import Product, User
from platepos.models.auth import ROLE_ADMIN, ROLE_SUPERADMIN
from platepos.services import session_service
from platepos.services.auth_service import hash_password, hash_pin
from platepos.services.stock_service import StockLine, compute_total_stock
from platepos.validation import SalePayload


PASSWORD = "Password123"
PIN = "1234"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RETRY_BACKOFF_SECONDS': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def secret_hashes():
    """bcrypt is slow on purpose; hash the shared test credentials once."""
    return {
        'password': hash_password(PASSWORD),
        'pin': hash_pin(PIN),
    }


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    db.session.rollback()


def _make_user(db_session, secret_hashes, username, role):
    user = User(
        username=username,
        role=role,
        password_hash=secret_hashes['password'],
        pin_hash=secret_hashes['pin'] if role == ROLE_ADMIN else None,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session, secret_hashes):
    """Counter admin (password + PIN)."""
    return _make_user(db_session, secret_hashes, "counter1", ROLE_ADMIN)


@pytest.fixture(scope='function')
def other_admin(db_session, secret_hashes):
    return _make_user(db_session, secret_hashes, "counter2", ROLE_ADMIN)


@pytest.fixture(scope='function')
def superadmin(db_session, secret_hashes):
    return _make_user(db_session, secret_hashes, "owner", ROLE_SUPERADMIN)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(full_stock=10, half_stock=5, is_solo=False, ...)."""
    def _make(name="Chicken Biryani", full_stock=10, half_stock=5, is_solo=False,
              full_price_cents=25000, half_price_cents=14000, **extra):
        if is_solo:
            half_stock = 0
            half_price_cents = None
        product = Product(
            name=name,
            is_solo=is_solo,
            full_price_cents=full_price_cents,
            half_price_cents=half_price_cents,
            full_stock=full_stock,
            half_stock=half_stock,
            total_stock=compute_total_stock(full_stock, half_stock, is_solo),
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def line(product, variant="full", quantity=1) -> StockLine:
    return StockLine(product_id=product.id, variant=variant, quantity=quantity)


def payload(*lines, total_cents=None, order_taker="Ravi") -> SalePayload:
    """Sale payload with the usual counter defaults."""
    return SalePayload(
        items=list(lines),
        total_cents=total_cents,
        payment_method="cash",
        order_type="dine-in",
        order_taker=order_taker,
    )


def stock_of(db_session, product_id: int) -> tuple[int, int, int]:
    """Fresh (full, half, total) straight from the database."""
    product = db_session.get(Product, product_id, populate_existing=True)
    return product.full_stock, product.half_stock, product.total_stock


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    """Issue a session directly, skipping the login round trip."""
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def superadmin_headers(superadmin):
    return headers_for(superadmin)
