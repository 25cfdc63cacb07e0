"""
Pytest fixtures for the backend tests.

Provides an in-memory application, a per-test clean database, and ready-made
admin / employee / product rows.
"""

import pytest
from boekkhuen import create_app
from boekkhuen.extensions import db
from boekkhuen.models import User, Product, ProductPrice, StockLevel
from boekkhuen.models.users import ROLE_ADMIN, ROLE_EMPLOYEE
from boekkhuen.principal import Principal


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ENFORCE_CREDIT_LIMIT': False,
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
        app.config['ENFORCE_CREDIT_LIMIT'] = False


@pytest.fixture(scope='function')
def admin(db_session):
    user = User(username="admin", name="Admin", role=ROLE_ADMIN, price_tier="NORMAL", credit_limit_cents=0)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def employee(db_session):
    """Employee on the NORMAL tier with a 5,000 baht credit limit."""
    user = User(
        username="somchai",
        name="Somchai",
        role=ROLE_EMPLOYEE,
        price_tier="NORMAL",
        credit_limit_cents=500_000,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_employee(db_session):
    user = User(
        username="malee",
        name="Malee",
        role=ROLE_EMPLOYEE,
        price_tier="AGENT",
        credit_limit_cents=100_000,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(session, name: str, prices: dict, stock: int | None = 0,
                 is_active: bool = True, reorder_point: int = 10) -> Product:
    """Product with one price row per tier in prices and an optional stock row."""
    product = Product(name=name, category="main", is_active=is_active)
    product.prices = [ProductPrice(tier=tier, price_cents=cents) for tier, cents in prices.items()]
    session.add(product)
    session.flush()
    if stock is not None:
        session.add(StockLevel(product_id=product.id, current_stock=stock, reorder_point=reorder_point))
    session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session):
    """Product P: 20 in stock, 50 baht on the NORMAL tier."""
    return make_product(
        db_session,
        "Drinking water",
        {"NORMAL": 5000, "AGENT": 4500, "EMPLOYEE": 4000, "SPECIAL": 3500},
        stock=20,
    )


@pytest.fixture(scope='function')
def second_product(db_session):
    return make_product(db_session, "Instant noodles", {"NORMAL": 700, "AGENT": 650}, stock=50)


@pytest.fixture(scope='function')
def admin_principal(admin):
    return Principal(user_id=admin.id, role=ROLE_ADMIN, price_tier=admin.price_tier, request_id="test-admin")


@pytest.fixture(scope='function')
def employee_principal(employee):
    return Principal(user_id=employee.id, role=ROLE_EMPLOYEE, price_tier=employee.price_tier,
                     request_id="test-employee")


def user_headers(user) -> dict:
    """Headers the upstream gateway forwards for an authenticated user."""
    return {'X-User-Id': str(user.id), 'X-Request-Id': f'req-{user.id}'}
