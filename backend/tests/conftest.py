"""
Pytest fixtures for TripDesk backend tests.

Provides the in-memory database, staff users with different module sets,
a small catalog, and login helpers for staff and portal clients.
"""

from datetime import date

import pytest
from tripdesk import create_app
from tripdesk.extensions import db
from tripdesk.models import User, Client, ClientPrice, Product, Trip
from tripdesk.permissions import ALL_MODULES, ROLE_ADMIN, ROLE_GLOBAL_ADMIN
from tripdesk.services.auth_service import hash_password


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
        'SITE_URL': None,
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
    """Fresh data for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


def _make_user(db_session, username, role=ROLE_ADMIN, permissions=None, is_active=True):
    user = User(
        username=username,
        email=f"{username}@tripdesk.test",
        first_name=username.title(),
        last_name="",
        password_hash=hash_password(PASSWORD),
        role=role,
        permissions=list(permissions or []),
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def global_admin(db_session):
    return _make_user(db_session, "boss", role=ROLE_GLOBAL_ADMIN, permissions=list(ALL_MODULES))


@pytest.fixture(scope='function')
def orders_clerk(db_session):
    """Admin with only the orders module."""
    return _make_user(db_session, "clerk", permissions=["orders"])


@pytest.fixture(scope='function')
def make_user(db_session):
    def _factory(username, role=ROLE_ADMIN, permissions=None, is_active=True):
        return _make_user(db_session, username, role, permissions, is_active)
    return _factory


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get a staff token."""
    response = client.post('/api/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def get_client_token(client, cnpj: str) -> str:
    """Helper to get a client portal token."""
    response = client.post('/api/client/login', json={'cnpj': cnpj})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, global_admin):
    return auth_headers(get_auth_token(client, global_admin.username))


@pytest.fixture(scope='function')
def clerk_headers(client, orders_clerk):
    return auth_headers(get_auth_token(client, orders_clerk.username))


def make_client(db_session, cnpj="12.345.678/0001-90", trade_name="Loja Azul", is_active=True):
    c = Client(
        legal_name=f"{trade_name} LTDA",
        trade_name=trade_name,
        cnpj=cnpj,
        cnpj_digits="".join(ch for ch in cnpj if ch.isdigit()),
        street="Rua A",
        number="10",
        city="Recife",
        state="PE",
        phones="(81) 90000-0000",
        email=f"{trade_name.lower().replace(' ', '')}@shop.test",
        contact_person="Ana",
        is_active=is_active,
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def shop(db_session):
    """Active client with prices for sizes P and M (no price for G)."""
    c = make_client(db_session)
    db_session.add_all([
        ClientPrice(client_id=c.id, size="P", price="10.00"),
        ClientPrice(client_id=c.id, size="M", price="12.50"),
    ])
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def catalog(db_session):
    """Three active products (sizes P, M, G) and one inactive product."""
    products = [
        Product(name="Shirt", color="Black", size="P", is_active=True),
        Product(name="Shirt", color="Black", size="M", is_active=True),
        Product(name="Shirt", color="White", size="G", is_active=True),
        Product(name="Old Shirt", color="Red", size="P", is_active=False),
    ]
    db_session.add_all(products)
    db_session.commit()
    return products


@pytest.fixture(scope='function')
def trip(db_session):
    t = Trip(name="Trip 1", start_date=date(2024, 3, 1), status="open")
    db_session.add(t)
    db_session.commit()
    return t


@pytest.fixture(scope='function')
def shop_headers(client, shop):
    return auth_headers(get_client_token(client, shop.cnpj))
