"""
Pytest fixtures for Stockroom backend tests.

Provides test database setup, users with roles, and an authenticated test client.
"""

import pytest
from sqlalchemy.orm import Session

from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Product
from stockroom.services import auth_service, session_service, role_store


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SESSION_COOKIE_SECURE': False,
    'STORE_STATEMENT_TIMEOUT_MS': 0,
}

PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost keeps the suite fast."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
def file_app(tmp_path):
    """
    Application over a file-backed SQLite database.

    Independent Session objects get their own connections here, which an
    in-memory database cannot offer.
    """
    config = dict(TEST_CONFIG)
    config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{tmp_path / 'stockroom.sqlite3'}"
    app = create_app(config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create an admin user."""
    return auth_service.register_user(
        db_session,
        name="Admin",
        email="admin@example.com",
        password=PASSWORD,
        role=role_store.ADMIN_ROLE,
    )


@pytest.fixture(scope='function')
def regular_user(db_session):
    """Create a user without a Role Store row (default role)."""
    return auth_service.register_user(
        db_session,
        name="Clerk",
        email="clerk@example.com",
        password=PASSWORD,
    )


@pytest.fixture(scope='function')
def admin_token(db_session, admin_user):
    _, token = session_service.create_session(db_session, admin_user.id)
    return token


@pytest.fixture(scope='function')
def user_token(db_session, regular_user):
    _, token = session_service.create_session(db_session, regular_user.id)
    return token


@pytest.fixture(scope='function')
def product(db_session):
    """Create a product with 10 units on hand."""
    item = Product(name="Widget", description="Blue widget", quantity=10, initial_quantity=10)
    db_session.add(item)
    db_session.commit()
    return item


def make_session(app) -> Session:
    """A Session of its own, outside the request-scoped db.session."""
    with app.app_context():
        return Session(db.engine)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
