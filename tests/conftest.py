"""Shared pytest fixtures for the storefront API tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config import Settings  # noqa: E402
from database import Database  # noqa: E402
from main import create_app  # noqa: E402
from models import Product, User  # noqa: E402
from security import create_access_token, get_password_hash  # noqa: E402

SECRET = "test-secret-key"


@pytest.fixture
def settings():
    return Settings(secret_key=SECRET, database_url="sqlite://", log_level="WARNING")


@pytest.fixture
def db(settings):
    """Fresh in-memory database with all tables created."""
    database = Database.from_url(settings.database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def app(settings, db):
    return create_app(settings, db)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def user(db):
    """Create a buyer with password ``secret123``."""
    with db.read_session() as session:
        buyer = User(
            name="Buyer",
            email="buyer@gmail.com",
            phone="08121234567",
            password_hash=get_password_hash("secret123"),
            role="buyer",
        )
        session.add(buyer)
        session.commit()
        return buyer


@pytest.fixture
def auth_headers(user):
    token = create_access_token(user.id, SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def products(db):
    """Seed two catalog rows."""
    with db.read_session() as session:
        rows = [
            Product(name="Widget", price=9.99, description="A widget", category="tools", stock=10),
            Product(name="Gadget", price=24.5, category="tools", stock=3),
        ]
        session.add_all(rows)
        session.commit()
        return rows
