import pytest
from fastapi.testclient import TestClient

from config import Settings, get_settings
from database import get_db
from main import app
from tests.fakes import FakeDatabase


@pytest.fixture
def db():
    return FakeDatabase()


def _client(db, **settings_overrides):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: Settings(**settings_overrides)
    return TestClient(app)


@pytest.fixture
def client(db):
    """Client with the auth guard switched off."""
    yield _client(db, require_auth=False)
    app.dependency_overrides.clear()


@pytest.fixture
def strict_client(db):
    yield _client(db, require_auth=False, strict_status_transitions=True)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(db):
    """Client with the auth guard on; not signed in yet."""
    yield _client(db, require_auth=True)
    app.dependency_overrides.clear()


@pytest.fixture
def products(db):
    """Three catalog products, returned as {name: id}."""
    ids = {}
    for name, sku, price in [("Desk", "DSK-1", 10.0), ("Chair", "CHR-1", 5.0), ("Lamp", "LMP-1", 2.5)]:
        result = db["product"].insert_one({
            "name": name, "sku": sku, "category": "Furniture",
            "price": price, "stock": 10, "active": True,
        })
        ids[name] = str(result.inserted_id)
    return ids
