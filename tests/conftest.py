import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import create_document, ensure_indexes
from main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        invoice_max_attempts=5,
    )


@pytest.fixture
def db():
    database = mongomock.MongoClient()["hypermart_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(settings, db):
    with TestClient(create_app(settings, db)) as c:
        yield c


@pytest.fixture
def admin_client(client):
    client.post("/auth/seed-admin", json={"username": "admin", "password": "secret"})
    resp = client.post("/auth/login", json={"username": "admin", "password": "secret"})
    client.headers["Authorization"] = f"Bearer {resp.json()['token']}"
    return client


@pytest.fixture
def add_product(db):
    def _add(name="Milk", category="Dairy", price=10000, stock=5, **extra):
        doc = {"name": name, "category": category, "price": price, "stock": stock,
               "description": None, "image_url": None}
        doc.update(extra)
        return create_document(db, "product", doc)
    return _add


@pytest.fixture
def add_discount(db):
    def _add(category="Dairy", percent=10, active=True):
        return create_document(db, "discount", {"category": category, "percent": percent, "active": active})
    return _add
