import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

SHIRT = {
    "title": "Shirt",
    "category": "men",
    "description": "d",
    "oldPrice": 20,
    "newPrice": 15,
    "image": "x.jpg",
}


@pytest.fixture
def db():
    return mongomock.MongoClient()["clothing_store_test"]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        public_url="http://testserver",
        upload_dir=str(tmp_path / "uploads"),
        bcrypt_rounds=4,
    )


@pytest.fixture
def app(settings, db):
    return create_app(settings, db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def bearer():
    def _bearer(token):
        return {"Authorization": f"Bearer {token}"}
    return _bearer


@pytest.fixture
def register(client):
    def _register(email="ann@example.com", role="customer", name="Ann", password="secret123"):
        res = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        assert res.status_code == 200, res.text
        return res.json()
    return _register


@pytest.fixture
def add_product(client):
    def _add(**overrides):
        res = client.post("/addproduct", json={**SHIRT, **overrides})
        assert res.status_code == 200, res.text
        return res.json()["product"]
    return _add
