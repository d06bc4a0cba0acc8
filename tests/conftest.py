import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from kvstore import MemoryKV
from main import app, get_db
from schemas import Product
from storage import LocalStorage, RemoteStorage

ADMIN_EMAIL = "admin@motovibe.com"
ADMIN_PASSWORD = "admin"


@pytest.fixture
def mongo():
    return mongomock.MongoClient()["motovibe_test"]


@pytest.fixture
def client(mongo):
    app.dependency_overrides[get_db] = lambda: mongo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(mongo):
    database.ensure_admin(database=mongo)
    return mongo["user"].find_one({"email": ADMIN_EMAIL})


@pytest.fixture
def admin_headers(admin):
    return {"X-User-Id": admin["_id"]}


@pytest.fixture
def seeded(client, admin_headers):
    resp = client.post("/api/products/seed", json={}, headers=admin_headers)
    assert resp.status_code == 200
    return client


@pytest.fixture
def remote(client):
    return RemoteStorage(TestClient(app, base_url="http://testserver/api"))


@pytest.fixture
def local():
    return LocalStorage(MemoryKV(), admin_email=ADMIN_EMAIL, admin_password=ADMIN_PASSWORD)


def make_product(pid, name, price, stock=10, category="Kask"):
    return Product(id=pid, name=name, price=price, category=category, stock=stock,
                   image=f"https://img.example/{pid}.jpg")
