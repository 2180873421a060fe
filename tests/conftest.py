import os

os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-bytes-for-hs256"

import pytest
from fastapi.testclient import TestClient

from main import create_app
from repository import InMemoryRepository

SEEDED_CATEGORIES = [
    ("income", "Paycheck"),
    ("income", "Refund"),
    ("expense", "Groceries"),
    ("expense", "Home"),
]

PASSWORD = "pass12345"


@pytest.fixture
def repo():
    repo = InMemoryRepository()
    for type_, name in SEEDED_CATEGORIES:
        repo.get_or_create_category(type_, name)
    return repo


@pytest.fixture
def client(repo):
    return TestClient(create_app(repo))


@pytest.fixture
def register(client):
    def _register(username="john", email="john@budget.com", password=PASSWORD):
        return client.post("/user/register", json={"username": username, "email": email, "password": password})
    return _register


@pytest.fixture
def token(register):
    res = register()
    assert res.status_code == 200
    return res.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
