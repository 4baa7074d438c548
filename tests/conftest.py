import asyncio
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from auth import insert_user, token_for
from database import get_db
from main import app


@pytest.fixture
def db():
    # fresh in-memory database per test
    return AsyncMongoMockClient()["library_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a stored user and hand back its id and auth headers."""
    counter = {"n": 0}

    def _make(role="user", name=None, password="secret123"):
        counter["n"] += 1
        name = name or f"{role.title()} {counter['n']}"
        email = f"{role}{counter['n']}@example.com"
        user = asyncio.run(insert_user(db, name, email, password, role))
        return {
            "id": str(user["_id"]),
            "email": email,
            "password": password,
            "headers": {"Authorization": f"Bearer {token_for(user)}"},
        }

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def reader(make_user):
    return make_user("user")
