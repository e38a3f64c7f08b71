"""
Shared fixtures.

The app runs against an in-memory SQLite database that is rebuilt for
every test.
"""

import os

os.environ["EXPENSE_TRACKER_DATABASE_URL"] = "sqlite://"
os.environ["EXPENSE_TRACKER_SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient

from auth import hash_password
from database import Base, SessionLocal, engine, User
from main import app


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    """Insert a user directly, bypassing the HTTP layer."""
    def _make(username="ann", email="a@x.com", password="secret1"):
        user = User(username=username, email=email, password_hash=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def register(client):
    def _register(username="ann", email="a@x.com", password="secret1"):
        return client.post(
            "/auth/register",
            json={
                "username": username,
                "email": email,
                "password": password,
                "confirmPassword": password,
            },
        )

    return _register


@pytest.fixture
def auth_headers(register):
    response = register()
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
