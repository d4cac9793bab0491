"""
Shared fixtures: in-memory SQLite database, API client with the database
dependency overridden, account/admin factories and auth headers.
"""
import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal
from functools import lru_cache

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal.database import Base, get_db
from portal.main import app
from portal.models.admin import Admin, AdminRole
from portal.models.user import User, AccountDetails
from portal.utils.security import create_access_token, create_admin_token, get_password_hash

TEST_PASSWORD = "secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@lru_cache()
def password_hash() -> str:
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    # Requests share the test session so fixtures and assertions see the same data
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(wallet="0", unique_id=None, name=None, email=None, phone=None, is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            unique_id=unique_id or str(10000 + n),
            name=name or f"User {n}",
            email=email or f"user{n}@mail.com",
            phone=phone,
            password_hash=password_hash(),
            wallet=Decimal(str(wallet)),
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def add_account_details(db):
    def _add(user, **overrides):
        values = {
            "holder_name": user.name,
            "bank_name": "State Bank",
            "account_number": "000123456789",
            "ifsc": "SBIN0000001",
            "branch": "MG Road",
            "upi_id": None,
        }
        values.update(overrides)
        details = AccountDetails(user_id=user.id, **values)
        db.add(details)
        db.commit()
        db.refresh(user)
        return details

    return _add


@pytest.fixture
def make_admin(db):
    def _make_admin(role=AdminRole.ADMIN, email="admin@portal.io", is_active=True):
        admin = Admin(
            email=email,
            password_hash=password_hash(),
            name="Portal Admin",
            role=role,
            is_active=is_active,
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin

    return _make_admin


def user_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id), "name": user.name})
    return {"Authorization": f"Bearer {token}"}


def admin_headers(admin) -> dict:
    token = create_admin_token(admin.id, admin.email, admin.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return user_headers


@pytest.fixture
def admin_auth_headers():
    return admin_headers
