"""
Shared fixtures: an in-memory SQLite database, a TestClient wired to it,
and small factories for accounts, listings and bearer headers.
"""
import os

# must be set before the app (and config.settings) is imported
os.environ["DB_URL"] = "sqlite://"
os.environ["ZUHAUSH_SEED_ADMIN"] = "0"
os.environ.setdefault("UPLOAD_DIR", "/tmp/zuhaush-test-uploads")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.db import get_db
from model import load_all_models
from model.base import Base
from model.property.property import Property
from src.admin_service import new_admin
from src.app import app
from src.auth_flows import new_account
from src.id_generator import generate_public_id
from src.token_service import generate_auth_tokens

load_all_models()

TEST_OTP = "123456"
PASSWORD = "secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ===================================================================
# Database / client
# ===================================================================

@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test."""
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def client(db_session):
    """TestClient whose requests run against the test database."""
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    """Every issued one-time code is TEST_OTP."""
    monkeypatch.setattr("src.otp_service.gen_otp_code", lambda: TEST_OTP)
    return TEST_OTP


# ===================================================================
# Factories
# ===================================================================

@pytest.fixture
def make_user(db_session):
    def _make(email="jane@example.com", password=PASSWORD, **fields):
        fields.setdefault("name", "Jane Doe")
        fields.setdefault("is_otp_verified", True)
        fields.setdefault("is_email_verified", True)
        user = new_account("user", email, password, **fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_builder(db_session):
    def _make(email="builder@example.com", password=PASSWORD, **fields):
        fields.setdefault("name", "Acme Homes")
        fields.setdefault("company", "Acme Homes Pvt Ltd")
        fields.setdefault("is_otp_verified", True)
        builder = new_account("builder", email, password, **fields)
        db_session.add(builder)
        db_session.commit()
        db_session.refresh(builder)
        return builder
    return _make


@pytest.fixture
def make_admin(db_session):
    def _make(email="admin@example.com", password="admin12345", role_name="super_admin", **kwargs):
        admin = new_admin(email, password, kwargs.pop("name", "Root Admin"), role_name=role_name, **kwargs)
        db_session.add(admin)
        db_session.commit()
        db_session.refresh(admin)
        return admin
    return _make


@pytest.fixture
def make_property(db_session):
    """Listings default to active and approved, i.e. publicly visible."""
    def _make(builder, **fields):
        values = dict(
            name="Sunrise Towers",
            type="apartment",
            bhk="2 BHK",
            area_value=1150,
            price_value=85,
            city="Pune",
            locality="Baner",
            status="active",
            admin_approved=True,
        )
        values.update(fields)
        prop = Property(public_id=generate_public_id("property"), builder_id=builder.id, **values)
        db_session.add(prop)
        db_session.commit()
        db_session.refresh(prop)
        return prop
    return _make


@pytest.fixture
def auth_header(db_session):
    """Bearer header for an account: auth_header("user", user)."""
    def _header(account_type, account, team_member=None):
        tokens = generate_auth_tokens(db_session, account_type, account, team_member=team_member)
        return {"Authorization": f"Bearer {tokens['access']['token']}"}
    return _header


# ===================================================================
# Ready-made accounts
# ===================================================================

@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def builder(make_builder):
    return make_builder()


@pytest.fixture
def admin(make_admin):
    return make_admin()


@pytest.fixture
def listing(make_property, builder):
    return make_property(builder)


@pytest.fixture
def user_headers(auth_header, user):
    return auth_header("user", user)


@pytest.fixture
def builder_headers(auth_header, builder):
    return auth_header("builder", builder)


@pytest.fixture
def admin_headers(auth_header, admin):
    return auth_header("admin", admin)
