"""Pytest configuration and shared fixtures."""

import os

# Settings are read once and cached, so the environment must be in place
# before anything from templeadmin is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from templeadmin.api.deps import get_db
from templeadmin.api.main import create_app
from templeadmin.db.base import Base
import templeadmin.db.models  # noqa: F401

from tests.factories import auth_headers, create_temple, create_user


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """A fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(db_session):
    application = create_app()

    def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app):
    # Not used as a context manager: the lifespan would create tables on the
    # module-level engine instead of the test one.
    return TestClient(app)


@pytest.fixture
def temple(db_session):
    return create_temple(db_session, name="Sri Ganesh Temple")


@pytest.fixture
def superadmin(db_session, temple):
    return create_user(db_session, temple=temple, role="superadmin", username="root")


@pytest.fixture
def superadmin_headers(superadmin):
    return auth_headers(superadmin)


@pytest.fixture
def admin(db_session, temple):
    return create_user(db_session, temple=temple, role="admin", username="office")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)
