# tests/conftest.py

import os

# Settings are read once at import time, so the test environment has to be in
# place before anything under app/ is imported.
os.environ["ENV"] = "local"
os.environ["DATABASE_URL_LOCAL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["FRONTEND_URL"] = "https://fundraise.example.org"
os.environ["EMAIL_EVENTS_WEBHOOK_SECRET"] = ""
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api import deps
from app.models import Base


# --- Test Database Setup ---
# One in-memory SQLite database shared by every connection in the process.
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(db):
    """
    Provides a TestClient wired to the per-test database. Authentication is
    real: tests send JWTs built with tests.utils.auth.
    """

    def override_get_db():
        yield db

    app.dependency_overrides[deps.get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
