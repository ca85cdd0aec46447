"""
Pytest configuration and fixtures
"""
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set test environment variables before importing
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-classmate-hub-tests-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing in tests
os.environ["STORAGE_PROVIDER"] = "local"
os.environ["STORAGE_PATH"] = tempfile.mkdtemp(prefix="classmate-hub-media-")
os.environ["CORS_ORIGINS"] = "http://localhost:3000"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce log noise in tests
os.environ.pop("GOOGLE_CLIENT_ID", None)
os.environ.pop("GOOGLE_CLIENT_SECRET", None)
os.environ.pop("SMTP_HOST", None)

# Import after setting env vars
from classmate_hub.api_server import create_app
from classmate_hub.auth import get_password_hash
from classmate_hub.config import Config
from classmate_hub.db import Base, Database, User, UserRole
from classmate_hub.services.email_provider import EmailProvider
from classmate_hub.services.storage_provider import LocalDiskImageHost

TEST_PASSWORD = "Passw0rd1"


@pytest.fixture
def settings():
    return Config()


@pytest.fixture
def database():
    """In-memory SQLite database with the full schema"""
    db = Database("sqlite://")
    Base.metadata.create_all(bind=db.engine)
    yield db
    db.shutdown()


@pytest.fixture
def db_session(database):
    """A database session for service-level tests"""
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def email_provider():
    """Email provider that accepts every message"""
    provider = MagicMock(spec=EmailProvider)
    provider.send.return_value = True
    provider.is_available.return_value = True
    return provider


@pytest.fixture
def image_host(tmp_path):
    return LocalDiskImageHost(base_path=str(tmp_path / "media"), base_url="http://testserver")


@pytest.fixture
def google_sso():
    """No Google client by default; OAuth tests override this fixture"""
    return None


@pytest.fixture
def app(settings, database, email_provider, image_host, google_sso):
    return create_app(
        settings=settings,
        database=database,
        email_provider=email_provider,
        image_host=image_host,
        google_sso=google_sso,
    )


@pytest.fixture
def client(app):
    """Create test client"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(database):
    """Factory that stores a user and returns a detached copy"""
    counter = {"n": 0}

    def _make(
        email=None,
        password=TEST_PASSWORD,
        name="Test Student",
        role=UserRole.STUDENT,
        email_verified=True,
        is_active=True,
        google_id=None,
        course_name="ADBS",
        city="London",
        country="UK",
        **extra,
    ):
        counter["n"] += 1
        session = database.session()
        try:
            user = User(
                email=email or f"student{counter['n']}@example.com",
                hashed_password=get_password_hash(password) if password else None,
                name=name,
                role=role,
                email_verified=email_verified,
                is_active=is_active,
                google_id=google_id,
                course_name=course_name,
                city=city,
                country=country,
                **extra,
            )
            user.refresh_profile_completed()
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
        finally:
            session.close()
        return user

    return _make


@pytest.fixture
def fetch_user(database):
    """Read the current stored state of a user by email"""
    def _fetch(email):
        session = database.session()
        try:
            user = session.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()
            if user is not None:
                session.expunge(user)
            return user
        finally:
            session.close()

    return _fetch


@pytest.fixture
def auth_headers(app):
    """Build Authorization headers carrying a fresh session for a user"""
    def _headers(user):
        session = app.state.session_builder.mint(user)
        return {"Authorization": f"Bearer {session.token}"}

    return _headers


@pytest.fixture
def test_user(make_user):
    """A verified, active student"""
    return make_user(email="test@example.com", name="Test User")
