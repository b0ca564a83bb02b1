import os
import tempfile
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# Ensure tests always use a throwaway SQLite file, set before careerhive reads its settings
_fd, _app_db_path = tempfile.mkstemp(prefix="careerhive_app_", suffix=".db")
os.close(_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_app_db_path}"

from careerhive.database import Base, get_db, use_unicode_lower
from careerhive.main import app, limiter
from careerhive.notifications import get_notification_queue
from careerhive.safe_browsing import get_link_checker


class FakeLinkChecker:
    def __init__(self):
        self.unsafe: set[str] = set()
        self.checked: list[str] = []

    def is_url_safe(self, url: str) -> bool:
        self.checked.append(url)
        return url not in self.unsafe


class RecordingQueue:
    """Stands in for the worker pool; keeps what would have been sent."""

    def __init__(self):
        self.calls = []

    def enqueue(self, job, recipients):
        self.calls.append((job, list(recipients)))
        return None


@pytest.fixture(scope="session")
def test_db_url():
    # Use a temporary SQLite file to persist across tests within a session
    db_fd, db_path = tempfile.mkstemp(prefix="test_careerhive_", suffix=".db")
    os.close(db_fd)
    url = f"sqlite:///{db_path}"
    yield url
    for path in (db_path, _app_db_path):
        try:
            os.remove(path)
        except (FileNotFoundError, PermissionError):
            pass


@pytest.fixture()
def db_session(test_db_url):
    engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    use_unicode_lower(engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    # Create all tables
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
    # Ensure file handles are released on Windows
    engine.dispose()


@pytest.fixture()
def link_checker():
    return FakeLinkChecker()


@pytest.fixture()
def notification_queue():
    return RecordingQueue()


@pytest.fixture()
def client(db_session, link_checker, notification_queue):
    # Override the dependency to use the test session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_link_checker] = lambda: link_checker
    app.dependency_overrides[get_notification_queue] = lambda: notification_queue
    # counters are in-process; start every test with a clean slate
    limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register_user(client, email="user@example.com", password="password123", full_name="Ada Lovelace"):
    return client.post(
        "/api/register", json={"email": email, "password": password, "fullName": full_name}
    )


def login_user(client, email="user@example.com", password="password123"):
    # FastAPI's OAuth2PasswordRequestForm expects form fields
    return client.post(
        "/api/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )


@pytest.fixture()
def make_user(client):
    """Register + log in; returns (auth headers, user id)."""

    def _make(email="user@example.com", full_name="Ada Lovelace", password="password123"):
        r = register_user(client, email=email, password=password, full_name=full_name)
        assert r.status_code == 201, r.text
        token = login_user(client, email=email, password=password).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}, r.json()["id"]

    return _make
