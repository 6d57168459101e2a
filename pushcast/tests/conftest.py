"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB. No real Postgres is needed.
"""

import os

# Set env vars BEFORE any pushcast module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-chars-long!!"
os.environ["ALGORITHM"] = "HS256"
os.environ["VAPID_PUBLIC_KEY"] = "BEl62iUYgUivxIkv69yViEuiBIa-Ib27SaChinoQHsdim6AFgWhZYjg0HrJjB5c6WNS73EOZdI0bUPLJGYCnO0w"
os.environ["VAPID_PRIVATE_KEY"] = "test-vapid-private-key"

import threading  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from pywebpush import WebPushException  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# Import pushcast modules AFTER env vars are set
from pushcast.config import settings  # noqa: E402
from pushcast.database import Base, get_db  # noqa: E402
from pushcast.main import app  # noqa: E402
from pushcast.models.user import User  # noqa: E402
from pushcast.services import auth_service  # noqa: E402

# Single shared in-memory SQLite engine. StaticPool ensures all
# connections share the same DB instance.
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def create_user(db: Session, email="member@example.com", is_admin=False) -> User:
    user = User(email=email, home_server=settings.SERVER_DOMAIN, is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = auth_service.create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


def make_descriptor(n: int = 1) -> dict:
    return {
        "endpoint": f"https://push.example.com/send/device-{n}",
        "expirationTime": None,
        "keys": {"p256dh": f"client-public-key-{n}", "auth": f"auth-secret-{n}"},
    }


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.text = f"HTTP {status_code}"


class FakeSender:
    """Stands in for pywebpush.webpush. Thread-safe; records every call."""

    def __init__(self, fail_status: dict[str, int] | None = None):
        self.fail_status = fail_status or {}
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def __call__(self, **kwargs):
        with self._lock:
            self.calls.append(kwargs)
        status = self.fail_status.get(kwargs["subscription_info"]["endpoint"])
        if status is not None:
            raise WebPushException("Push failed", response=FakeResponse(status))

    @property
    def endpoints(self) -> set[str]:
        return {call["subscription_info"]["endpoint"] for call in self.calls}
