"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from tests.test_constants import (
    TEST_INTERNAL_SERVICE_TOKEN,
    TEST_PASSWORD,
    TEST_PUBLIC_BASE_URL,
    TEST_SECRET_KEY,
)

# Force an in-memory database when pytest runs; don't inherit from .env
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["PUBLIC_BASE_URL"] = TEST_PUBLIC_BASE_URL
os.environ.setdefault("SECRET_KEY", TEST_SECRET_KEY)
os.environ.setdefault("INTERNAL_SERVICE_TOKEN", TEST_INTERNAL_SERVICE_TOKEN)


class RecordingMailer:
    """Mailer that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})

    def last_to(self, email: str) -> dict:
        return [m for m in self.sent if m["to"] == email][-1]


@pytest.fixture
def db() -> Session:
    """Fresh in-memory database per test, created from model metadata."""
    from workspace_admin import models  # noqa: F401
    from workspace_admin.db.session import Base

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def provider(db: Session, mailer: RecordingMailer):
    from workspace_admin.services.identity_provider import LocalIdentityProvider

    return LocalIdentityProvider(db, mailer)


@pytest.fixture
def make_user(db: Session):
    """Factory creating a user directly in the identity store."""
    from datetime import UTC, datetime

    from workspace_admin.models import User, UserRole

    def _make(
        email: str,
        password: str = TEST_PASSWORD,
        *,
        confirmed: bool = True,
        superadmin: bool = False,
    ) -> User:
        user = User(email=email.lower(), user_metadata={})
        user.set_password(password)
        if confirmed:
            user.email_confirmed_at = datetime.now(UTC)
        db.add(user)
        db.flush()
        if superadmin:
            db.add(UserRole(user_id=user.id, role="superadmin"))
        db.commit()
        return user

    return _make


@pytest.fixture
def make_workspace(db: Session):
    """Factory creating a workspace, optionally with an admin member."""
    from workspace_admin.models import Workspace, WorkspaceMember

    def _make(name: str = "Acme", *, admin=None, **flags) -> Workspace:
        workspace = Workspace(name=name, **flags)
        db.add(workspace)
        db.flush()
        if admin is not None:
            db.add(WorkspaceMember(workspace_id=workspace.id, user_id=admin.id, role="admin"))
        db.commit()
        return workspace

    return _make


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from workspace_admin.main import app

    return TestClient(app)


@pytest.fixture
def client_with_db(db: Session, mailer: RecordingMailer) -> TestClient:
    """TestClient with get_db and get_mailer overridden to use the test fixtures."""
    from workspace_admin.db.session import get_db
    from workspace_admin.main import app
    from workspace_admin.services.email_service import get_mailer

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    c = TestClient(app)
    yield c
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture
def auth_headers():
    """Return a function building a Bearer header for a user."""
    from workspace_admin.services.auth import create_access_token

    def _headers(user) -> dict[str, str]:
        token = create_access_token(data={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
