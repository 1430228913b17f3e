"""
Shared fixtures: an in-memory SQLite database, a recording mailer and a TestClient.
"""

import os

# Settings are read once at import time, so the environment is fixed first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["MAIL_API_URL"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["ENVIRONMENT"] = "test"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from labsite.infrastructure import database
from labsite.infrastructure.database import Base, get_db
from labsite.infrastructure.mailer import MailDeliveryError
from labsite.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from labsite.domain.models.user import User, ROLE_ADMIN, ROLE_MEMBER
from labsite.interfaces.deps import get_mailer
from labsite.main import app


class FakeMailer:
    """Records outgoing mail instead of calling the mail API."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def _deliver(self, kind, to, **data):
        if self.fail:
            raise MailDeliveryError(f"Failed to send mail to {to}")
        self.sent.append({"kind": kind, "to": to, **data})
        return {"status": "queued"}

    async def send_password_reset_email(self, to, user_name, reset_url):
        return await self._deliver("reset", to, user_name=user_name, reset_url=reset_url)

    async def send_credentials_email(self, to, user_name, temporary_password):
        return await self._deliver("credentials", to, user_name=user_name, temporary_password=temporary_password)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # Scheduler jobs open their own sessions
    monkeypatch.setattr(database, "SessionLocal", factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return SQLAlchemyUserRepository(db, User)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(session_factory, mailer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(repo):
    """Insert a user directly; keyword arguments override the model columns."""

    def _make_user(email, password="secret123", **columns):
        columns.setdefault("role", ROLE_MEMBER)
        columns.setdefault("must_change_password", False)
        columns.setdefault("expiration_date", date(2099, 1, 1))
        user = User(email=email, **columns)
        user.set_password(password)
        return repo.add(user)

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin@lab.org", password="adminpass", role=ROLE_ADMIN, name="Admin")


@pytest.fixture
def member(make_user):
    return make_user("member@lab.org", password="memberpass", name="Member")


@pytest.fixture
def login_as(client):
    """Log in through the API and return the bearer header."""

    def _login_as(email, password):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _login_as


@pytest.fixture
def admin_headers(login_as, admin):
    return login_as("admin@lab.org", "adminpass")


@pytest.fixture
def member_headers(login_as, member):
    return login_as("member@lab.org", "memberpass")
