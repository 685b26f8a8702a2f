"""Shared test fixtures."""

import json
import time
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.auth.client import SupabaseAuthClient, create_auth_client
from app.core.config import settings
from app.core.database import get_session
from app.main import app
from app.models import Account, AccountIntegration, Profile

WEBHOOK_SECRET = "S1"


class FakeAuthBackend:
    """In-memory stand-in for the GoTrue session API."""

    def __init__(self):
        self.access_tokens: dict[str, dict] = {}
        self.refresh_tokens: dict[str, dict] = {}
        self.calls: list[str] = []
        self.unreachable = False

    def issue(self, user_id: str, email: str, expires_in: int = 3600) -> tuple[str, str]:
        """Create a session for a user and return (access_token, refresh_token)."""
        user = {"id": user_id, "email": email, "aud": "authenticated"}
        access_token = jwt.encode(
            {"sub": user_id, "exp": int(time.time()) + expires_in, "jti": uuid4().hex},
            "test-jwt-secret",
            algorithm="HS256",
        )
        refresh_token = uuid4().hex
        self.access_tokens[access_token] = user
        self.refresh_tokens[refresh_token] = user
        return access_token, refresh_token

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        if self.unreachable:
            raise httpx.ConnectError("auth backend unreachable", request=request)

        bearer = request.headers.get("authorization", "").removeprefix("Bearer ")
        if path == "/auth/v1/user":
            user = self.access_tokens.get(bearer)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)
        if path == "/auth/v1/token":
            body = json.loads(request.content)
            user = self.refresh_tokens.pop(body.get("refresh_token"), None)
            if user is None:
                return httpx.Response(400, json={"error": "invalid_grant"})
            access_token, refresh_token = self.issue(user["id"], user["email"])
            return httpx.Response(
                200,
                json={
                    "access_token": access_token,
                    "refresh_token": refresh_token,
                    "token_type": "bearer",
                    "expires_in": 3600,
                    "user": user,
                },
            )
        if path == "/auth/v1/logout":
            self.access_tokens.pop(bearer, None)
            return httpx.Response(204)
        return httpx.Response(404)


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="auth_backend")
def auth_backend_fixture() -> FakeAuthBackend:
    """Route every request-scoped auth client to a fake auth backend."""
    backend = FakeAuthBackend()
    transport = httpx.MockTransport(backend.handler)
    app.state.auth_client_factory = lambda cookies: SupabaseAuthClient(
        cookies, transport=transport
    )
    yield backend
    app.state.auth_client_factory = create_auth_client


@pytest.fixture(name="client")
def client_fixture(session: Session, auth_backend: FakeAuthBackend):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="login")
def login_fixture(client: TestClient, auth_backend: FakeAuthBackend):
    """Return a helper that gives the test client a session for a new user."""

    def _login(user_id: str = "user-1", email: str = "jane@freshware.io", expires_in: int = 3600):
        access_token, refresh_token = auth_backend.issue(user_id, email, expires_in)
        client.cookies.set(settings.access_cookie_name, access_token)
        client.cookies.set(settings.refresh_cookie_name, refresh_token)
        return access_token, refresh_token

    return _login


@pytest.fixture(name="account")
def account_fixture(session: Session) -> Account:
    """Create a tenant with a connected YouCanBookMe integration."""
    account = Account(id="tenant-123", name="Acme Dental")
    session.add(account)
    session.add(
        AccountIntegration(
            account_id=account.id,
            provider="youcanbookme",
            webhook_secret=WEBHOOK_SECRET,
        )
    )
    session.commit()
    session.refresh(account)
    return account


@pytest.fixture(name="other_account")
def other_account_fixture(session: Session) -> Account:
    """Create a second tenant with its own secret."""
    account = Account(id="tenant-456", name="Globex Clinics")
    session.add(account)
    session.add(
        AccountIntegration(
            account_id=account.id,
            provider="youcanbookme",
            webhook_secret="S2",
        )
    )
    session.commit()
    session.refresh(account)
    return account


@pytest.fixture(name="make_profile")
def make_profile_fixture(session: Session):
    """Return a helper that stores a profile with the given role."""

    def _make(user_id: str = "user-1", role: str = "STAFF") -> Profile:
        profile = Profile(id=user_id, full_name="Jane Doe", role=role)
        session.add(profile)
        session.commit()
        return profile

    return _make
