"""
Pytest configuration and fixtures
"""
import os
from dataclasses import replace

import pytest
from fastapi.responses import RedirectResponse
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

# Set test environment variables before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCRYPT_N"] = "1024"
for _provider in ("GOOGLE", "NAVER", "KAKAO"):
    os.environ.pop(f"{_provider}_CLIENT_ID", None)
    os.environ.pop(f"{_provider}_CLIENT_SECRET", None)

from identity.core.config import Settings
from identity.core.strategies import FederatedStrategy
from identity.database import get_session
from identity.main import create_app
from identity.models.user import User
from identity.services.federated_service import FederatedIdentityService

PASSWORD = "correct horse battery"


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SCRYPT_N=1024,
    )


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def app(engine, settings):
    application = create_app(settings)

    def override_get_session():
        with Session(engine) as session:
            yield session

    application.dependency_overrides[get_session] = override_get_session
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def auth_config(app):
    return app.state.auth_config


@pytest.fixture
def client(app):
    """Create test client"""
    return TestClient(app)


@pytest.fixture
def make_client(app):
    """Factory for extra clients with their own cookie jars"""
    def _make(**kwargs):
        return TestClient(app, **kwargs)
    return _make


def fetch_user(engine, email: str) -> User | None:
    """Read a user through a brand new session (no stale identity map)."""
    with Session(engine) as session:
        return session.exec(select(User).where(User.email == email)).first()


def count_users(engine) -> int:
    with Session(engine) as session:
        return len(session.exec(select(User)).all())


def set_role(engine, email: str, role: str) -> None:
    with Session(engine) as session:
        user = session.exec(select(User).where(User.email == email)).one()
        user.role = role
        session.add(user)
        session.commit()


def register(client, email: str, password: str = PASSWORD, **extra):
    body = {
        "username": email,
        "password": password,
        "realName": "Hong Gil-dong",
        "nickname": "gildong",
    }
    body.update(extra)
    return client.post("/api/register", json=body)


class StubFederatedStrategy(FederatedStrategy):
    """Provider strategy that skips the network handshake."""

    def __init__(self, provider, identities, assertion=None, error=None):
        super().__init__(provider, sso_factory=lambda: None, identities=identities)
        self.assertion = assertion
        self.error = error

    async def login_redirect(self):
        return RedirectResponse(
            url=f"https://{self.provider}.example.com/consent", status_code=302
        )

    async def verify(self, request):
        if self.error is not None:
            raise self.error
        return self.assertion


@pytest.fixture
def identities(auth_config):
    """The federated identity service used by the app's strategies."""
    return FederatedIdentityService(auth_config.accounts.repo)


@pytest.fixture
def install_provider(app, identities):
    """Register a stub provider strategy on the running app."""
    def _install(provider, assertion=None, error=None):
        strategy = StubFederatedStrategy(provider, identities, assertion=assertion, error=error)
        config = app.state.auth_config
        federated = dict(config.federated)
        federated[provider] = strategy
        app.state.auth_config = replace(config, federated=federated)
        return strategy
    return _install
