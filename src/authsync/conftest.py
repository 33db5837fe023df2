"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from src.authsync.config import Settings
from src.authsync.main import create_app
from src.authsync.services.auth.exceptions import InvalidTokenError
from src.authsync.services.auth.models import IdentityClaims
from src.authsync.services.database import (
    UserStore,
    create_engine,
    create_schema,
    create_session_factory,
)


class FakeTokenVerifier:
    """
    In-memory stand-in for the Firebase verifier.

    Tokens registered with `register` verify to their claims; anything else
    is rejected like a forged token.
    """

    def __init__(self) -> None:
        self.tokens: dict[str, IdentityClaims] = {}
        self.calls: list[str] = []

    def register(self, token: str, **claims) -> IdentityClaims:
        identity = IdentityClaims(**claims)
        self.tokens[token] = identity
        return identity

    async def verify(self, token: str) -> IdentityClaims:
        self.calls.append(token)
        if token not in self.tokens:
            raise InvalidTokenError()
        return self.tokens[token]


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(
        _env_file=None,
        port=8080,
        database_url=sqlite_url(tmp_path / "app.db"),
        firebase_project_id="demo-authsync",
    )


@pytest.fixture
def fake_verifier() -> FakeTokenVerifier:
    """Provide a verifier that accepts only registered tokens."""
    return FakeTokenVerifier()


@pytest.fixture
def client(settings: Settings, fake_verifier: FakeTokenVerifier) -> Iterator[TestClient]:
    """
    Provide FastAPI test client with startup and shutdown applied.

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    app = create_app(settings, verifier=fake_verifier)
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path):
    """Engine on a fresh SQLite file with the schema created."""
    engine = create_engine(sqlite_url(tmp_path / "store.db"))
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def user_store(session_factory) -> UserStore:
    return UserStore(session_factory)
