"""Tests for main API endpoints, CORS and configuration."""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from src.authsync.config import Settings
from src.authsync.main import create_app


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint returns OK status."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"health": "OK", "status": "ON"}


def test_health_check_under_prefix(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"health": "OK", "status": "ON"}


def test_health_check_sequential_load(client: TestClient) -> None:
    for _ in range(100):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"health": "OK", "status": "ON"}


def test_cors_headers_on_responses(client: TestClient) -> None:
    response = client.get("/health", headers={"Origin": "https://app.example.com"})

    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_cors_headers_on_errors(client: TestClient) -> None:
    response = client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_headers_on_unhandled_errors(settings: Settings, fake_verifier) -> None:
    fake_verifier.register("token", subject_id="uid-1")
    store = Mock()
    store.get_by_subject = AsyncMock(side_effect=RuntimeError("boom"))
    app = create_app(settings, verifier=fake_verifier, store=store)

    with TestClient(app) as client:
        response = client.post("/api/v1/auth/sync", json={"idToken": "token"})
        assert client.get("/health").status_code == 200

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_engine_disposed_when_schema_setup_fails(settings: Settings, fake_verifier) -> None:
    engine = Mock()
    engine.dispose = AsyncMock()
    app = create_app(settings, verifier=fake_verifier)

    with (
        patch("src.authsync.main.create_engine", return_value=engine),
        patch("src.authsync.main.create_schema", AsyncMock(side_effect=RuntimeError("db down"))),
    ):
        with pytest.raises(Exception):
            with TestClient(app):
                pass

    engine.dispose.assert_awaited_once()


@pytest.mark.parametrize("path", ["/health", "/api/v1/auth/sync", "/api/v1/auth/me", "/anything"])
def test_preflight_short_circuits(client: TestClient, fake_verifier, path: str) -> None:
    response = client.options(path)

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert fake_verifier.calls == []


def test_unknown_route_uses_error_shape(client: TestClient) -> None:
    response = client.get("/api/v1/nope")

    assert response.status_code == 404
    assert "error" in response.json()


def test_api_prefix(settings: Settings) -> None:
    """Test that API v1 prefix is configured correctly."""
    assert settings.api_v1_prefix == "/api/v1"


def test_firebase_issuer(settings: Settings) -> None:
    assert settings.firebase_issuer == "https://securetoken.google.com/demo-authsync"


@pytest.mark.parametrize("missing", ["PORT", "DATABASE_URL", "FIREBASE_PROJECT_ID"])
def test_missing_required_setting_is_fatal(monkeypatch, missing: str) -> None:
    env = {
        "PORT": "8080",
        "DATABASE_URL": "sqlite+aiosqlite:///./app.db",
        "FIREBASE_PROJECT_ID": "demo-authsync",
    }
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv(missing)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/app")
    monkeypatch.setenv("FIREBASE_PROJECT_ID", "my-project")
    monkeypatch.setenv("VERIFY_TIMEOUT_SECONDS", "2.5")

    settings = Settings(_env_file=None)

    assert settings.port == 9000
    assert settings.database_url == "postgres://u:p@db/app"
    assert settings.firebase_project_id == "my-project"
    assert settings.verify_timeout_seconds == 2.5
