"""Shared fixtures for authentication tests."""

import time
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

PROJECT_ID = "demo-authsync"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"
KEY_ID = "key-1"


@pytest.fixture(scope="session")
def rsa_private_pem() -> bytes:
    """Generate a signing key once per test session."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def public_jwk(rsa_private_pem: bytes) -> dict[str, Any]:
    """Public half of the signing key in JWKS form."""
    key_data = jwk.construct(rsa_private_pem, algorithm="RS256").public_key().to_dict()
    key_data["kid"] = KEY_ID
    key_data["use"] = "sig"
    return key_data


@pytest.fixture
def jwks_response(public_jwk: dict[str, Any]) -> dict[str, Any]:
    """JWKS document as served by the identity provider."""
    return {"keys": [public_jwk]}


@pytest.fixture
def firebase_claims() -> dict[str, Any]:
    """Claims of a fresh, valid Firebase ID token."""
    now = int(time.time())
    return {
        "iss": ISSUER,
        "aud": PROJECT_ID,
        "sub": "firebase-uid-123",
        "user_id": "firebase-uid-123",
        "email": "jane@example.com",
        "name": "Jane Doe",
        "picture": "https://example.com/jane.png",
        "auth_time": now - 30,
        "iat": now - 10,
        "exp": now + 3600,
    }


@pytest.fixture
def sign_token(rsa_private_pem: bytes):
    """Return a function that signs claims into an ID token."""

    def _sign(claims: dict[str, Any], kid: str | None = KEY_ID) -> str:
        headers = {"kid": kid} if kid else {}
        return jwt.encode(claims, rsa_private_pem, algorithm="RS256", headers=headers)

    return _sign
