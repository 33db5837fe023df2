"""Authentication module for Firebase ID token verification."""

from src.authsync.services.auth.dependencies import AuthGate, get_auth_gate, get_current_user
from src.authsync.services.auth.exceptions import (
    AuthSyncError,
    InvalidRequestError,
    InvalidTokenError,
    StoreFailureError,
    UnauthenticatedError,
    UserConflictError,
    UserNotFoundError,
)
from src.authsync.services.auth.jwks import JWKSCache
from src.authsync.services.auth.jwt_validator import JWTValidator
from src.authsync.services.auth.models import IdentityClaims
from src.authsync.services.auth.verifier import FirebaseTokenVerifier, TokenVerifier

__all__ = [
    "AuthGate",
    "get_auth_gate",
    "get_current_user",
    "AuthSyncError",
    "InvalidRequestError",
    "InvalidTokenError",
    "StoreFailureError",
    "UnauthenticatedError",
    "UserConflictError",
    "UserNotFoundError",
    "JWKSCache",
    "JWTValidator",
    "IdentityClaims",
    "FirebaseTokenVerifier",
    "TokenVerifier",
]
