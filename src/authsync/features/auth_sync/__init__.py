"""Firebase user sync and identity endpoints."""

from src.authsync.features.auth_sync.handlers import router

__all__ = ["router"]
