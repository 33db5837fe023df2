"""API handlers for user sync and identity endpoints."""

import logging

from fastapi import APIRouter, Depends, Request

from src.authsync.features.auth_sync.schemas import MeResponse, SyncRequest, SyncResponse
from src.authsync.features.auth_sync.service import SyncService
from src.authsync.services.auth.dependencies import get_current_user
from src.authsync.services.auth.exceptions import UnauthenticatedError
from src.authsync.services.database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_sync_service(request: Request) -> SyncService:
    """Return the sync service built at startup."""
    return request.app.state.sync_service


def who_am_i(request: Request) -> User:
    """
    Return the user attached by the auth gate.

    Raises:
        UnauthenticatedError: If the gate did not run for this request
    """
    user: User | None = getattr(request.state, "user", None)
    if user is None:
        raise UnauthenticatedError("Unauthorized")
    return user


@router.post("/sync", response_model=SyncResponse)
async def sync_user(
    body: SyncRequest,
    service: SyncService = Depends(get_sync_service),
) -> SyncResponse:
    """
    Verify a Firebase ID token and create or refresh the matching user.

    First sync for a Firebase UID creates the user with role "user";
    later syncs only update metadata.lastSignInTimestamp.

    Raises:
        InvalidRequestError: 400 if idToken is empty
        InvalidTokenError: 401 if the token fails verification
        StoreFailureError: 500 if the user cannot be stored

    Example Response:
        {
            "message": "Login successful",
            "user": {"id": 1, "firebase_uid": "Xk2fP0...", "email": "jane@example.com", ...},
            "created": true
        }
    """
    result = await service.sync(body.id_token)
    return SyncResponse(user=result.user, created=result.created)


@router.get("/me", response_model=MeResponse, dependencies=[Depends(get_current_user)])
async def get_me(request: Request) -> MeResponse:
    """Return the authenticated caller's profile."""
    return MeResponse(user=who_am_i(request))
