"""Request and response schemas for the auth sync endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from src.authsync.services.database.models import User


class SyncRequest(BaseModel):
    """Body of POST /auth/sync."""

    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(alias="idToken", description="Firebase ID token")


class SyncResponse(BaseModel):
    """Response for a successful sync."""

    message: str = "Login successful"
    user: User
    created: bool = Field(description="True when this call created the user")


class MeResponse(BaseModel):
    """Response for GET /auth/me."""

    user: User
