"""Database table definitions and the pydantic views built from them."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class UserRecord(Base):
    """Persisted user identified by the Firebase UID."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    firebase_uid = Column(String(128), unique=True, nullable=False, index=True)
    # NULL for principals without an email so they do not collide on the unique index
    email = Column(String(320), unique=True, nullable=True)
    name = Column(String(255), nullable=False, default="")
    photo_url = Column(String(2048), nullable=False, default="")
    role = Column(String(50), nullable=False, default="user")
    # "metadata" is reserved on declarative classes
    user_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)


class UserMetadata(BaseModel):
    """Sign-in timestamps (unix seconds) stored as one JSON blob."""

    model_config = ConfigDict(populate_by_name=True)

    creation_timestamp: int = Field(0, alias="creationTimestamp")
    last_sign_in_timestamp: int = Field(0, alias="lastSignInTimestamp")
    last_refresh_timestamp: int = Field(0, alias="lastRefreshTimestamp")

    def to_blob(self) -> dict[str, int]:
        """Serialize for the JSON column."""
        return self.model_dump(by_alias=True)


class User(BaseModel):
    """
    User profile as returned by the store and rendered by the API.

    Example Response:
        {
            "id": 1,
            "firebase_uid": "Xk2fP0...",
            "email": "jane@example.com",
            "name": "Jane Doe",
            "photoUrl": "https://example.com/jane.png",
            "role": "user",
            "metadata": {
                "creationTimestamp": 1700000000,
                "lastSignInTimestamp": 1700000500,
                "lastRefreshTimestamp": 1700000000
            },
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-01T00:00:00Z"
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    firebase_uid: str
    email: str = ""
    name: str = ""
    photo_url: str = Field("", alias="photoUrl")
    role: str = "user"
    metadata: UserMetadata = Field(default_factory=UserMetadata)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: UserRecord) -> "User":
        """Build the view from a table row."""
        blob: dict[str, Any] = record.user_metadata or {}
        return cls(
            id=record.id,
            firebase_uid=record.firebase_uid,
            email=record.email or "",
            name=record.name or "",
            photo_url=record.photo_url or "",
            role=record.role or "user",
            metadata=UserMetadata.model_validate(blob),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
