"""Database connection, table models and the user store."""

from src.authsync.services.database.connection import (
    create_engine,
    create_schema,
    create_session_factory,
)
from src.authsync.services.database.models import User, UserMetadata
from src.authsync.services.database.store import UserStore

__all__ = [
    "create_engine",
    "create_schema",
    "create_session_factory",
    "User",
    "UserMetadata",
    "UserStore",
]
