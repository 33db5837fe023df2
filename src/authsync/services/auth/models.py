"""Data models for authentication."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from src.authsync.services.auth.exceptions import InvalidTokenError


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_unix_seconds(value: Any) -> int:
    # bool is an int subclass; a boolean auth_time is never meaningful
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


class IdentityClaims(BaseModel):
    """
    Identity attributes asserted by the identity provider after verification.

    Produced once per successful verification and never persisted as-is; used
    to populate or refresh a local user record.

    Attributes:
        subject_id: Provider-assigned stable user id ('sub' claim)
        email: Email address, empty when the provider did not assert one
        name: Display name
        picture: Profile picture URL
        auth_time: Unix seconds at which the provider authenticated the user

    Example:
        >>> claims = IdentityClaims.from_claims({"sub": "uid-1", "auth_time": 1700000000})
        >>> claims.email
        ''
    """

    subject_id: str = Field(min_length=1)
    email: str = ""
    name: str = ""
    picture: str = ""
    auth_time: int = 0

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "IdentityClaims":
        """
        Build typed claims from a verified claim mapping.

        Optional fields of the wrong type fall back to their defaults;
        `auth_time` accepts integer or float seconds.

        Raises:
            InvalidTokenError: If the subject id is missing or empty
        """
        subject_id = claims.get("sub") or claims.get("user_id")
        if not isinstance(subject_id, str) or not subject_id:
            raise InvalidTokenError("Invalid Token")

        return cls(
            subject_id=subject_id,
            email=_as_str(claims.get("email")),
            name=_as_str(claims.get("name")),
            picture=_as_str(claims.get("picture")),
            auth_time=_as_unix_seconds(claims.get("auth_time")),
        )
