"""Sync operation: verify an ID token, then create or refresh the local user."""

import logging
from dataclasses import dataclass

from src.authsync.services import PostHogService
from src.authsync.services.auth.exceptions import (
    InvalidRequestError,
    StoreFailureError,
    UserConflictError,
)
from src.authsync.services.auth.models import IdentityClaims
from src.authsync.services.auth.verifier import TokenVerifier
from src.authsync.services.database.models import User
from src.authsync.services.database.store import UserStore

logger = logging.getLogger(__name__)

SYNC_FAILURE_MESSAGE = "Failed to sync user"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync: the stored user and whether this call created it."""

    user: User
    created: bool


class SyncService:
    """
    Upserts local users keyed on verified Firebase UIDs.

    The subject id only ever comes from a successful verification, so
    replaying a token converges on "refresh last sign-in" and never creates
    a second row. Two concurrent first syncs race on the insert; the loser
    gets a uniqueness conflict from the store and is retried as a refresh.

    Example:
        >>> service = SyncService(verifier, store)
        >>> result = await service.sync(id_token)
        >>> result.created
        True
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        store: UserStore,
        analytics: PostHogService | None = None,
    ) -> None:
        self.verifier = verifier
        self.store = store
        self.analytics = analytics or PostHogService()

    async def sync(self, token: str | None) -> SyncResult:
        """
        Verify a token and upsert its user.

        Args:
            token: Firebase ID token from the request body

        Returns:
            SyncResult with the stored user and the created flag

        Raises:
            InvalidRequestError: If the token is missing or blank
            InvalidTokenError: If verification fails
            StoreFailureError: If the user cannot be read or written
        """
        if not token or not token.strip():
            raise InvalidRequestError("idToken is required")

        claims = await self.verifier.verify(token.strip())

        try:
            return await self._upsert(claims)
        except StoreFailureError as e:
            raise StoreFailureError(SYNC_FAILURE_MESSAGE) from e

    async def _upsert(self, claims: IdentityClaims) -> SyncResult:
        user = await self.store.get_by_subject(claims.subject_id)
        if user is not None:
            return SyncResult(user=await self._refresh(claims), created=False)

        try:
            user = await self.store.create(claims)
        except UserConflictError:
            # Lost the insert race to a concurrent sync for the same subject
            logger.info(
                "Concurrent user creation detected, retrying as update",
                extra={"firebase_uid": claims.subject_id},
            )
            return SyncResult(user=await self._refresh(claims), created=False)

        self.analytics.capture(
            distinct_id=claims.subject_id,
            event="user_created",
            properties={"email": claims.email},
        )
        return SyncResult(user=user, created=True)

    async def _refresh(self, claims: IdentityClaims) -> User:
        user = await self.store.record_sign_in(claims.subject_id, claims.auth_time)
        if user is None:
            # The conflicting row is not a live row for this subject (email
            # collision or a soft-deleted account)
            logger.error(
                "User row vanished or conflicts on another field",
                extra={"error_type": "user_sync_conflict", "firebase_uid": claims.subject_id},
            )
            raise StoreFailureError()

        logger.info("User signed in", extra={"firebase_uid": claims.subject_id})
        return user
