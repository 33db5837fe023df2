"""User store: the only component that reads or writes the users table."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.authsync.services.auth.exceptions import StoreFailureError, UserConflictError
from src.authsync.services.auth.models import IdentityClaims
from src.authsync.services.database.models import User, UserMetadata, UserRecord

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"


class UserStore:
    """
    Lookup, insert and sign-in refresh for users keyed by Firebase UID.

    Every operation runs in its own session and transaction, so each write
    is applied completely or not at all. Soft-deleted rows are invisible.

    Example:
        >>> store = UserStore(create_session_factory(engine))
        >>> user = await store.get_by_subject("Xk2fP0...")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_subject(self, subject_id: str) -> User | None:
        """
        Fetch the live user for a subject id.

        Raises:
            StoreFailureError: If the database cannot be queried
        """
        try:
            async with self._session_factory() as session:
                record = await self._select_live(session, subject_id)
        except SQLAlchemyError as e:
            logger.error(
                f"User lookup failed: {e}",
                exc_info=True,
                extra={"error_type": "user_lookup_failed", "firebase_uid": subject_id},
            )
            raise StoreFailureError() from e

        return User.from_record(record) if record is not None else None

    async def create(self, claims: IdentityClaims) -> User:
        """
        Insert a new user from verified claims in a single transaction.

        All three metadata timestamps start at the claims' auth_time.

        Raises:
            UserConflictError: If a uniqueness constraint rejected the insert
            StoreFailureError: On any other database error
        """
        metadata = UserMetadata(
            creation_timestamp=claims.auth_time,
            last_sign_in_timestamp=claims.auth_time,
            last_refresh_timestamp=claims.auth_time,
        )
        record = UserRecord(
            firebase_uid=claims.subject_id,
            email=claims.email or None,
            name=claims.name,
            photo_url=claims.picture,
            role=DEFAULT_ROLE,
            user_metadata=metadata.to_blob(),
        )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(record)
        except IntegrityError as e:
            logger.info(
                "User insert rejected by uniqueness constraint",
                extra={"firebase_uid": claims.subject_id},
            )
            raise UserConflictError(claims.subject_id) from e
        except SQLAlchemyError as e:
            logger.error(
                f"User insert failed: {e}",
                exc_info=True,
                extra={"error_type": "user_insert_failed", "firebase_uid": claims.subject_id},
            )
            raise StoreFailureError() from e

        logger.info("User created", extra={"firebase_uid": claims.subject_id, "user_id": record.id})
        return User.from_record(record)

    async def record_sign_in(self, subject_id: str, auth_time: int) -> User | None:
        """
        Set metadata.lastSignInTimestamp for a live user.

        Profile fields and the other timestamps are left unchanged.

        Returns:
            The updated user, or None if no live user has this subject id

        Raises:
            StoreFailureError: If the update cannot be applied
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    record = await self._select_live(session, subject_id, for_update=True)
                    if record is None:
                        return None

                    metadata = UserMetadata.model_validate(record.user_metadata or {})
                    metadata.last_sign_in_timestamp = auth_time
                    # Reassign so the JSON column is flagged dirty
                    record.user_metadata = metadata.to_blob()
        except SQLAlchemyError as e:
            logger.error(
                f"User sign-in update failed: {e}",
                exc_info=True,
                extra={"error_type": "user_update_failed", "firebase_uid": subject_id},
            )
            raise StoreFailureError() from e

        return User.from_record(record)

    async def _select_live(
        self, session: AsyncSession, subject_id: str, for_update: bool = False
    ) -> UserRecord | None:
        stmt = select(UserRecord).where(
            UserRecord.firebase_uid == subject_id,
            UserRecord.deleted_at.is_(None),
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()
