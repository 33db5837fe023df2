"""Auth gate and FastAPI dependencies for protected endpoints."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import Depends, Request

from src.authsync.services import PostHogService
from src.authsync.services.auth.exceptions import (
    AuthSyncError,
    InvalidTokenError,
    UnauthenticatedError,
    UserNotFoundError,
)
from src.authsync.services.auth.models import IdentityClaims
from src.authsync.services.auth.verifier import TokenVerifier
from src.authsync.services.database.models import User

if TYPE_CHECKING:
    from src.authsync.services.database.store import UserStore

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


@dataclass
class GateContext:
    """Values accumulated while a request moves through the gate steps."""

    header: str | None
    token: str | None = None
    claims: IdentityClaims | None = None
    user: User | None = None
    failed_step: str | None = None


GateStep = Callable[[GateContext], Awaitable[None]]


class AuthGate:
    """
    Authenticates a bearer token and resolves the caller's local user.

    Runs an ordered list of steps; each step either enriches the context or
    raises, and the first failure aborts the request. Every request verifies
    its token again, independently of any earlier sync.

    Steps:
        1. require_header   - missing header -> 401
        2. parse_bearer     - anything but "Bearer <token>" -> 401
        3. verify_token     - rejected token -> 401
        4. resolve_user     - no local user -> 404 (caller must sync first)

    Example:
        >>> gate = AuthGate(verifier, store)
        >>> user = await gate.authenticate("Bearer eyJhbGciOi...")
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        store: "UserStore",
        analytics: PostHogService | None = None,
    ) -> None:
        self.verifier = verifier
        self.store = store
        self.analytics = analytics or PostHogService()
        self.steps: list[tuple[str, GateStep]] = [
            ("require_header", self._require_header),
            ("parse_bearer", self._parse_bearer),
            ("verify_token", self._verify_token),
            ("resolve_user", self._resolve_user),
        ]

    async def authenticate(self, header: str | None) -> User:
        """
        Run every gate step against an Authorization header value.

        Returns:
            The caller's local user

        Raises:
            UnauthenticatedError: Missing/malformed header or rejected token
            UserNotFoundError: Token is valid but the user never synced
            StoreFailureError: The user lookup failed
        """
        context = GateContext(header=header)
        for name, step in self.steps:
            try:
                await step(context)
            except AuthSyncError as e:
                context.failed_step = name
                self._track_failure(context, e)
                raise

        logger.info(
            f"User authenticated: {context.user.firebase_uid}",
            extra={"firebase_uid": context.user.firebase_uid},
        )
        self.analytics.capture(
            distinct_id=context.user.firebase_uid,
            event="user_authenticated",
            properties={"email": context.user.email},
        )
        return context.user

    async def _require_header(self, context: GateContext) -> None:
        if not context.header:
            raise UnauthenticatedError("Authorization header required")

    async def _parse_bearer(self, context: GateContext) -> None:
        parts = context.header.split(" ")
        if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
            raise UnauthenticatedError("Invalid authorization header")
        context.token = parts[1]

    async def _verify_token(self, context: GateContext) -> None:
        try:
            context.claims = await self.verifier.verify(context.token)
        except InvalidTokenError as e:
            raise UnauthenticatedError("Invalid token") from e

    async def _resolve_user(self, context: GateContext) -> None:
        context.user = await self.store.get_by_subject(context.claims.subject_id)
        if context.user is None:
            raise UserNotFoundError("User not found")

    def _track_failure(self, context: GateContext, error: AuthSyncError) -> None:
        subject = context.claims.subject_id if context.claims else "anonymous"
        log = logger.error if error.status_code >= 500 else logger.warning
        log(
            f"Auth failed at {context.failed_step}: {error.message}",
            extra={"error_type": context.failed_step, "firebase_uid": subject},
        )
        self.analytics.capture(
            distinct_id=subject,
            event="authentication_failed",
            properties={"error": context.failed_step},
        )


def get_auth_gate(request: Request) -> AuthGate:
    """Return the gate built at startup."""
    return request.app.state.auth_gate


async def get_current_user(request: Request, gate: AuthGate = Depends(get_auth_gate)) -> User:
    """
    Authenticate the request and attach the caller to `request.state.user`.

    Example:
        @router.get("/me")
        async def me(current_user: User = Depends(get_current_user)):
            return {"user": current_user}
    """
    user = await gate.authenticate(request.headers.get("Authorization"))
    request.state.user = user
    return user
